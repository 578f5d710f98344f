from dataclasses import dataclass
from enum import Enum, auto
from typing import Self

Cursor = int


class TokenType(Enum):
    EOF = auto()
    Word = auto()
    LeftBrace = auto()
    RightBrace = auto()
    Space = auto()
    Newline = auto()

    @classmethod
    def try_from_str(cls, s: str) -> Self | None:
        mapping = {
            "{": TokenType.LeftBrace,
            "}": TokenType.RightBrace,
            " ": TokenType.Space,
            "\n": TokenType.Newline,
        }
        return mapping.get(s)


@dataclass
class Token:
    type: TokenType
    value: str
    start_pos: Cursor
    end_pos: Cursor

    @classmethod
    def eof(cls, text_len: int) -> Self:
        return cls(type=TokenType.EOF, value="", start_pos=text_len, end_pos=text_len)


class Lexer:
    def __init__(self, text: str) -> None:
        self.text = text
        self.cursor: Cursor = 0

    def _consume_token(self) -> Token:
        if self.cursor >= len(self.text):
            return Token.eof(len(self.text))

        start_pos = self.cursor
        # Single-character delimiters are tokens of their own
        if token_type := TokenType.try_from_str(self.text[start_pos]):
            return Token(type=token_type, value=self.text[start_pos], start_pos=start_pos, end_pos=start_pos + 1)

        # Otherwise, read a word up to the next delimiter
        cursor = start_pos
        while cursor < len(self.text) and TokenType.try_from_str(self.text[cursor]) is None:
            cursor += 1
        return Token(type=TokenType.Word, value=self.text[start_pos:cursor], start_pos=start_pos, end_pos=cursor)

    def next(self) -> Token:
        token = self._consume_token()
        self.cursor = token.end_pos
        return token

    def peek(self) -> Token:
        return self.peek_n(1)[0]

    def peek_n(self, n: int) -> list[Token]:
        start_cursor = self.cursor
        tokens = [self.next() for _ in range(n)]
        self.cursor = start_cursor
        return tokens

    def peek_next_token_types_match(self, next_types: list[TokenType]) -> bool:
        return [p.type for p in self.peek_n(len(next_types))] == next_types


class TestLexer:
    def test(self):
        lexer = Lexer("{{append src/lib.rs\nfn a() {}\n}}")
        assert lexer.peek() == Token(TokenType.LeftBrace, "{", 0, 1)
        assert lexer.next() == Token(TokenType.LeftBrace, "{", 0, 1)
        assert lexer.next() == Token(TokenType.LeftBrace, "{", 1, 2)
        assert lexer.peek() == Token(TokenType.Word, "append", 2, 8)
        assert lexer.next() == Token(TokenType.Word, "append", 2, 8)
        assert lexer.next() == Token(TokenType.Space, " ", 8, 9)
        assert lexer.next() == Token(TokenType.Word, "src/lib.rs", 9, 19)
        assert lexer.next() == Token(TokenType.Newline, "\n", 19, 20)
        assert lexer.next() == Token(TokenType.Word, "fn", 20, 22)
        assert lexer.next() == Token(TokenType.Space, " ", 22, 23)
        assert lexer.next() == Token(TokenType.Word, "a()", 23, 26)
        assert lexer.next() == Token(TokenType.Space, " ", 26, 27)
        assert lexer.next() == Token(TokenType.LeftBrace, "{", 27, 28)
        assert lexer.next() == Token(TokenType.RightBrace, "}", 28, 29)
        assert lexer.next() == Token(TokenType.Newline, "\n", 29, 30)
        assert lexer.peek_next_token_types_match([TokenType.RightBrace, TokenType.RightBrace, TokenType.EOF])
        assert lexer.next() == Token(TokenType.RightBrace, "}", 30, 31)
        assert lexer.next() == Token(TokenType.RightBrace, "}", 31, 32)
        assert lexer.peek() == Token(TokenType.EOF, "", 32, 32)
        assert lexer.next() == Token(TokenType.EOF, "", 32, 32)
        assert lexer.next() == Token(TokenType.EOF, "", 32, 32)

    def test_empty(self):
        assert Lexer("").next() == Token.eof(0)
