from dataclasses import dataclass
from enum import Enum, auto
from typing import Self

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from scrivener.lexer import Lexer, Token, TokenType
from scrivener.section import CANONICAL_ORDER, Fragment, Section, normalize_fragments
from scrivener.workbook import DEFAULT_BETWEEN_TEXT


class SectionPayloadsBody(BaseModel):
    """YAML body of an append or prepend directive."""

    model_config = ConfigDict(extra="forbid")

    module_docs: list[Fragment] | None = None
    mod_declarations: list[Fragment] | None = Field(
        default=None, validation_alias=AliasChoices("mod_declarations", "mod")
    )
    imports: list[Fragment] | None = Field(default=None, validation_alias=AliasChoices("imports", "use"))
    code: list[Fragment] | None = None
    test_imports: list[Fragment] | None = Field(
        default=None, validation_alias=AliasChoices("test_imports", "test_use")
    )
    test_code: list[Fragment] | None = None

    @field_validator("*", mode="before")
    @classmethod
    def wrap_lone_fragment(cls, value):
        if isinstance(value, str):
            return [value]
        return value

    def payloads(self) -> dict[Section, list[Fragment]]:
        out = {}
        for section in CANONICAL_ORDER:
            fragments = getattr(self, section.value)
            if fragments is not None:
                out[section] = normalize_fragments(fragments)
        return out


class ReplaceBody(BaseModel):
    """YAML body of a replace directive."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    section: Section
    pattern: str = Field(alias="match")
    replacement: Fragment = Field(alias="with")
    between_text: str = Field(default=DEFAULT_BETWEEN_TEXT, alias="between")

    @field_validator("section", mode="before")
    @classmethod
    def parse_section(cls, value):
        if isinstance(value, str):
            return Section.from_str(value)
        return value


class DirectiveType(Enum):
    Append = auto()
    Prepend = auto()
    Replace = auto()
    Listing = auto()

    @classmethod
    def from_str(cls, s: str) -> Self:
        mapping = {
            "append": DirectiveType.Append,
            "prepend": DirectiveType.Prepend,
            "replace": DirectiveType.Replace,
            "listing": DirectiveType.Listing,
        }
        if s not in mapping:
            raise ValueError(f"Unknown directive {s!r}, expected one of {list(mapping)}")
        return mapping[s]


@dataclass
class AppendDirective:
    filename: str
    payloads: dict[Section, list[Fragment]]


@dataclass
class PrependDirective:
    filename: str
    payloads: dict[Section, list[Fragment]]


@dataclass
class ReplaceDirective:
    filename: str
    section: Section
    pattern: str
    replacement: Fragment
    between_text: str = DEFAULT_BETWEEN_TEXT


@dataclass
class ListingDirective:
    filename: str


Directive = AppendDirective | PrependDirective | ReplaceDirective | ListingDirective


class DirectiveParser:
    BEGIN_DIRECTIVE_SEQ = [TokenType.LeftBrace, TokenType.LeftBrace]
    END_DIRECTIVE_SEQ = [TokenType.RightBrace, TokenType.RightBrace]
    END_MULTI_LINE_DIRECTIVE_SEQ = [TokenType.Newline, *END_DIRECTIVE_SEQ]

    def __init__(self, text: str) -> None:
        self.lexer = Lexer(text)

    def read_tokens_until_any_sequence(self, break_on_any_of_sequences: list[list[TokenType]]) -> list[Token]:
        for break_on_sequence in break_on_any_of_sequences:
            if len(break_on_sequence) < 1:
                raise ValueError("Need at least one type to break on")

        tokens = []
        while True:
            if self.lexer.peek().type == TokenType.EOF:
                return tokens
            tokens.append(self.lexer.next())

            for break_on_sequence in break_on_any_of_sequences:
                # Look back at the last few tokens and see if they match the break sequence
                last_few_tokens = tokens[-len(break_on_sequence):]
                if [t.type for t in last_few_tokens] == break_on_sequence:
                    # Leave the break tokens for the caller
                    tokens = tokens[: -len(break_on_sequence)]
                    self.lexer.cursor = last_few_tokens[0].start_pos
                    return tokens

    def read_tokens_until_sequence(self, break_on_sequence: list[TokenType]) -> list[Token]:
        return self.read_tokens_until_any_sequence([break_on_sequence])

    def read_tokens_until_directive_begins(self) -> list[Token]:
        return self.read_tokens_until_sequence(self.BEGIN_DIRECTIVE_SEQ)

    def read_str_until_any_seq(self, delimiter_seqs: list[list[TokenType]]) -> str:
        return "".join(t.value for t in self.read_tokens_until_any_sequence(delimiter_seqs))

    def expect(self, token_type: TokenType) -> Token:
        next_tok = self.lexer.next()
        if next_tok.type != token_type:
            raise RuntimeError(f"Expected {token_type}, but found {next_tok}")
        return next_tok

    def expect_seq(self, token_types: list[TokenType]) -> list[Token]:
        return [self.expect(tok_type) for tok_type in token_types]

    def match_directive_open(self) -> list[Token]:
        return self.expect_seq(self.BEGIN_DIRECTIVE_SEQ)

    def match_directive_close(self) -> list[Token]:
        # Most characters to least characters
        delimiters = [
            [TokenType.Newline, *self.END_DIRECTIVE_SEQ, TokenType.Newline],
            [TokenType.Newline, *self.END_DIRECTIVE_SEQ],
            [*self.END_DIRECTIVE_SEQ, TokenType.Newline],
            [*self.END_DIRECTIVE_SEQ],
        ]
        for delimiter in delimiters:
            if self.lexer.peek_next_token_types_match(delimiter):
                return self.expect_seq(delimiter)
        raise ValueError(f"Failed to match a directive close at offset {self.lexer.cursor}")

    def at_directive_close(self) -> bool:
        return self.lexer.peek_next_token_types_match(
            self.END_DIRECTIVE_SEQ
        ) or self.lexer.peek_next_token_types_match(self.END_MULTI_LINE_DIRECTIVE_SEQ)

    def parse_body(self) -> dict:
        if self.at_directive_close():
            # Shorthand directive without a body
            self.match_directive_close()
            return {}

        self.expect(TokenType.Newline)
        if self.at_directive_close():
            self.match_directive_close()
            return {}

        body_text = self.read_str_until_any_seq([self.END_MULTI_LINE_DIRECTIVE_SEQ])
        self.match_directive_close()
        return yaml.load(body_text, Loader=yaml.SafeLoader) or {}

    def parse_directive(self) -> Directive:
        self.match_directive_open()
        directive_name = self.expect(TokenType.Word)
        directive_type = DirectiveType.from_str(directive_name.value)
        self.expect(TokenType.Space)
        filename = self.read_str_until_any_seq([[TokenType.Newline], self.END_DIRECTIVE_SEQ])
        if not filename:
            raise ValueError(f"Expected a file name after {directive_name.value}")
        body = self.parse_body()
        print(f"Found directive {directive_name.value} for {filename}")

        match directive_type:
            case DirectiveType.Append:
                return AppendDirective(filename=filename, payloads=SectionPayloadsBody.model_validate(body).payloads())
            case DirectiveType.Prepend:
                return PrependDirective(filename=filename, payloads=SectionPayloadsBody.model_validate(body).payloads())
            case DirectiveType.Replace:
                replace_body = ReplaceBody.model_validate(body)
                return ReplaceDirective(
                    filename=filename,
                    section=replace_body.section,
                    pattern=replace_body.pattern,
                    replacement=replace_body.replacement,
                    between_text=replace_body.between_text,
                )
            case DirectiveType.Listing:
                if body:
                    raise ValueError(f"listing {filename} does not take a body")
                return ListingDirective(filename=filename)
            case _:
                raise NotImplementedError(directive_type)


class TestDirectiveParser:
    def test_text_before_directive(self):
        source = """Let's add our first function.

{{append src/lib.rs
code:
  - fn a() {}
}}
"""
        parser = DirectiveParser(source)
        tokens = parser.read_tokens_until_directive_begins()
        assert "".join(t.value for t in tokens) == "Let's add our first function.\n\n"
        assert parser.parse_directive() == AppendDirective(
            filename="src/lib.rs",
            payloads={Section.CODE: ["fn a() {}"]},
        )
        assert parser.lexer.peek().type == TokenType.EOF

    def test_append_sections(self):
        source = """{{append src/lib.rs
module_docs: "//! A crate"
use:
  - use std::fmt;
  - use std::io;
code: |
  fn a() {
      println!("{}", 1);
  }
test_code:
  - |-
        #[test]
        fn t() {}
}}"""
        parser = DirectiveParser(source)
        assert parser.parse_directive() == AppendDirective(
            filename="src/lib.rs",
            payloads={
                Section.MODULE_DOCS: ["//! A crate"],
                Section.IMPORTS: ["use std::fmt;", "use std::io;"],
                Section.CODE: ['fn a() {\n    println!("{}", 1);\n}\n'],
                Section.TEST_CODE: ["#[test]\nfn t() {}"],
            },
        )

    def test_prepend_short_names(self):
        source = """{{prepend src/lib.rs
mod: mod shared;
test_use: "    use super::*;"
}}
"""
        assert DirectiveParser(source).parse_directive() == PrependDirective(
            filename="src/lib.rs",
            payloads={
                Section.MOD_DECLARATIONS: ["mod shared;"],
                Section.TEST_IMPORTS: ["    use super::*;"],
            },
        )

    def test_replace(self):
        source = """{{replace src/lib.rs
section: use
match: "^use std::fmt"
between: "Becomes:\\n\\n"
with: use std::fmt::{self, Display};
}}
"""
        assert DirectiveParser(source).parse_directive() == ReplaceDirective(
            filename="src/lib.rs",
            section=Section.IMPORTS,
            pattern="^use std::fmt",
            replacement="use std::fmt::{self, Display};",
            between_text="Becomes:\n\n",
        )

    def test_replace_default_between_text(self):
        source = """{{replace src/lib.rs
section: code
match: fn a
with: fn a() { 1 }
}}"""
        directive = DirectiveParser(source).parse_directive()
        assert directive.between_text == DEFAULT_BETWEEN_TEXT

    def test_shorthand(self):
        assert DirectiveParser("{{listing src/lib.rs}}\n").parse_directive() == ListingDirective("src/lib.rs")
        assert DirectiveParser("{{append src/lib.rs\n}}").parse_directive() == AppendDirective("src/lib.rs", {})

    def test_unknown_directive(self):
        import pytest

        with pytest.raises(ValueError, match="Unknown directive 'show'"):
            DirectiveParser("{{show src/lib.rs}}").parse_directive()

    def test_unknown_section(self):
        import pytest
        from pydantic import ValidationError

        with pytest.raises(ValidationError):
            DirectiveParser("{{append src/lib.rs\nimpls: fn a() {}\n}}").parse_directive()

    def test_replace_requires_match(self):
        import pytest
        from pydantic import ValidationError

        with pytest.raises(ValidationError):
            DirectiveParser("{{replace src/lib.rs\nsection: code\nwith: fn b() {}\n}}").parse_directive()

    def test_unterminated_directive(self):
        import pytest

        with pytest.raises(ValueError, match="directive close"):
            DirectiveParser("{{append src/lib.rs\ncode: fn a() {}\n").parse_directive()
