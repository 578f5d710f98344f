from dataclasses import dataclass

from scrivener.directive_parser import AppendDirective, Directive, DirectiveParser, ListingDirective
from scrivener.lexer import TokenType
from scrivener.section import Section


@dataclass
class TextSection:
    text: str


@dataclass
class DirectiveSection:
    directive: Directive


DocumentSection = TextSection | DirectiveSection


def parse_document_text(text: str) -> list[DocumentSection]:
    output_sections = []
    parser = DirectiveParser(text)
    while True:
        tokens_before_directive = parser.read_tokens_until_directive_begins()
        # We may immediately start with a directive
        if len(tokens_before_directive):
            output_sections.append(TextSection("".join(t.value for t in tokens_before_directive)))

        if parser.lexer.peek().type == TokenType.EOF:
            break

        output_sections.append(DirectiveSection(parser.parse_directive()))

    return output_sections


class TestDocumentParser:
    def test_sections(self):
        src = """# Getting started

Our crate begins with a single function:

{{append src/lib.rs
code: fn a() {}
}}

And here is the whole file:
{{listing src/lib.rs}}
"""
        assert parse_document_text(src) == [
            TextSection("# Getting started\n\nOur crate begins with a single function:\n\n"),
            DirectiveSection(AppendDirective(filename="src/lib.rs", payloads={Section.CODE: ["fn a() {}"]})),
            TextSection("\nAnd here is the whole file:\n"),
            DirectiveSection(ListingDirective(filename="src/lib.rs")),
        ]

    def test_only_prose(self):
        assert parse_document_text("No directives, just {braces}.\n") == [
            TextSection("No directives, just {braces}.\n")
        ]

    def test_empty(self):
        assert parse_document_text("") == []
