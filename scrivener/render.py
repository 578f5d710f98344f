from pathlib import Path

from scrivener.directive_parser import AppendDirective, ListingDirective, PrependDirective, ReplaceDirective
from scrivener.document_parser import DirectiveSection, DocumentSection, TextSection, parse_document_text
from scrivener.section import Section
from scrivener.workbook import Workbook


class DocumentRenderer:
    def __init__(self, document_sections: list[DocumentSection], workbook: Workbook) -> None:
        self.document_sections = document_sections
        self.workbook = workbook

    @staticmethod
    def render_text_section(text_section: TextSection) -> str:
        return text_section.text

    def render_directive__append(self, directive: AppendDirective) -> str:
        partial = self.workbook.append(directive.filename, directive.payloads)
        return self.workbook.layout.fence(partial)

    def render_directive__prepend(self, directive: PrependDirective) -> str:
        partial = self.workbook.prepend(directive.filename, directive.payloads)
        return self.workbook.layout.fence(partial)

    def render_directive__replace(self, directive: ReplaceDirective) -> str:
        # Already fenced, since it interleaves the transition text
        return self.workbook.replace(
            directive.filename,
            directive.section,
            directive.pattern,
            directive.replacement,
            between_text=directive.between_text,
        )

    def render_directive__listing(self, directive: ListingDirective) -> str:
        return self.workbook.listing(directive.filename)

    def render_directive_section(self, directive_section: DirectiveSection) -> str:
        directive = directive_section.directive
        match directive:
            case AppendDirective():
                return self.render_directive__append(directive)
            case PrependDirective():
                return self.render_directive__prepend(directive)
            case ReplaceDirective():
                return self.render_directive__replace(directive)
            case ListingDirective():
                return self.render_directive__listing(directive)
            case directive_type:
                raise NotImplementedError(f"Don't know how to render a {directive_type}")

    def render(self) -> str:
        out = str()
        for section in self.document_sections:
            match section:
                case TextSection():
                    out += self.render_text_section(section)
                case DirectiveSection():
                    out += self.render_directive_section(section)
        return out


def render_document(input_file: Path, output_file: Path, output_root: Path | None = None) -> Workbook:
    """Render a directive document from a clean slate, writing generated files under output_root."""
    sections = parse_document_text(input_file.read_text())
    workbook = Workbook(output_root=output_root)
    renderer = DocumentRenderer(sections, workbook)
    output_file.write_text(renderer.render())
    print(f"Rendered {input_file.as_posix()} to {output_file.as_posix()}")
    return workbook


class TestDocumentRenderer:
    def test_prose_and_directives(self, tmp_path):
        src = """Start with a function.

{{append src/lib.rs
code: fn a() {}
}}

Then another.

{{append src/lib.rs
code: fn b() {}
}}
Done.
"""
        workbook = Workbook(output_root=tmp_path)
        renderer = DocumentRenderer(parse_document_text(src), workbook)
        assert renderer.render() == (
            "Start with a function.\n"
            "\n"
            "```rust\n"
            "// File: `src/lib.rs`\n"
            "\n"
            "// Code\n"
            "fn a() {}\n"
            "```\n"
            "\n"
            "Then another.\n"
            "\n"
            "```rust\n"
            "// File: `src/lib.rs`\n"
            "\n"
            "// Code\n"
            "// ...\n"
            "fn b() {}\n"
            "```\n"
            "Done.\n"
        )
        assert (tmp_path / "src" / "lib.rs").read_text() == "// File: `src/lib.rs`\n\n// Code\nfn a() {}\nfn b() {}\n"

    def test_prepend_replace_and_listing(self, tmp_path):
        src = """{{append src/main.rs
use: use std::fmt;
code:
  - fn a() {}
  - fn main() {}
}}
{{prepend src/main.rs
use: use std::io;
}}
{{replace src/main.rs
section: code
match: fn a
between: "Now:\\n\\n"
with: fn a() -> u8 { 1 }
}}
{{listing src/main.rs}}
"""
        workbook = Workbook(output_root=tmp_path)
        output = DocumentRenderer(parse_document_text(src), workbook).render()
        assert output == (
            "```rust\n"
            "// File: `src/main.rs`\n"
            "\n"
            "use std::fmt;\n"
            "\n"
            "// Code\n"
            "fn a() {}\n"
            "fn main() {}\n"
            "```\n"
            "```rust\n"
            "// File: `src/main.rs`\n"
            "\n"
            "// Use ...\n"
            "use std::io;\n"
            "\n"
            "// Code\n"
            "// ...\n"
            "```\n"
            "```rust\n"
            "// File: `src/main.rs`\n"
            "\n"
            "// Use ...\n"
            "\n"
            "// Code\n"
            "// ...\n"
            "fn a() {}\n"
            "```\n"
            "\n"
            "Now:\n"
            "\n"
            "```rust\n"
            "// File: `src/main.rs`\n"
            "\n"
            "// Use ...\n"
            "\n"
            "// Code\n"
            "// ...\n"
            "fn a() -> u8 { 1 }\n"
            "```\n"
            "```rust\n"
            "// File: `src/main.rs`\n"
            "\n"
            "use std::io;\n"
            "use std::fmt;\n"
            "\n"
            "// Code\n"
            "fn a() -> u8 { 1 }\n"
            "fn main() {}\n"
            "```\n"
        )
        assert workbook.store.read("src/main.rs", Section.IMPORTS) == ["use std::io;", "use std::fmt;"]

    def test_failed_replace_aborts_render(self, tmp_path):
        import pytest

        from scrivener.workbook import NoMatchingFragmentError

        src = """{{append a.rs
code: fn a() {}
}}
{{replace a.rs
section: code
match: fn missing
with: fn b() {}
}}
"""
        workbook = Workbook(output_root=tmp_path)
        with pytest.raises(NoMatchingFragmentError):
            DocumentRenderer(parse_document_text(src), workbook).render()
        assert workbook.store.read("a.rs", Section.CODE) == ["fn a() {}"]

    def test_render_document(self, tmp_path):
        input_file = tmp_path / "index-in.md"
        output_file = tmp_path / "index.md"
        input_file.write_text("Intro\n{{append src/lib.rs\ntest_code: \"    fn t() {}\"\n}}\n")
        workbook = render_document(input_file, output_file, output_root=tmp_path / "out")
        assert output_file.read_text().startswith("Intro\n```rust\n// File: `src/lib.rs`\n")
        generated = (tmp_path / "out" / "src" / "lib.rs").read_text()
        assert generated == workbook.render_file("src/lib.rs")
        assert generated.count("mod tests {") == 1
