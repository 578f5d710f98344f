from pathlib import Path
from typing import Iterable, Mapping

from scrivener.listing import RUST_LAYOUT, ListingLayout, plan_view, render_file_state, render_listing
from scrivener.matcher import Pattern, as_matcher, describe_pattern, find_fragment
from scrivener.section import Fragment, Section, normalize_payloads
from scrivener.store import Filename, FragmentStore

Payloads = Mapping[Section | str, Iterable[Fragment] | Fragment | None]

DEFAULT_BETWEEN_TEXT = "With these new contents:\n\n"


class NoMatchingFragmentError(ValueError):
    def __init__(self, filename: Filename, section: Section, pattern: Pattern, replacement: Fragment) -> None:
        super().__init__(
            f"No match for {describe_pattern(pattern)} in {section.value} of {filename}, "
            f"expected to replace with:\n{replacement}"
        )
        self.filename = filename
        self.section = section
        self.pattern = pattern


class Workbook:
    """Accumulates fragments across authoring steps and keeps each generated file in sync.

    Every mutation rewrites the whole target file, and hands back a rendering of just the
    fragments it was given so that the change can be shown inline in the documentation.
    """

    def __init__(
        self,
        output_root: Path | None = None,
        layout: ListingLayout = RUST_LAYOUT,
        store: FragmentStore | None = None,
    ) -> None:
        self.output_root = output_root
        self.layout = layout
        self.store = store if store is not None else FragmentStore()

    def path_for(self, filename: Filename) -> Path:
        if self.output_root is None:
            return Path(filename)
        if Path(filename).is_absolute():
            raise ValueError(f"Cannot write {filename} under {self.output_root.as_posix()}, expected a relative path")
        return self.output_root / filename

    def render_file(self, filename: Filename) -> str:
        return render_file_state(filename, self.store.get_or_create(filename), self.layout)

    def write_file(self, filename: Filename) -> Path:
        path = self.path_for(filename)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.render_file(filename))
        print(f"Wrote {path.as_posix()}")
        return path

    def listing(self, filename: Filename) -> str:
        return self.layout.fence(self.render_file(filename))

    def _render_delta(self, filename: Filename, payloads: Mapping[Section, list[Fragment]]) -> str:
        state = self.store.get_or_create(filename)
        return render_listing(filename, plan_view(state, payloads), self.layout)

    def append(self, filename: Filename, payloads: Payloads | None = None, **sections) -> str:
        # Reject unusable names before touching the store
        self.path_for(filename)
        added = normalize_payloads(payloads, **sections)
        for section, fragments in added.items():
            print(f"Appending {len(fragments)} fragment(s) to {section.value} in {filename}")
            self.store.write_append(filename, section, fragments)

        partial = self._render_delta(filename, added)
        self.write_file(filename)
        return partial

    def prepend(self, filename: Filename, payloads: Payloads | None = None, **sections) -> str:
        self.path_for(filename)
        added = normalize_payloads(payloads, **sections)
        for section, fragments in added.items():
            print(f"Prepending {len(fragments)} fragment(s) to {section.value} in {filename}")
            self.store.write_prepend(filename, section, fragments)

        partial = self._render_delta(filename, added)
        self.write_file(filename)
        return partial

    def replace(
        self,
        filename: Filename,
        section: Section | str,
        pattern: Pattern,
        new_fragment: Fragment,
        between_text: str = DEFAULT_BETWEEN_TEXT,
    ) -> str:
        if not isinstance(section, Section):
            section = Section.from_str(section)
        self.path_for(filename)

        # A failed match must not register the file
        fragments = self.store.read(filename, section) if filename in self.store else []
        index = find_fragment(fragments, as_matcher(pattern))
        if index is None:
            raise NoMatchingFragmentError(filename, section, pattern, new_fragment)
        print(f"Replacing fragment {index} of {section.value} in {filename}")

        before = self._render_delta(filename, {section: [fragments[index]]})
        self.store.write_replace(filename, section, index, new_fragment)
        after = self._render_delta(filename, {section: [new_fragment]})
        self.write_file(filename)

        out = str()
        out += self.layout.fence(before)
        out += "\n"
        out += between_text
        out += self.layout.fence(after)
        return out


class TestWorkbook:
    def test_two_appends(self, tmp_path):
        workbook = Workbook(output_root=tmp_path)
        first = workbook.append("x", code=["fn a(){}"])
        assert first == "// File: `x`\n\n// Code\nfn a(){}\n"

        second = workbook.append("x", code=["fn b(){}"])
        assert second == "// File: `x`\n\n// Code\n// ...\nfn b(){}\n"
        assert "fn a(){}" not in second

        on_disk = (tmp_path / "x").read_text()
        assert on_disk == "// File: `x`\n\n// Code\nfn a(){}\nfn b(){}\n"
        assert on_disk.count("fn a(){}") == 1

    def test_first_append_matches_file(self, tmp_path):
        workbook = Workbook(output_root=tmp_path)
        partial = workbook.append("src/lib.rs", use="use std::fmt;", code=["fn a() {}"])
        assert "..." not in partial
        assert partial == (tmp_path / "src" / "lib.rs").read_text()

    def test_append_payload_mapping(self, tmp_path):
        workbook = Workbook(output_root=tmp_path)
        workbook.append("a.rs", {Section.IMPORTS: ["use a;"], "test_use": "    use super::*;"})
        assert workbook.store.read("a.rs", Section.IMPORTS) == ["use a;"]
        assert workbook.store.read("a.rs", Section.TEST_IMPORTS) == ["    use super::*;"]

    def test_append_and_prepend_accumulate_in_order(self, tmp_path):
        workbook = Workbook(output_root=tmp_path)
        workbook.append("a.rs", imports=["use b;"])
        workbook.append("a.rs", imports=["use c;"])
        partial = workbook.prepend("a.rs", imports=["use a1;", "use a2;"])
        assert workbook.store.read("a.rs", Section.IMPORTS) == ["use a1;", "use a2;", "use b;", "use c;"]
        assert partial == "// File: `a.rs`\n\n// Use ...\nuse a1;\nuse a2;\n"
        assert (tmp_path / "a.rs").read_text() == "// File: `a.rs`\n\nuse a1;\nuse a2;\nuse b;\nuse c;\n"

    def test_omitted_sections_are_untouched(self, tmp_path):
        workbook = Workbook(output_root=tmp_path)
        workbook.append("a.rs", imports=["use a;"], code=["fn a() {}"])
        partial = workbook.append("a.rs", code=["fn b() {}"])
        assert "use a;" not in partial
        assert partial == "// File: `a.rs`\n\n// Use ...\n\n// Code\n// ...\nfn b() {}\n"
        assert workbook.store.read("a.rs", Section.IMPORTS) == ["use a;"]

    def test_empty_append_still_persists(self, tmp_path):
        workbook = Workbook(output_root=tmp_path)
        workbook.append("a.rs", code=["fn a() {}"])
        (tmp_path / "a.rs").write_text("clobbered")
        partial = workbook.append("a.rs", code=[""])
        assert partial == "// File: `a.rs`\n\n// Code\n// ...\n"
        assert workbook.store.read("a.rs", Section.CODE) == ["fn a() {}"]
        assert (tmp_path / "a.rs").read_text() == workbook.render_file("a.rs")

    def test_test_wrapper_appears_once(self, tmp_path):
        workbook = Workbook(output_root=tmp_path)
        workbook.append("a.rs", code=["fn a() {}"])
        assert "#[cfg(test)]" not in (tmp_path / "a.rs").read_text()

        workbook.append("a.rs", test_code=["    #[test]\n    fn t1() {}"])
        workbook.append("a.rs", test_code=["    #[test]\n    fn t2() {}"])
        on_disk = (tmp_path / "a.rs").read_text()
        assert on_disk.count("#[cfg(test)]") == 1
        assert on_disk.count("mod tests {") == 1
        assert on_disk.index("fn t1") < on_disk.index("fn t2")

    def test_replace(self, tmp_path):
        workbook = Workbook(output_root=tmp_path)
        workbook.append("a.rs", code=["fn a() {}", "fn b() {}", "fn c() {}"])
        display = workbook.replace("a.rs", Section.CODE, r"fn b", "fn d() {}", between_text="Becomes:\n\n")
        assert workbook.store.read("a.rs", Section.CODE) == ["fn a() {}", "fn d() {}", "fn c() {}"]
        assert display == (
            "```rust\n"
            "// File: `a.rs`\n"
            "\n"
            "// Code\n"
            "// ...\n"
            "fn b() {}\n"
            "```\n"
            "\n"
            "Becomes:\n"
            "\n"
            "```rust\n"
            "// File: `a.rs`\n"
            "\n"
            "// Code\n"
            "// ...\n"
            "fn d() {}\n"
            "```\n"
        )
        assert display.index("fn b() {}") < display.index("Becomes:") < display.index("fn d() {}")
        assert (tmp_path / "a.rs").read_text() == "// File: `a.rs`\n\n// Code\nfn a() {}\nfn d() {}\nfn c() {}\n"

    def test_replace_sole_fragment_is_not_elided(self, tmp_path):
        workbook = Workbook(output_root=tmp_path)
        workbook.append("a.rs", imports=["use a;"])
        display = workbook.replace("a.rs", "use", "use a", "use b;")
        assert "// Use ..." not in display
        assert display.startswith("```rust\n// File: `a.rs`\n\nuse a;\n```\n\nWith these new contents:\n\n")

    def test_replace_first_match_wins(self, tmp_path):
        workbook = Workbook(output_root=tmp_path)
        workbook.append("a.rs", code=["fn a() { 1 }", "fn a() { 2 }"])
        workbook.replace("a.rs", Section.CODE, "fn a", "fn a() { 3 }")
        assert workbook.store.read("a.rs", Section.CODE) == ["fn a() { 3 }", "fn a() { 2 }"]

    def test_unmatched_replace_changes_nothing(self, tmp_path):
        import pytest

        workbook = Workbook(output_root=tmp_path)
        workbook.append("a.rs", code=["fn a() {}"])
        before = (tmp_path / "a.rs").read_text()

        with pytest.raises(NoMatchingFragmentError, match=r"/fn z/ in code of a\.rs"):
            workbook.replace("a.rs", Section.CODE, "fn z", "fn y() {}")

        assert workbook.store.read("a.rs", Section.CODE) == ["fn a() {}"]
        assert (tmp_path / "a.rs").read_text() == before

    def test_replace_only_searches_its_section(self, tmp_path):
        import pytest

        workbook = Workbook(output_root=tmp_path)
        workbook.append("a.rs", code=["fn a() {}"])
        with pytest.raises(NoMatchingFragmentError):
            workbook.replace("a.rs", Section.TEST_CODE, "fn a", "fn b() {}")

    def test_listing(self, tmp_path):
        workbook = Workbook(output_root=tmp_path)
        workbook.append("a.rs", code=["fn a() {}"])
        workbook.append("a.rs", code=["fn b() {}"])
        assert workbook.listing("a.rs") == "```rust\n// File: `a.rs`\n\n// Code\nfn a() {}\nfn b() {}\n```\n"

    def test_workbooks_do_not_share_state(self, tmp_path):
        first = Workbook(output_root=tmp_path / "one")
        second = Workbook(output_root=tmp_path / "two")
        first.append("a.rs", code=["fn a() {}"])
        assert second.store.read("a.rs", Section.CODE) == []

    def test_unmatched_replace_on_unknown_file_registers_nothing(self, tmp_path):
        import pytest

        workbook = Workbook(output_root=tmp_path)
        with pytest.raises(NoMatchingFragmentError):
            workbook.replace("never.rs", Section.CODE, "fn a", "fn b() {}")
        assert "never.rs" not in workbook.store
        assert not (tmp_path / "never.rs").exists()

    def test_absolute_filename_is_rejected_under_output_root(self, tmp_path):
        import pytest

        workbook = Workbook(output_root=tmp_path / "out")
        outside = tmp_path / "outside.rs"
        with pytest.raises(ValueError, match="expected a relative path"):
            workbook.append(outside.as_posix(), code=["fn a() {}"])
        assert not outside.exists()
        assert outside.as_posix() not in workbook.store

    def test_absolute_filename_without_output_root(self, tmp_path):
        workbook = Workbook()
        target = tmp_path / "a.rs"
        workbook.append(target.as_posix(), code=["fn a() {}"])
        assert target.read_text() == workbook.render_file(target.as_posix())

    def test_delta_shows_placeholder_for_sections_not_supplied(self, tmp_path):
        workbook = Workbook(output_root=tmp_path)
        workbook.append("x.rs", use=["use std::fmt;"], code=["fn a(){}"])
        partial = workbook.append("x.rs", code=["fn b(){}"])
        assert partial == "// File: `x.rs`\n\n// Use ...\n\n// Code\n// ...\nfn b(){}\n"
        assert partial.count("// Use ...") == 1
