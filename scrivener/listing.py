from dataclasses import dataclass
from typing import Mapping

from pydantic import BaseModel, ConfigDict

from scrivener.section import CANONICAL_ORDER, Fragment, Section
from scrivener.store import FileState


class ListingLayout(BaseModel):
    """How a file's sections are framed when rendered."""

    model_config = ConfigDict(frozen=True)

    # Language used when a listing is fenced for markdown
    fence_lang: str
    header: str
    # Shown in place of accumulated content that isn't part of this rendering
    placeholders: dict[Section, str]
    titles: dict[Section, str] = {}
    test_open: str
    test_close: str

    def fence(self, text: str) -> str:
        return f"```{self.fence_lang}\n{text}```\n"


RUST_LAYOUT = ListingLayout(
    fence_lang="rust",
    header="// File: `{filename}`",
    placeholders={
        Section.MODULE_DOCS: "// Module docs ...",
        Section.MOD_DECLARATIONS: "// Mod ...",
        Section.IMPORTS: "// Use ...",
        Section.CODE: "// ...",
        Section.TEST_IMPORTS: "    // ...",
        Section.TEST_CODE: "    // ...",
    },
    titles={
        Section.CODE: "// Code",
        Section.TEST_IMPORTS: "    // Test use",
        Section.TEST_CODE: "    // Test code",
    },
    test_open="#[cfg(test)]\nmod tests {",
    test_close="}",
)


@dataclass
class SectionView:
    fragments: list[Fragment]
    # True when the file holds more of this section than these fragments
    elided: bool


def plan_view(
    state: FileState,
    overrides: Mapping[Section, list[Fragment]] | None = None,
) -> dict[Section, SectionView]:
    """Decide what a rendering shows.

    Without overrides the whole file is shown. With overrides, only the overridden sections are shown,
    and each one is marked as elided unless it happens to be everything the file holds for that section.
    Other non-test sections that hold content are reduced to their placeholder.
    """
    if overrides is None:
        return {
            section: SectionView(fragments=list(state.fragments(section)), elided=False)
            for section in CANONICAL_ORDER
        }
    views = {
        section: SectionView(fragments=list(fragments), elided=list(fragments) != state.fragments(section))
        for section, fragments in overrides.items()
    }
    for section in CANONICAL_ORDER:
        if section.is_test or section in views or not state.fragments(section):
            continue
        views[section] = SectionView(fragments=[], elided=True)
    return {section: views[section] for section in CANONICAL_ORDER if section in views}


def render_section(section: Section, view: SectionView, layout: ListingLayout) -> str:
    out = str()
    if section in layout.titles:
        out += f"{layout.titles[section]}\n"
    if view.elided:
        out += f"{layout.placeholders[section]}\n"
    if view.fragments:
        out += "\n".join(view.fragments)
        out += "\n"
    return out


def render_listing(
    filename: str,
    section_views: Mapping[Section, SectionView],
    layout: ListingLayout = RUST_LAYOUT,
) -> str:
    out = layout.header.format(filename=filename)
    out += "\n"

    def is_shown(section: Section) -> bool:
        if section not in section_views:
            return False
        view = section_views[section]
        # Outside the test wrapper, a placeholder alone still marks content that exists
        return len(view.fragments) > 0 or (view.elided and not section.is_test)

    for section in CANONICAL_ORDER:
        if section.is_test or not is_shown(section):
            continue
        out += "\n"
        out += render_section(section, section_views[section], layout)

    # Test sections share a single wrapper
    test_parts = [
        render_section(section, section_views[section], layout)
        for section in CANONICAL_ORDER
        if section.is_test and is_shown(section)
    ]
    if test_parts:
        out += f"\n{layout.test_open}\n"
        out += "\n".join(test_parts)
        out += f"{layout.test_close}\n"

    return out


def render_file_state(filename: str, state: FileState, layout: ListingLayout = RUST_LAYOUT) -> str:
    return render_listing(filename, plan_view(state), layout)


def _state(**sections: list[Fragment]) -> FileState:
    state = FileState()
    for name, fragments in sections.items():
        state.sections[Section(name)] = list(fragments)
    return state


class TestRenderListing:
    def test_full_file(self):
        state = _state(
            module_docs=["//! Docs"],
            mod_declarations=["mod a;"],
            imports=["use a::A;"],
            code=["fn f() {}", "fn g() {}"],
            test_imports=["    use super::*;"],
            test_code=["    #[test]\n    fn t() {}"],
        )
        assert render_file_state("src/lib.rs", state) == (
            "// File: `src/lib.rs`\n"
            "\n"
            "//! Docs\n"
            "\n"
            "mod a;\n"
            "\n"
            "use a::A;\n"
            "\n"
            "// Code\n"
            "fn f() {}\n"
            "fn g() {}\n"
            "\n"
            "#[cfg(test)]\n"
            "mod tests {\n"
            "    // Test use\n"
            "    use super::*;\n"
            "\n"
            "    // Test code\n"
            "    #[test]\n"
            "    fn t() {}\n"
            "}\n"
        )

    def test_empty_file_is_just_the_header(self):
        assert render_file_state("src/main.rs", FileState()) == "// File: `src/main.rs`\n"

    def test_rendering_is_deterministic(self):
        state = _state(imports=["use std::fmt;"], code=["fn a() {}"], test_code=["    fn t() {}"])
        assert render_file_state("a.rs", state) == render_file_state("a.rs", state)

    def test_no_test_wrapper_without_test_content(self):
        state = _state(code=["fn a() {}"])
        assert "mod tests" not in render_file_state("a.rs", state)

    def test_test_wrapper_with_only_test_code(self):
        state = _state(test_code=["    fn t() {}"])
        assert render_file_state("a.rs", state) == (
            "// File: `a.rs`\n"
            "\n"
            "#[cfg(test)]\n"
            "mod tests {\n"
            "    // Test code\n"
            "    fn t() {}\n"
            "}\n"
        )

    def test_partial_view_elides(self):
        state = _state(imports=["use a;", "use b;"], code=["fn a() {}", "fn b() {}"])
        views = plan_view(state, {Section.CODE: ["fn b() {}"]})
        assert views[Section.CODE].elided
        # Sections left out of the call keep a placeholder
        assert views[Section.IMPORTS] == SectionView(fragments=[], elided=True)
        assert render_listing("a.rs", views) == (
            "// File: `a.rs`\n"
            "\n"
            "// Use ...\n"
            "\n"
            "// Code\n"
            "// ...\n"
            "fn b() {}\n"
        )

    def test_partial_view_equal_to_full_section_does_not_elide(self):
        state = _state(imports=["use a;"], code=["fn a() {}", "fn b() {}"])
        views = plan_view(state, {Section.IMPORTS: ["use a;"], Section.TEST_CODE: ["    fn t() {}"]})
        assert not views[Section.IMPORTS].elided
        # The file holds no test code yet, so this isn't everything
        assert views[Section.TEST_CODE].elided
        assert render_listing("a.rs", views) == (
            "// File: `a.rs`\n"
            "\n"
            "use a;\n"
            "\n"
            "// Code\n"
            "// ...\n"
            "\n"
            "#[cfg(test)]\n"
            "mod tests {\n"
            "    // Test code\n"
            "    // ...\n"
            "    fn t() {}\n"
            "}\n"
        )

    def test_each_test_section_elides_independently(self):
        state = _state(test_imports=["    use super::*;"], test_code=["    fn t1() {}", "    fn t2() {}"])
        views = plan_view(state, {Section.TEST_IMPORTS: ["    use super::*;"], Section.TEST_CODE: ["    fn t2() {}"]})
        assert render_listing("a.rs", views) == (
            "// File: `a.rs`\n"
            "\n"
            "#[cfg(test)]\n"
            "mod tests {\n"
            "    // Test use\n"
            "    use super::*;\n"
            "\n"
            "    // Test code\n"
            "    // ...\n"
            "    fn t2() {}\n"
            "}\n"
        )

    def test_layout_fence(self):
        assert RUST_LAYOUT.fence("fn a() {}\n") == "```rust\nfn a() {}\n```\n"

    def test_partial_view_placeholders_for_every_other_section(self):
        state = _state(
            module_docs=["//! Docs"],
            mod_declarations=["mod a;"],
            imports=["use a::A;"],
            code=["fn f() {}"],
            test_code=["    fn t() {}"],
        )
        views = plan_view(state, {Section.CODE: ["fn g() {}"]})
        assert render_listing("a.rs", views) == (
            "// File: `a.rs`\n"
            "\n"
            "// Module docs ...\n"
            "\n"
            "// Mod ...\n"
            "\n"
            "// Use ...\n"
            "\n"
            "// Code\n"
            "// ...\n"
            "fn g() {}\n"
        )

    def test_partial_view_skips_empty_sections(self):
        state = _state(code=["fn f() {}", "fn g() {}"])
        views = plan_view(state, {Section.CODE: ["fn g() {}"]})
        assert list(views) == [Section.CODE]
