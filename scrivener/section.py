from enum import Enum
from typing import Iterable, Mapping, Self

Fragment = str


class Section(Enum):
    MODULE_DOCS = "module_docs"
    MOD_DECLARATIONS = "mod_declarations"
    IMPORTS = "imports"
    CODE = "code"
    TEST_IMPORTS = "test_imports"
    TEST_CODE = "test_code"

    @classmethod
    def from_str(cls, s: str) -> Self:
        # Directive documents may use the short names
        short_names = {
            "mod": Section.MOD_DECLARATIONS,
            "use": Section.IMPORTS,
            "test_use": Section.TEST_IMPORTS,
        }
        if s in short_names:
            return short_names[s]
        try:
            return cls(s)
        except ValueError:
            raise ValueError(f"Unknown section {s!r}, expected one of {[section.value for section in cls]}")

    @property
    def is_test(self) -> bool:
        return self in (Section.TEST_IMPORTS, Section.TEST_CODE)


# The order in which sections appear in a rendered file
CANONICAL_ORDER = [
    Section.MODULE_DOCS,
    Section.MOD_DECLARATIONS,
    Section.IMPORTS,
    Section.CODE,
    Section.TEST_IMPORTS,
    Section.TEST_CODE,
]


def normalize_fragments(fragments: Iterable[Fragment] | Fragment | None) -> list[Fragment]:
    """A lone string is one fragment. Empty fragments contribute nothing."""
    if fragments is None:
        return []
    if isinstance(fragments, str):
        fragments = [fragments]
    return [fragment for fragment in fragments if fragment]


def normalize_payloads(
    payloads: Mapping[Section | str, Iterable[Fragment] | Fragment | None] | None = None,
    **sections: Iterable[Fragment] | Fragment | None,
) -> dict[Section, list[Fragment]]:
    merged: dict[Section, list[Fragment]] = {}
    for key, value in [*(payloads or {}).items(), *sections.items()]:
        section = key if isinstance(key, Section) else Section.from_str(key)
        # Sections passed as None were not supplied at all
        if value is None:
            continue
        merged.setdefault(section, []).extend(normalize_fragments(value))
    return {section: merged[section] for section in CANONICAL_ORDER if section in merged}


class TestSection:
    def test_from_str(self):
        assert Section.from_str("code") == Section.CODE
        assert Section.from_str("use") == Section.IMPORTS
        assert Section.from_str("mod") == Section.MOD_DECLARATIONS
        assert Section.from_str("test_use") == Section.TEST_IMPORTS
        assert Section.from_str("test_imports") == Section.TEST_IMPORTS

    def test_from_str_unknown(self):
        import pytest

        with pytest.raises(ValueError, match="bogus"):
            Section.from_str("bogus")

    def test_normalize_payloads(self):
        payloads = normalize_payloads(
            {Section.TEST_CODE: ["    #[test]\n    fn t() {}"]},
            code="fn a() {}",
            use=["use std::fmt;", ""],
            module_docs=None,
        )
        # Canonical order, lone strings wrapped, empty fragments dropped, None sections omitted
        assert list(payloads.items()) == [
            (Section.IMPORTS, ["use std::fmt;"]),
            (Section.CODE, ["fn a() {}"]),
            (Section.TEST_CODE, ["    #[test]\n    fn t() {}"]),
        ]

    def test_empty_payload_is_kept_as_empty_section(self):
        assert normalize_payloads(code="") == {Section.CODE: []}
