from dataclasses import dataclass, field

from scrivener.section import CANONICAL_ORDER, Fragment, Section

Filename = str


@dataclass
class FileState:
    sections: dict[Section, list[Fragment]] = field(
        default_factory=lambda: {section: [] for section in CANONICAL_ORDER}
    )

    def fragments(self, section: Section) -> list[Fragment]:
        return self.sections[section]

    def has_test_content(self) -> bool:
        return any(self.sections[section] for section in CANONICAL_ORDER if section.is_test)


class FragmentStore:
    """Accumulated fragments for every file referenced during an authoring session."""

    def __init__(self) -> None:
        self.files: dict[Filename, FileState] = dict()

    def __contains__(self, filename: Filename) -> bool:
        return filename in self.files

    def filenames(self) -> list[Filename]:
        return list(self.files)

    def get_or_create(self, filename: Filename) -> FileState:
        if filename not in self.files:
            self.files[filename] = FileState()
        return self.files[filename]

    def read(self, filename: Filename, section: Section) -> list[Fragment]:
        return list(self.get_or_create(filename).fragments(section))

    def write_append(self, filename: Filename, section: Section, fragments: list[Fragment]) -> None:
        self.get_or_create(filename).fragments(section).extend(fragments)

    def write_prepend(self, filename: Filename, section: Section, fragments: list[Fragment]) -> None:
        state = self.get_or_create(filename)
        state.sections[section] = [*fragments, *state.fragments(section)]

    def write_replace(self, filename: Filename, section: Section, index: int, fragment: Fragment) -> None:
        self.get_or_create(filename).fragments(section)[index] = fragment


class TestFragmentStore:
    def test_unknown_file_is_empty(self):
        store = FragmentStore()
        assert "src/lib.rs" not in store
        assert store.read("src/lib.rs", Section.CODE) == []
        # Reading creates the record
        assert "src/lib.rs" in store
        assert all(fragments == [] for fragments in store.get_or_create("src/lib.rs").sections.values())

    def test_append_and_prepend_preserve_order(self):
        store = FragmentStore()
        store.write_append("a.rs", Section.IMPORTS, ["use b;"])
        store.write_append("a.rs", Section.IMPORTS, ["use c;", "use d;"])
        store.write_prepend("a.rs", Section.IMPORTS, ["use a;", "use a2;"])
        assert store.read("a.rs", Section.IMPORTS) == ["use a;", "use a2;", "use b;", "use c;", "use d;"]
        assert store.read("a.rs", Section.CODE) == []

    def test_replace_in_place(self):
        store = FragmentStore()
        store.write_append("a.rs", Section.CODE, ["A", "B", "C"])
        store.write_replace("a.rs", Section.CODE, 1, "D")
        assert store.read("a.rs", Section.CODE) == ["A", "D", "C"]

    def test_read_returns_a_copy(self):
        store = FragmentStore()
        store.write_append("a.rs", Section.CODE, ["A"])
        store.read("a.rs", Section.CODE).append("B")
        assert store.read("a.rs", Section.CODE) == ["A"]

    def test_filenames_in_first_reference_order(self):
        store = FragmentStore()
        store.get_or_create("b.rs")
        store.write_append("a.rs", Section.CODE, ["A"])
        store.get_or_create("b.rs")
        assert store.filenames() == ["b.rs", "a.rs"]
