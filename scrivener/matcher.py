import re
from typing import Callable

from scrivener.section import Fragment

Matcher = Callable[[Fragment], bool]
Pattern = str | re.Pattern | Matcher


def as_matcher(pattern: Pattern) -> Matcher:
    """Strings are regular expressions searched anywhere in the fragment's text."""
    if isinstance(pattern, str):
        pattern = re.compile(pattern)
    if isinstance(pattern, re.Pattern):
        compiled = pattern
        return lambda fragment: compiled.search(fragment) is not None
    if callable(pattern):
        return pattern
    raise TypeError(f"Cannot match fragments against {pattern!r}")


def describe_pattern(pattern: Pattern) -> str:
    if isinstance(pattern, str):
        return f"/{pattern}/"
    if isinstance(pattern, re.Pattern):
        return f"/{pattern.pattern}/"
    return getattr(pattern, "__name__", repr(pattern))


def find_fragment(fragments: list[Fragment], matcher: Matcher) -> int | None:
    # First match wins
    for i, fragment in enumerate(fragments):
        if matcher(fragment):
            return i
    return None


class TestMatcher:
    def test_string_is_a_regex_search(self):
        matcher = as_matcher(r"fn b\(")
        assert matcher("pub fn b() {}")
        assert not matcher("fn a() {}")

    def test_compiled_pattern(self):
        matcher = as_matcher(re.compile("^use", re.MULTILINE))
        assert matcher("// comment\nuse std::fmt;")

    def test_predicate(self):
        matcher = as_matcher(lambda fragment: fragment.startswith("#[test]"))
        assert matcher("#[test]\nfn t() {}")
        assert not matcher("fn t() {}")

    def test_find_first_match(self):
        fragments = ["fn a() {}", "fn b() {}", "fn b() { 2 }"]
        assert find_fragment(fragments, as_matcher("fn b")) == 1
        assert find_fragment(fragments, as_matcher("fn c")) is None

    def test_describe_pattern(self):
        assert describe_pattern("fn a") == "/fn a/"
        assert describe_pattern(re.compile("fn a")) == "/fn a/"

        def is_main(fragment: str) -> bool:
            return "fn main" in fragment

        assert describe_pattern(is_main) == "is_main"
