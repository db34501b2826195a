"""
Property-based tests for FileFilter.

Covers the extension policy, the title id policy, their independent
overrides, and idempotence of filtering.
"""

import re

from hypothesis import given, settings
from hypothesis import strategies as st

from tfindex.core.scanner import FileDescriptor, FileFilter, ParsedFile, percent_encode

# Strategies for generating test data

title_id = st.from_regex(r"[0-9A-Fa-f]{16}", fullmatch=True)

stem = st.text(
    alphabet=st.characters(blacklist_categories=("Cs",)),
    min_size=0,
    max_size=30,
)

extension = st.sampled_from([".nsp", ".nsz", ".xci", ".xcz", ".NSP", ".Xcz", ".txt", ".zip", ""])

toggles = st.tuples(st.booleans(), st.booleans())

RAW_TITLE_ID = re.compile(r"\[[0-9A-Fa-f]{16}\]")


def parsed(name: str, file_id: str = "id") -> ParsedFile:
    return ParsedFile(FileDescriptor(id=file_id, name=name, size="1"))


@st.composite
def file_names(draw):
    """Names that sometimes carry a valid bracketed title id."""
    base = draw(stem)
    if draw(st.booleans()):
        base = f"{base}[{draw(title_id)}]"
    return base + draw(extension)


@given(names=st.lists(file_names(), max_size=20), flags=toggles)
@settings(max_examples=100, deadline=None)
def test_filter_is_idempotent(names, flags):
    """Applying the filter twice yields the same result as applying it once."""
    file_filter = FileFilter(allow_any_extension=flags[0], allow_missing_title_id=flags[1])
    files = [parsed(name, f"id{i}") for i, name in enumerate(names)]

    once = file_filter.apply(files)
    twice = file_filter.apply(once)

    assert twice == once


@given(names=st.lists(file_names(), max_size=20))
@settings(max_examples=100, deadline=None)
def test_both_overrides_accept_everything(names):
    """With both policies overridden the predicate is always true."""
    file_filter = FileFilter(allow_any_extension=True, allow_missing_title_id=True)
    files = [parsed(name) for name in names]

    assert file_filter.apply(files) == files


@given(name=file_names())
@settings(max_examples=200, deadline=None)
def test_title_id_detection_matches_raw_name(name):
    """
    The percent-encoded pattern matches exactly when the display name holds
    a bracketed 16-hex-digit token.
    """
    file_filter = FileFilter()

    assert file_filter.has_title_id(parsed(name)) == bool(RAW_TITLE_ID.search(name))


@given(base=stem, tid=title_id, ext=st.sampled_from([".nsp", ".nsz", ".xci", ".xcz"]))
@settings(max_examples=100, deadline=None)
def test_extension_check_is_case_insensitive(base, tid, ext):
    file_filter = FileFilter()
    name = f"{base}[{tid}]"

    assert file_filter(parsed(name + ext.upper()))
    assert file_filter(parsed(name + ext.lower()))


@given(name=stem)
@settings(max_examples=100, deadline=None)
def test_percent_encoding_keeps_only_alphanumerics(name):
    encoded = percent_encode(name)

    assert re.fullmatch(r"(?:[A-Za-z0-9]|%[0-9A-F]{2})*", encoded)


class TestDefaultPolicies:
    """Example-based checks of the default policies."""

    def test_valid_title_id_passes(self):
        assert FileFilter()(parsed("Game[0123456789ABCDEF].nsp"))

    def test_missing_title_id_rejected(self):
        assert not FileFilter()(parsed("Game.nsp"))

    def test_missing_title_id_allowed_with_override(self):
        assert FileFilter(allow_missing_title_id=True)(parsed("Game.nsp"))

    def test_wrong_extension_rejected(self):
        assert not FileFilter()(parsed("Game[0123456789ABCDEF].txt"))

    def test_wrong_extension_allowed_with_override(self):
        assert FileFilter(allow_any_extension=True)(parsed("Game[0123456789ABCDEF].txt"))

    def test_extension_override_still_checks_title_id(self):
        assert not FileFilter(allow_any_extension=True)(parsed("notes.txt"))

    def test_short_names_do_not_raise(self):
        file_filter = FileFilter()

        for name in ["", "a", "ab", "nsp"]:
            assert not file_filter(parsed(name))

    def test_short_title_id_rejected(self):
        assert not FileFilter()(parsed("Game[0123456789ABCDE].nsp"))

    def test_non_hex_title_id_rejected(self):
        assert not FileFilter()(parsed("Game[0123456789ABCDEG].nsp"))

    def test_unicode_name_with_title_id(self):
        file = parsed("ゼルダの伝説 [01006BB00C6F0000][v0].nsp")

        assert FileFilter()(file)
        assert file.name_encoded.startswith("%E3%82%BC")

    def test_locator_uses_percent_encoded_name(self):
        file = parsed("Game [0123456789ABCDEF].nsp", file_id="abc")

        assert file.locator == "gdrive:abc#Game%20%5B0123456789ABCDEF%5D%2Ensp"

    def test_custom_extensions(self):
        file_filter = FileFilter(allow_missing_title_id=True, extensions=[".ZIP"])

        assert file_filter(parsed("archive.zip"))
        assert not file_filter(parsed("game.nsp"))
