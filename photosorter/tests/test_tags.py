"""Tests for photosorter.core.tags module."""

from photosorter.core.tags import (
    normalize_tag,
    tags_equal,
    contains_tag,
    sanitize_folder_name,
)


class TestNormalizeTag:
    """Tests for normalize_tag() function."""

    def test_trims_and_collapses_whitespace(self):
        assert normalize_tag("  Best   Man ") == "Best Man"

    def test_collapses_tabs_and_newlines(self):
        assert normalize_tag("Best\t\nMan") == "Best Man"

    def test_keeps_case(self):
        assert normalize_tag("yEs") == "yEs"

    def test_whitespace_only_is_empty(self):
        assert normalize_tag("   ") == ""

    def test_non_string_is_empty(self):
        assert normalize_tag(None) == ""
        assert normalize_tag(42) == ""


class TestTagComparison:
    """Tests for tags_equal() and contains_tag()."""

    def test_equal_ignores_case(self):
        assert tags_equal("Yes", "YES") is True

    def test_different_tags(self):
        assert tags_equal("Yes", "No") is False

    def test_contains_ignores_case(self):
        assert contains_tag(["Family", "Yes"], "family") is True

    def test_contains_missing(self):
        assert contains_tag(["Family"], "Friends") is False

    def test_contains_empty_list(self):
        assert contains_tag([], "Yes") is False


class TestSanitizeFolderName:
    """Tests for sanitize_folder_name() function."""

    def test_plain_tag_unchanged(self):
        assert sanitize_folder_name("Family") == "Family"

    def test_replaces_illegal_characters(self):
        assert sanitize_folder_name('Bride & Groom: "First Look"') == "Bride & Groom_ _First Look_"

    def test_replaces_slashes(self):
        assert sanitize_folder_name("a/b\\c") == "a_b_c"

    def test_replaces_control_characters(self):
        assert sanitize_folder_name("a\x01b") == "a_b"

    def test_strips_trailing_dots_and_spaces(self):
        assert sanitize_folder_name("Maybe. . ") == "Maybe"

    def test_reserved_device_name_prefixed(self):
        assert sanitize_folder_name("aux") == "_aux"
        assert sanitize_folder_name("CON") == "_CON"
        assert sanitize_folder_name("lpt1.txt") == "_lpt1.txt"

    def test_non_reserved_similar_name(self):
        assert sanitize_folder_name("console") == "console"

    def test_truncates_to_100_characters(self):
        result = sanitize_folder_name("x" * 150)
        assert len(result) == 100

    def test_truncation_strips_trailing_space(self):
        result = sanitize_folder_name("x" * 99 + " yyy")
        assert result == "x" * 99

    def test_empty_becomes_tag(self):
        assert sanitize_folder_name("") == "tag"
        assert sanitize_folder_name("...") == "tag"

    def test_case_preserved(self):
        assert sanitize_folder_name("Yes") == "Yes"
