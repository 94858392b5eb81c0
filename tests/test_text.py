"""Tests for the text and timestamp helpers."""

from datetime import datetime

from boardstore.utils import clean_labels, from_iso, new_id, now_iso, to_iso, truncate


class TestTruncate:
    def test_short_value_unchanged(self):
        assert truncate("hello", 10) == "hello"

    def test_long_value_cut(self):
        assert truncate("hello world", 5) == "hello"

    def test_none_becomes_empty(self):
        assert truncate(None, 10) == ""


class TestCleanLabels:
    def test_strips_and_drops_blank(self):
        assert clean_labels([" a ", "", "   ", "b"], 10, 10) == ["a", "b"]

    def test_cuts_each_label(self):
        assert clean_labels(["abcdef"], 10, 3) == ["abc"]

    def test_caps_count(self):
        assert clean_labels(["a", "b", "c"], 2, 10) == ["a", "b"]

    def test_zero_cap_keeps_nothing(self):
        assert clean_labels(["a", "b"], 0, 10) == []

    def test_keeps_duplicates(self):
        assert clean_labels(["a", "a"], 10, 10) == ["a", "a"]

    def test_ignores_non_strings(self):
        assert clean_labels(["a", 3, None], 10, 10) == ["a"]

    def test_empty(self):
        assert clean_labels(None, 10, 10) == []


class TestIdsAndTimestamps:
    def test_new_ids_are_unique(self):
        assert new_id() != new_id()

    def test_now_iso_format(self):
        value = now_iso()
        assert value.endswith("Z")
        assert to_iso(from_iso(value)) == value

    def test_to_iso_treats_naive_as_utc(self):
        assert to_iso(datetime(2025, 1, 15, 10, 30)) == "2025-01-15T10:30:00.000Z"

    def test_from_iso_accepts_z_suffix(self):
        assert from_iso("2025-01-15T10:30:00Z").utcoffset().total_seconds() == 0
