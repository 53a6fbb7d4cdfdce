"""Tests for read, search and show_context."""

from pathlib import Path

import pytest

from sft_smalledit import (
    FileSnapshot,
    InvalidArgumentError,
    OutOfRangeError,
    PatternSyntaxError,
    _read_impl,
    _search_impl,
    _show_context_impl,
    compile_pattern,
    find_matches,
)


class TestFindMatches:
    def test_one_record_per_matching_line(self, workdir: Path):
        f = workdir / "f.txt"
        f.write_text("foo foo\nbar\nfoo\n")
        snapshot = FileSnapshot.read(f)

        matches = find_matches(snapshot, compile_pattern("foo"), context=1)

        assert [m.line_index for m in matches] == [1, 3]
        assert (matches[0].context_start, matches[0].context_end) == (1, 2)
        assert (matches[1].context_start, matches[1].context_end) == (2, 3)

    def test_never_matches_across_lines(self, workdir: Path):
        f = workdir / "f.txt"
        f.write_text("foo\nbar\n")

        assert find_matches(FileSnapshot.read(f), compile_pattern(r"foo\nbar")) == []


class TestSearch:
    def test_marks_matching_line(self, numbered):
        """
        Given a 10-line file
        When searching for "line 5" with context 1
        Then lines 4-6 are shown and line 5 carries the >>> marker
        """
        f = numbered(count=10)

        result = _search_impl(str(f), "line 5$", context=1)

        assert ">>>    5|line 5" in result
        assert "       4|line 4" in result
        assert "       6|line 6" in result
        assert "line 7" not in result

    def test_overlapping_matches_get_separate_blocks(self, numbered):
        f = numbered(count=5)

        result = _search_impl(str(f), "line [23]", context=2)

        assert result.count("Match at line") == 2
        assert "--" in result

    def test_case_insensitive(self, numbered):
        f = numbered(count=3)

        assert "No matches" in _search_impl(str(f), "LINE 1")
        assert "1 match(es)" in _search_impl(str(f), "LINE 1", case_insensitive=True)

    def test_bad_pattern(self, numbered):
        with pytest.raises(PatternSyntaxError):
            _search_impl(str(numbered()), "[unclosed")

    def test_negative_context(self, numbered):
        with pytest.raises(InvalidArgumentError):
            _search_impl(str(numbered()), "line", context=-1)


class TestRead:
    def test_whole_file(self, numbered):
        f = numbered(count=3)

        result = _read_impl(str(f))

        assert "       1|line 1" in result
        assert "       3|line 3" in result

    def test_line_range(self, numbered):
        f = numbered(count=10)

        result = _read_impl(str(f), lines="8,$")

        assert "line 7" not in result
        assert "      10|line 10" in result

    def test_search_within_range(self, numbered):
        f = numbered(count=20)

        result = _read_impl(str(f), lines="1,9", search=r"line 1\d", context=0)

        assert "No matches" in result

    def test_range_past_end(self, numbered):
        with pytest.raises(OutOfRangeError):
            _read_impl(str(numbered(count=3)), lines="2,4")

    def test_empty_file(self, workdir: Path):
        (workdir / "empty.txt").write_text("")

        assert "empty file" in _read_impl("empty.txt")


class TestShowContext:
    def test_window_clamped_at_start(self, numbered):
        f = numbered(count=20)

        result = _show_context_impl(str(f), 2, context=5)

        assert "lines 1-7 of 20" in result
        assert ">>>    2|line 2" in result

    def test_line_past_end(self, numbered):
        with pytest.raises(OutOfRangeError):
            _show_context_impl(str(numbered(count=3)), 4)

    def test_missing_file(self):
        with pytest.raises(FileNotFoundError):
            _show_context_impl("nope.txt", 1)
