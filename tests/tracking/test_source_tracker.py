"""Tests for SourceBufferTracker revisions and change ranges."""

import pytest

from codementor.tracking import (
    LineRange,
    SourceBufferTracker,
    compute_changed_ranges,
    compute_text_edit,
    merge_ranges,
    normalize_ranges,
)


class TestRecordEdit:
    """Revision numbering and base selection."""

    def test_first_revision_marks_every_line(self, tracker):
        """With no history the whole text is changed."""
        rev = tracker.record_edit("a.py", "x = 1\ny = 2\n", language="python")
        assert rev.revision == 1
        assert rev.base_revision == 0
        assert rev.changed_ranges == (LineRange(1, 2),)
        assert rev.edit is None

    def test_revisions_increase(self, tracker):
        """Each distinct text gets the next revision number."""
        first = tracker.record_edit("a.py", "x = 1\n", language="python")
        second = tracker.record_edit("a.py", "x = 2\n")
        assert second.revision == first.revision + 1
        assert second.language == "python"

    def test_same_text_is_idempotent(self, tracker):
        """Recording unchanged text returns the current revision."""
        first = tracker.record_edit("a.py", "x = 1\n", language="python")
        again = tracker.record_edit("a.py", "x = 1\n", language="python")
        assert again is first

    def test_ranges_computed_against_last_analyzed(self, tracker):
        """Changes accumulate relative to the revision whose tree exists."""
        r1 = tracker.record_edit("a.py", "a\nb\nc\nd\n", language="python")
        tracker.mark_analyzed(r1)
        tracker.record_edit("a.py", "a\nB\nc\nd\n")
        r3 = tracker.record_edit("a.py", "a\nB\nc\nD\n")
        assert r3.base_revision == 1
        assert r3.changed_ranges == (LineRange(2, 2), LineRange(4, 4))

    def test_host_ranges_used_when_base_is_latest(self, tracker):
        """Host-supplied ranges are clamped and merged."""
        tracker.record_edit("a.py", "a\nb\nc\n", language="python")
        rev = tracker.record_edit("a.py", "a\nx\ny\n", changed_ranges=[(2, 2), (3, 9)])
        assert rev.changed_ranges == (LineRange(2, 4),)

    def test_host_ranges_ignored_when_base_is_older(self, tracker):
        """Ranges describing one step cannot be applied across several."""
        r1 = tracker.record_edit("a.py", "a\nb\nc\n", language="python")
        tracker.mark_analyzed(r1)
        tracker.record_edit("a.py", "A\nb\nc\n")
        rev = tracker.record_edit("a.py", "A\nb\nC\n", changed_ranges=[(3, 3)])
        assert rev.changed_ranges == (LineRange(1, 1), LineRange(3, 3))


class TestCurrency:
    """is_current / mark_analyzed semantics."""

    def test_newer_revision_supersedes(self, tracker):
        old = tracker.record_edit("a.py", "x = 1\n", language="python")
        new = tracker.record_edit("a.py", "x = 2\n")
        assert not tracker.is_current(old)
        assert tracker.is_current(new)

    def test_mark_analyzed_never_moves_backwards(self, tracker):
        r1 = tracker.record_edit("a.py", "x = 1\n", language="python")
        r2 = tracker.record_edit("a.py", "x = 2\n")
        assert tracker.mark_analyzed(r2)
        assert not tracker.mark_analyzed(r1)
        assert tracker.last_analyzed("a.py") is r2

    def test_forget(self, tracker):
        tracker.record_edit("a.py", "x\n", language="python")
        tracker.record_edit("b.py", "y\n", language="python")
        tracker.forget("a.py")
        assert tracker.tracked_files() == ["b.py"]
        assert tracker.latest("a.py") is None


class TestDiffHelpers:
    """Line and byte diffing."""

    def test_insertion(self):
        assert compute_changed_ranges("a\nb\n", "a\nnew\nb\n") == (LineRange(2, 2),)

    def test_deletion_marks_seam(self):
        ranges = compute_changed_ranges("a\nb\nc\n", "a\nc\n")
        assert ranges == (LineRange(1, 2),)

    def test_identical_text(self):
        assert compute_changed_ranges("a\n", "a\n") == ()

    def test_merge_adjacent(self):
        merged = merge_ranges([LineRange(5, 6), LineRange(1, 2), LineRange(3, 3)])
        assert merged == (LineRange(1, 3), LineRange(5, 6))

    def test_normalize_clamps(self):
        assert normalize_ranges([(0, 100)], 4) == (LineRange(1, 4),)

    def test_text_edit_points(self):
        edit = compute_text_edit("ab\ncd\n", "ab\nXd\n")
        assert edit.start_byte == 3
        assert edit.old_end_byte == 4
        assert edit.new_end_byte == 4
        assert edit.start_point == (1, 0)
        assert edit.new_end_point == (1, 1)

    def test_text_edit_with_lone_surrogate(self):
        edit = compute_text_edit("a = '\ud800'\nb = 1\n", "a = '\ud800'\nb = 2\n")
        assert edit.start_byte == 14
        assert edit.start_point == (1, 4)

    def test_text_edit_identical(self):
        assert compute_text_edit("same", "same") is None

    def test_invalid_range(self):
        with pytest.raises(ValueError):
            LineRange(3, 2)
