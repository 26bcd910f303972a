"""Tests for display helpers."""

from __future__ import annotations

from datetime import datetime
from io import StringIO

from moderation.diff import ChangeDiff, compute_change_diff
from moderation.formatting import format_timestamp, pprint_change_diff, pprint_pending, pprint_result
from moderation.models.result import ConsequenceResult, FailureKind
from tests.conftest import make_moderation

NOW = datetime(2024, 3, 5, 18, 0)


class TestFormatTimestamp:
    def test_same_day_shows_time_only(self):
        assert format_timestamp(datetime(2024, 3, 5, 9, 7), NOW) == "09:07"

    def test_other_day_shows_date(self):
        assert format_timestamp(datetime(2024, 3, 4, 23, 59), NOW) == "23:59, 4 March 2024"

    def test_other_year(self):
        assert format_timestamp(datetime(2023, 12, 25, 8, 0), NOW) == "08:00, 25 December 2023"


class TestPprint:
    def test_result_ok(self):
        buf = StringIO()
        pprint_result(ConsequenceResult.good(rev_id=3), file=buf)
        assert "rev_id=3" in buf.getvalue()

    def test_result_failure(self):
        buf = StringIO()
        pprint_result(ConsequenceResult.fatal(FailureKind.MERGE_CONFLICT, "clash"), file=buf)
        out = buf.getvalue()
        assert "merge-conflict" in out
        assert "clash" in out

    def test_empty_queue(self):
        buf = StringIO()
        pprint_pending([], file=buf)
        assert "No pending changes" in buf.getvalue()

    def test_queue_table(self):
        mod = make_moderation()
        try:
            mod.queue_edit("Page", "t", "Alice", comment="please review", timestamp=datetime(2024, 3, 5, 9, 7))
            buf = StringIO()
            pprint_pending(mod.pending(), file=buf, now=NOW)
            out = buf.getvalue()
            assert "Page" in out
            assert "Alice" in out
            assert "09:07" in out
        finally:
            mod.close()


class TestPprintChangeDiff:
    def test_colored_hunks(self):
        buf = StringIO()
        pprint_change_diff(compute_change_diff(4, "Page", "a\nb", "a\nB", from_rev_id=2), file=buf)
        out = buf.getvalue()
        assert "--- Page r2" in out
        assert "+++ Page #4" in out
        assert "-b" in out
        assert "+B" in out
        assert "\x1b[" in out

    def test_null_edit(self):
        buf = StringIO()
        pprint_change_diff(compute_change_diff(4, "Page", "same", "same"), file=buf)
        assert "No changes (null edit)." in buf.getvalue()

    def test_move(self):
        buf = StringIO()
        pprint_change_diff(ChangeDiff(pending_id=4, document="Page", nodiff_reason="move"), file=buf)
        assert "Rename only" in buf.getvalue()

    def test_trailing_newline_is_a_change(self):
        diff = compute_change_diff(4, "Page", "text", "text\n")
        assert not diff.null_edit
        assert diff.diff_lines
