"""CLI tests for moderation -- exercises every command via Click's CliRunner.

Each test uses runner.isolated_filesystem() with file-backed databases
since the CLI opens its own connection (separate from SDK setup).
"""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from moderation.cli import cli

DB = "mod.db"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def runner():
    """Create a Click test runner."""
    return CliRunner()


def _setup_queue(db_path: str) -> list[int]:
    """Seed a document and queue two edits by Alice and one by Bob."""
    from moderation.moderation import Moderation

    m = Moderation.open(path=db_path)
    m.store.create_document("Page", "a\nb\nc", "", m.store.author("Carol"))
    ids = [
        m.queue_edit("Page", "A\nb\nc", "Alice", comment="capitalize").pending_id,
        m.queue_edit("Other", "new page", "Alice").pending_id,
        m.queue_edit("Page", "a\nb\nC", "Bob").pending_id,
    ]
    m.close()
    return ids


def _status(db_path: str, pending_id: int) -> str:
    from moderation.moderation import Moderation

    m = Moderation.open(path=db_path)
    try:
        return str(m.get(pending_id).status)
    finally:
        m.close()


# ---------------------------------------------------------------------------
# show
# ---------------------------------------------------------------------------

class TestShow:
    def test_lists_queue(self, runner):
        with runner.isolated_filesystem():
            _setup_queue(DB)
            result = runner.invoke(cli, ["--db", DB, "show"])
            assert result.exit_code == 0, result.output
            assert "Alice" in result.output
            assert "Bob" in result.output

    def test_filter_by_author(self, runner):
        with runner.isolated_filesystem():
            _setup_queue(DB)
            result = runner.invoke(cli, ["--db", DB, "show", "--author", "Bob"])
            assert result.exit_code == 0
            assert "Alice" not in result.output

    def test_single_change(self, runner):
        with runner.isolated_filesystem():
            ids = _setup_queue(DB)
            result = runner.invoke(cli, ["--db", DB, "show", str(ids[0])])
            assert result.exit_code == 0
            assert "capitalize" in result.output
            assert "pending" in result.output

    def test_single_change_shows_diff(self, runner):
        with runner.isolated_filesystem():
            ids = _setup_queue(DB)
            result = runner.invoke(cli, ["--db", DB, "show", str(ids[0])])
            assert result.exit_code == 0, result.output
            assert "-a" in result.output
            assert "+A" in result.output
            assert "@@" in result.output

    def test_new_document_diffs_against_empty(self, runner):
        with runner.isolated_filesystem():
            ids = _setup_queue(DB)
            result = runner.invoke(cli, ["--db", DB, "show", str(ids[1])])
            assert result.exit_code == 0, result.output
            assert "+new page" in result.output

    def test_null_edit_notice(self, runner):
        from moderation.moderation import Moderation

        with runner.isolated_filesystem():
            _setup_queue(DB)
            m = Moderation.open(path=DB)
            pending_id = m.queue_edit("Page", "a\nb\nc", "Alice").pending_id
            m.close()
            result = runner.invoke(cli, ["--db", DB, "show", str(pending_id)])
            assert result.exit_code == 0, result.output
            assert "No changes (null edit)." in result.output

    def test_no_diff_flag(self, runner):
        with runner.isolated_filesystem():
            ids = _setup_queue(DB)
            result = runner.invoke(cli, ["--db", DB, "show", "--no-diff", str(ids[0])])
            assert result.exit_code == 0
            assert "+A" not in result.output

    def test_show_changes_nothing(self, runner):
        from moderation.moderation import Moderation

        with runner.isolated_filesystem():
            ids = _setup_queue(DB)
            for pending_id in ids:
                assert runner.invoke(cli, ["--db", DB, "show", str(pending_id)]).exit_code == 0
            assert [_status(DB, pending_id) for pending_id in ids] == ["pending"] * 3
            m = Moderation.open(path=DB)
            try:
                assert [r.text for r in m.store.history("Page")] == ["a\nb\nc"]
                assert not m.store.exists("Other")
            finally:
                m.close()

    def test_db_from_environment(self, runner):
        with runner.isolated_filesystem():
            _setup_queue(DB)
            result = runner.invoke(cli, ["show"], env={"MODERATION_DB": DB})
            assert result.exit_code == 0
            assert "Alice" in result.output

    def test_missing_database(self, runner):
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["--db", "absent.db", "show"])
            assert result.exit_code == 1
            assert "Database not found" in result.output

    def test_unknown_change(self, runner):
        with runner.isolated_filesystem():
            _setup_queue(DB)
            result = runner.invoke(cli, ["--db", DB, "show", "999"])
            assert result.exit_code == 1
            assert "Pending change not found" in result.output


# ---------------------------------------------------------------------------
# approve / approve-all
# ---------------------------------------------------------------------------

class TestApprove:
    def test_approve(self, runner):
        with runner.isolated_filesystem():
            ids = _setup_queue(DB)
            result = runner.invoke(cli, ["--db", DB, "approve", str(ids[0])])
            assert result.exit_code == 0, result.output
            assert f"Approved #{ids[0]}" in result.output
            assert _status(DB, ids[0]) == "merged"

    def test_approve_twice_fails(self, runner):
        with runner.isolated_filesystem():
            ids = _setup_queue(DB)
            runner.invoke(cli, ["--db", DB, "approve", str(ids[0])])
            result = runner.invoke(cli, ["--db", DB, "approve", str(ids[0])])
            assert result.exit_code == 1
            assert "already merged" in result.output

    def test_approve_conflict_exit_code(self, runner):
        with runner.isolated_filesystem():
            from moderation.moderation import Moderation

            m = Moderation.open(path=DB)
            m.store.create_document("Page", "a\nb\nc", "", m.store.author("Carol"))
            first = m.queue_edit("Page", "a\nX\nc", "Alice").pending_id
            second = m.queue_edit("Page", "a\nY\nc", "Bob").pending_id
            m.close()

            assert runner.invoke(cli, ["--db", DB, "approve", str(first)]).exit_code == 0
            result = runner.invoke(cli, ["--db", DB, "approve", str(second)])
            assert result.exit_code == 1
            assert "merge-conflict" in result.output

    def test_approve_all(self, runner):
        with runner.isolated_filesystem():
            ids = _setup_queue(DB)
            result = runner.invoke(cli, ["--db", DB, "approve-all", "Alice"])
            assert result.exit_code == 0, result.output
            assert _status(DB, ids[0]) == "merged"
            assert _status(DB, ids[1]) == "merged"
            assert _status(DB, ids[2]) == "pending"

    def test_approve_all_nothing_pending(self, runner):
        with runner.isolated_filesystem():
            _setup_queue(DB)
            result = runner.invoke(cli, ["--db", DB, "approve-all", "Nobody"])
            assert result.exit_code == 0
            assert "No pending changes" in result.output


# ---------------------------------------------------------------------------
# reject
# ---------------------------------------------------------------------------

class TestReject:
    def test_reject(self, runner):
        with runner.isolated_filesystem():
            ids = _setup_queue(DB)
            result = runner.invoke(cli, ["--db", DB, "reject", str(ids[2]), "--moderator", "Mod"])
            assert result.exit_code == 0, result.output
            assert _status(DB, ids[2]) == "rejected"

    def test_moderator_from_environment(self, runner):
        with runner.isolated_filesystem():
            ids = _setup_queue(DB)
            result = runner.invoke(cli, ["--db", DB, "reject", str(ids[2])], env={"MODERATION_USER": "Mod"})
            assert result.exit_code == 0, result.output

    def test_reject_requires_moderator(self, runner):
        with runner.isolated_filesystem():
            ids = _setup_queue(DB)
            result = runner.invoke(cli, ["--db", DB, "reject", str(ids[2])], env={"MODERATION_USER": None})
            assert result.exit_code == 2
