"""Tests for the PendingChange review handle."""

from __future__ import annotations

from moderation import ChangeStatus
from tests.conftest import make_moderation


class TestPendingChange:
    def test_approve_refreshes_snapshot(self):
        mod = make_moderation()
        try:
            change = mod.queue_edit("Page", "text", "Alice")
            result = change.approve()
            assert result.ok
            assert change.last_result is result
            assert change.status is ChangeStatus.MERGED
            assert change.info.merged_rev_id == result.rev_id
        finally:
            mod.close()

    def test_reject(self):
        mod = make_moderation()
        try:
            change = mod.queue_edit("Page", "text", "Alice")
            change.reject("Mod")
            assert change.status is ChangeStatus.REJECTED
        finally:
            mod.close()

    def test_to_dict(self):
        mod = make_moderation()
        try:
            change = mod.queue_edit("Page", "text", "Alice", tags="a")
            data = change.to_dict()
            assert data["status"] == "pending"
            assert data["tags"] == ["a"]
            assert data["kind"] == "edit"
        finally:
            mod.close()

    def test_repr(self):
        mod = make_moderation()
        try:
            change = mod.queue_edit("Page", "text", "Alice")
            assert repr(change) == f"<PendingChange: #{change.pending_id} edit, pending>"
        finally:
            mod.close()

    def test_review_approve(self, capsys):
        mod = make_moderation()
        try:
            change = mod.queue_edit("Page", "text", "Alice")
            answers = iter(["maybe", "approve"])
            change.review("Mod", prompt_fn=lambda _: next(answers))
            assert change.status is ChangeStatus.MERGED
            assert "Enter 'approve'" in capsys.readouterr().out
        finally:
            mod.close()

    def test_review_skip(self):
        mod = make_moderation()
        try:
            change = mod.queue_edit("Page", "text", "Alice")
            change.review("Mod", prompt_fn=lambda _: "skip")
            assert change.status is ChangeStatus.PENDING
        finally:
            mod.close()

    def test_review_reject(self):
        mod = make_moderation()
        try:
            change = mod.queue_edit("Page", "text", "Alice")
            change.review("Mod", prompt_fn=lambda _: "reject")
            assert change.info.rejected_by == "Mod"
        finally:
            mod.close()

    def test_pprint_prints_brackets_literally(self, capsys):
        mod = make_moderation()
        try:
            change = mod.queue_edit(
                "Page [draft]", "text", "Al[i]ce", comment="[red]urgent", tags="[b]x",
            )
            change.pprint()
            out = capsys.readouterr().out
            assert "Page [draft]" in out
            assert "Al[i]ce" in out
            assert "'[red]urgent'" in out
            assert "['[b]x']" in out
        finally:
            mod.close()
