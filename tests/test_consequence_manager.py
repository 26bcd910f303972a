"""Tests for ConsequenceManager and RecordingConsequenceManager."""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from moderation.consequence import (
    ApproveEditConsequence,
    Consequence,
    ConsequenceContext,
    ConsequenceManager,
    InstallApproveHookConsequence,
    RecordingConsequenceManager,
)
from moderation.exceptions import ConsequenceError
from moderation.models.author import Author
from moderation.models.change import ChangeKind
from moderation.models.overrides import OverrideBundle
from moderation.models.result import ConsequenceResult, FailureKind


@dataclass(frozen=True)
class AppendConsequence(Consequence):
    """Test consequence that appends its label to a shared list."""

    label: str
    log: list = field(compare=False, hash=False)

    def run(self, context: ConsequenceContext) -> ConsequenceResult:
        self.log.append(self.label)
        return ConsequenceResult.good(label=self.label)


@dataclass(frozen=True)
class FailingConsequence(Consequence):
    def run(self, context: ConsequenceContext) -> ConsequenceResult:
        return ConsequenceResult.fatal(FailureKind.STORE_REJECTED, "nope")


@pytest.fixture
def context(store, changes, hook) -> ConsequenceContext:
    return ConsequenceContext(store=store, changes=changes, approve_hook=hook)


class TestConsequenceManager:
    def test_runs_immediately_and_returns_result(self, context):
        log: list[str] = []
        manager = ConsequenceManager(context)
        result = manager.add(AppendConsequence("a", log))
        assert log == ["a"]
        assert result.ok
        assert result.value == {"label": "a"}

    def test_runs_in_submission_order(self, context):
        log: list[str] = []
        manager = ConsequenceManager(context)
        for label in ["first", "second", "third"]:
            manager.add(AppendConsequence(label, log))
        assert log == ["first", "second", "third"]
        assert [c.label for c in manager.consequences] == log

    def test_failure_is_a_value(self, context):
        manager = ConsequenceManager(context)
        result = manager.add(FailingConsequence())
        assert not result.ok
        assert result.failure is FailureKind.STORE_REJECTED
        assert not result.is_retryable

    def test_failure_does_not_undo_earlier_consequences(self, context):
        log: list[str] = []
        manager = ConsequenceManager(context)
        manager.add(AppendConsequence("kept", log))
        manager.add(FailingConsequence())
        assert log == ["kept"]

    def test_same_object_runs_at_most_once(self, context):
        log: list[str] = []
        manager = ConsequenceManager(context)
        consequence = AppendConsequence("once", log)
        manager.add(consequence)
        with pytest.raises(ConsequenceError):
            manager.add(consequence)
        assert log == ["once"]

    def test_equal_but_distinct_objects_both_run(self, context):
        log: list[str] = []
        manager = ConsequenceManager(context)
        manager.add(AppendConsequence("x", log))
        manager.add(AppendConsequence("x", log))
        assert log == ["x", "x"]

    def test_install_hook_consequence_registers_task(self, context, hook):
        manager = ConsequenceManager(context)
        consequence = InstallApproveHookConsequence(
            document="Page", author_name="Alice", kind=ChangeKind.EDIT,
            overrides=OverrideBundle(ip="10.0.0.1"),
        )
        assert manager.add(consequence).ok
        assert hook.get_task(consequence.key).ip == "10.0.0.1"

    def test_clear_keeps_guard(self, context):
        log: list[str] = []
        manager = ConsequenceManager(context)
        consequence = AppendConsequence("a", log)
        manager.add(consequence)
        manager.clear()
        assert manager.consequences == []
        with pytest.raises(ConsequenceError):
            manager.add(consequence)

    def test_fresh_consequences_run_after_clear(self, context):
        # Discarded consequences free their ids for reuse by new objects.
        log: list[str] = []
        manager = ConsequenceManager(context)
        for i in range(200):
            manager.add(AppendConsequence(str(i), log))
            manager.clear()
        assert log == [str(i) for i in range(200)]
        assert manager.consequences == []

    def test_fresh_recorded_consequences_after_clear(self):
        manager = RecordingConsequenceManager()
        for i in range(200):
            assert manager.add(AppendConsequence(str(i), [])).ok
            manager.clear()
        assert manager.consequences == []


class TestRecordingConsequenceManager:
    def test_records_without_running(self):
        log: list[str] = []
        manager = RecordingConsequenceManager()
        result = manager.add(AppendConsequence("a", log))
        assert log == []
        assert result.ok
        assert result.value == {}
        assert manager.consequences == [AppendConsequence("a", log)]

    def test_mocked_result(self):
        manager = RecordingConsequenceManager()
        manager.mock_result(ApproveEditConsequence, ConsequenceResult.good(rev_id=42))
        author = Author("Alice", frozenset({"edit"}))
        result = manager.add(ApproveEditConsequence(pending_id=1, author=author, document="P", text="t"))
        assert result.rev_id == 42

    def test_recorded_consequences_compare_by_value(self):
        manager = RecordingConsequenceManager()
        author = Author("Alice", frozenset({"edit"}))
        manager.add(ApproveEditConsequence(pending_id=1, author=author, document="P", text="t"))
        assert manager.consequences == [
            ApproveEditConsequence(pending_id=1, author=author, document="P", text="t")
        ]
