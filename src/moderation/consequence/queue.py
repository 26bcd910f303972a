"""Consequences that record moderation outcomes on the queue."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from moderation.consequence.base import Consequence, ConsequenceContext
from moderation.models.result import ConsequenceResult


@dataclass(frozen=True)
class MarkAsMergedConsequence(Consequence):
    """Record that a pending change was applied as revision *rev_id*.

    Also clears the conflict flag.  ``value["changed"]`` is 0 if the
    change was already merged.
    """

    pending_id: int
    rev_id: int

    def run(self, context: ConsequenceContext) -> ConsequenceResult:
        changed = context.changes.mark_merged(self.pending_id, self.rev_id)
        return ConsequenceResult.good(changed=changed)


@dataclass(frozen=True)
class MarkAsConflictConsequence(Consequence):
    """Flag a pending change as needing manual conflict resolution."""

    pending_id: int

    def run(self, context: ConsequenceContext) -> ConsequenceResult:
        changed = context.changes.mark_conflict(self.pending_id)
        return ConsequenceResult.good(changed=changed)


@dataclass(frozen=True)
class RejectOneConsequence(Consequence):
    """Mark one unresolved pending change as rejected by *moderator*."""

    pending_id: int
    moderator: str
    # Excluded from equality so recorded consequences compare by intent
    at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc).replace(tzinfo=None),
        compare=False,
    )

    def run(self, context: ConsequenceContext) -> ConsequenceResult:
        changed = context.changes.mark_rejected(self.pending_id, self.moderator, self.at)
        return ConsequenceResult.good(changed=changed)
