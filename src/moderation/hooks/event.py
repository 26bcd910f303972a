"""Phase event delivered to document-store pipeline listeners."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from moderation.models.change import ChangeKind
from moderation.protocols import Phase

if TYPE_CHECKING:
    from moderation.storage.schema import (
        ChangeTrackingRow,
        LogEntryRow,
        RecentChangeRow,
        RevisionRow,
    )


@dataclass(frozen=True)
class PhaseEvent:
    """One write passing through a pipeline phase.

    The event itself is immutable; the rows it references are the records
    about to be (PRE_FINALIZE) or just (POST_FINALIZE) persisted, and
    PRE_FINALIZE listeners may mutate them.

    Attributes:
        phase: Pipeline phase that fired.
        document: Title the write is attributed to (source title for moves).
        author: Name of the writing author.
        kind: ChangeKind of the write.
        revisions: New revisions, primary first (a move with redirect has two).
        recent_change: Recent-changes row of this write, if any.
        tracking: Change-tracking audit row of this write, if any.
        log_entry: Log row (moves only).
        previous_timestamp: Timestamp of the document's latest revision
            before this write, None for a new document.
    """

    phase: Phase
    document: str
    author: str
    kind: ChangeKind
    revisions: tuple[RevisionRow, ...] = ()
    recent_change: RecentChangeRow | None = None
    tracking: ChangeTrackingRow | None = None
    log_entry: LogEntryRow | None = None
    previous_timestamp: datetime | None = field(default=None)

    @property
    def revision(self) -> RevisionRow | None:
        return self.revisions[0] if self.revisions else None

    @property
    def rev_id(self) -> int | None:
        rev = self.revision
        return rev.rev_id if rev is not None else None

    @property
    def log_id(self) -> int | None:
        return self.log_entry.log_id if self.log_entry is not None else None

    @property
    def rc_id(self) -> int | None:
        return self.recent_change.rc_id if self.recent_change is not None else None
