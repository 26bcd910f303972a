"""Pending change domain models.

ChangeKind enumerates the kinds of moderated changes.
PendingChangeInfo is the SDK-facing snapshot of one pending_changes row.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ChangeKind(str, enum.Enum):
    """Kinds of queued changes."""

    EDIT = "edit"
    MOVE = "move"

    def __repr__(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value


class ChangeStatus(str, enum.Enum):
    """Lifecycle status of a pending change, derived from its row."""

    PENDING = "pending"
    MERGED = "merged"
    REJECTED = "rejected"

    def __str__(self) -> str:
        return self.value


class PendingChangeInfo(BaseModel):
    """Snapshot of a pending change.

    Not an ORM model -- used for data transfer only.
    """

    pending_id: int
    timestamp: datetime
    author_name: str
    document: str
    new_document: Optional[str] = None
    kind: ChangeKind = ChangeKind.EDIT
    comment: str = ""
    minor: bool = False
    bot: bool = False
    is_new: bool = False
    base_rev_id: Optional[int] = None
    text: str = ""
    ip: Optional[str] = None
    xff: Optional[str] = None
    user_agent: Optional[str] = None
    tags: list[str] = []
    conflict: bool = False
    rejected: bool = False
    rejected_by: Optional[str] = None
    rejected_at: Optional[datetime] = None
    merged_rev_id: Optional[int] = None

    @property
    def status(self) -> ChangeStatus:
        if self.merged_rev_id is not None:
            return ChangeStatus.MERGED
        if self.rejected:
            return ChangeStatus.REJECTED
        return ChangeStatus.PENDING

    def __str__(self) -> str:
        flags = " [conflict]" if self.conflict else ""
        return f"#{self.pending_id} {self.kind} {self.document} by {self.author_name}{flags}"
