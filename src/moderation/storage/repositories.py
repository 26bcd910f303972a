"""Abstract repository interfaces for moderation storage.

Defines ABC interfaces for all database operations. No SQLAlchemy
imports here -- pure abstract contracts.

Concrete implementations are in sqlite.py.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from datetime import datetime

    from moderation.storage.schema import (
        AuthorRow,
        ChangeTrackingRow,
        LogEntryRow,
        PageRow,
        PendingChangeRow,
        RecentChangeRow,
        RevisionRow,
    )


class PageRepository(ABC):
    """Abstract interface for page storage operations."""

    @abstractmethod
    def get_by_title(self, title: str) -> PageRow | None:
        """Get a page by its title. Returns None if not found."""
        ...

    @abstractmethod
    def save(self, page: PageRow) -> None:
        ...


class RevisionRepository(ABC):
    """Abstract interface for revision storage operations."""

    @abstractmethod
    def get(self, rev_id: int) -> RevisionRow | None:
        """Get a revision by id. Returns None if not found."""
        ...

    @abstractmethod
    def save(self, revision: RevisionRow) -> None:
        ...

    @abstractmethod
    def get_history(self, page_id: int) -> Sequence[RevisionRow]:
        """Get all revisions of a page, oldest first."""
        ...


class RecentChangeRepository(ABC):
    """Abstract interface for the recent-changes feed."""

    @abstractmethod
    def save(self, rc: RecentChangeRow) -> None:
        ...

    @abstractmethod
    def get_by_revision(self, rev_id: int) -> RecentChangeRow | None:
        ...

    @abstractmethod
    def get_by_log(self, log_id: int) -> RecentChangeRow | None:
        ...


class ChangeTrackingRepository(ABC):
    """Abstract interface for per-write audit rows."""

    @abstractmethod
    def save(self, row: ChangeTrackingRow) -> None:
        ...

    @abstractmethod
    def get_by_revision(self, rev_id: int) -> ChangeTrackingRow | None:
        ...


class LogRepository(ABC):
    """Abstract interface for action log entries."""

    @abstractmethod
    def save(self, entry: LogEntryRow) -> None:
        ...

    @abstractmethod
    def get(self, log_id: int) -> LogEntryRow | None:
        ...


class ChangeTagRepository(ABC):
    """Abstract interface for change tags."""

    @abstractmethod
    def add(
        self,
        tag: str,
        *,
        rc_id: int | None = None,
        rev_id: int | None = None,
        log_id: int | None = None,
    ) -> None:
        ...

    @abstractmethod
    def get_tags(
        self,
        *,
        rc_id: int | None = None,
        rev_id: int | None = None,
        log_id: int | None = None,
    ) -> list[str]:
        """Tags attached to any of the given identifiers, in insertion order."""
        ...


class AuthorRepository(ABC):
    """Abstract interface for registered authors."""

    @abstractmethod
    def get(self, name: str) -> AuthorRow | None:
        ...

    @abstractmethod
    def save(self, author: AuthorRow) -> None:
        ...


class PendingChangeRepository(ABC):
    """Abstract interface for the moderation queue.

    The conflict flag and the approval/rejection outcome are the only
    durable state the approval core writes outside the document store.
    """

    @abstractmethod
    def get(self, pending_id: int) -> PendingChangeRow | None:
        """Get a pending change by id. Returns None if not found."""
        ...

    @abstractmethod
    def save(self, change: PendingChangeRow) -> None:
        ...

    @abstractmethod
    def list_pending(self, author_name: str | None = None) -> Sequence[PendingChangeRow]:
        """Unresolved changes (not merged, not rejected), oldest first."""
        ...

    @abstractmethod
    def mark_conflict(self, pending_id: int) -> int:
        """Set the conflict flag. Returns the number of rows changed."""
        ...

    @abstractmethod
    def mark_merged(self, pending_id: int, rev_id: int) -> int:
        """Record the revision a change was merged as. Returns rows changed."""
        ...

    @abstractmethod
    def mark_rejected(self, pending_id: int, moderator: str, at: datetime) -> int:
        """Reject an unresolved change. Returns rows changed."""
        ...
