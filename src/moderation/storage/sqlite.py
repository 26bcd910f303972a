"""SQLite implementations of repository interfaces.

All repositories use SQLAlchemy 2.0-style queries (select() + session.execute()).
Each repository takes a Session in its constructor.
"""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from moderation.storage.repositories import (
    AuthorRepository,
    ChangeTagRepository,
    ChangeTrackingRepository,
    LogRepository,
    PageRepository,
    PendingChangeRepository,
    RecentChangeRepository,
    RevisionRepository,
)
from moderation.storage.schema import (
    AuthorRow,
    ChangeTagRow,
    ChangeTrackingRow,
    LogEntryRow,
    PageRow,
    PendingChangeRow,
    RecentChangeRow,
    RevisionRow,
)


class SqlitePageRepository(PageRepository):
    """SQLite implementation of page repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_title(self, title: str) -> PageRow | None:
        stmt = select(PageRow).where(PageRow.title == title)
        return self._session.execute(stmt).scalar_one_or_none()

    def save(self, page: PageRow) -> None:
        self._session.add(page)
        self._session.flush()


class SqliteRevisionRepository(RevisionRepository):
    """SQLite implementation of revision repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, rev_id: int) -> RevisionRow | None:
        stmt = select(RevisionRow).where(RevisionRow.rev_id == rev_id)
        return self._session.execute(stmt).scalar_one_or_none()

    def save(self, revision: RevisionRow) -> None:
        self._session.add(revision)
        self._session.flush()

    def get_history(self, page_id: int) -> Sequence[RevisionRow]:
        stmt = (
            select(RevisionRow)
            .where(RevisionRow.page_id == page_id)
            .order_by(RevisionRow.rev_id.asc())
        )
        return list(self._session.execute(stmt).scalars().all())


class SqliteRecentChangeRepository(RecentChangeRepository):
    """SQLite implementation of the recent-changes feed."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def save(self, rc: RecentChangeRow) -> None:
        self._session.add(rc)
        self._session.flush()

    def get_by_revision(self, rev_id: int) -> RecentChangeRow | None:
        stmt = select(RecentChangeRow).where(RecentChangeRow.this_rev_id == rev_id)
        return self._session.execute(stmt).scalars().first()

    def get_by_log(self, log_id: int) -> RecentChangeRow | None:
        stmt = select(RecentChangeRow).where(RecentChangeRow.log_id == log_id)
        return self._session.execute(stmt).scalars().first()


class SqliteChangeTrackingRepository(ChangeTrackingRepository):
    """SQLite implementation of per-write audit rows."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def save(self, row: ChangeTrackingRow) -> None:
        self._session.add(row)
        self._session.flush()

    def get_by_revision(self, rev_id: int) -> ChangeTrackingRow | None:
        stmt = select(ChangeTrackingRow).where(ChangeTrackingRow.this_rev_id == rev_id)
        return self._session.execute(stmt).scalars().first()


class SqliteLogRepository(LogRepository):
    """SQLite implementation of the action log."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def save(self, entry: LogEntryRow) -> None:
        self._session.add(entry)
        self._session.flush()

    def get(self, log_id: int) -> LogEntryRow | None:
        stmt = select(LogEntryRow).where(LogEntryRow.log_id == log_id)
        return self._session.execute(stmt).scalar_one_or_none()


class SqliteChangeTagRepository(ChangeTagRepository):
    """SQLite implementation of change tags.

    One row per (tag, target) attachment; a tag added to a recent change,
    a revision and a log entry at once is stored as a single row.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def add(
        self,
        tag: str,
        *,
        rc_id: int | None = None,
        rev_id: int | None = None,
        log_id: int | None = None,
    ) -> None:
        self._session.add(ChangeTagRow(tag=tag, rc_id=rc_id, rev_id=rev_id, log_id=log_id))
        self._session.flush()

    def get_tags(
        self,
        *,
        rc_id: int | None = None,
        rev_id: int | None = None,
        log_id: int | None = None,
    ) -> list[str]:
        conditions = []
        if rc_id is not None:
            conditions.append(ChangeTagRow.rc_id == rc_id)
        if rev_id is not None:
            conditions.append(ChangeTagRow.rev_id == rev_id)
        if log_id is not None:
            conditions.append(ChangeTagRow.log_id == log_id)
        if not conditions:
            return []

        stmt = select(ChangeTagRow.tag).where(or_(*conditions)).order_by(ChangeTagRow.id)
        tags: list[str] = []
        for tag in self._session.execute(stmt).scalars():
            if tag not in tags:
                tags.append(tag)
        return tags


class SqliteAuthorRepository(AuthorRepository):
    """SQLite implementation of registered authors."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, name: str) -> AuthorRow | None:
        stmt = select(AuthorRow).where(AuthorRow.name == name)
        return self._session.execute(stmt).scalar_one_or_none()

    def save(self, author: AuthorRow) -> None:
        self._session.add(author)
        self._session.flush()


class SqlitePendingChangeRepository(PendingChangeRepository):
    """SQLite implementation of the moderation queue."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, pending_id: int) -> PendingChangeRow | None:
        stmt = select(PendingChangeRow).where(PendingChangeRow.id == pending_id)
        return self._session.execute(stmt).scalar_one_or_none()

    def save(self, change: PendingChangeRow) -> None:
        self._session.add(change)
        self._session.flush()

    def list_pending(self, author_name: str | None = None) -> Sequence[PendingChangeRow]:
        stmt = select(PendingChangeRow).where(
            PendingChangeRow.merged_rev_id.is_(None),
            PendingChangeRow.rejected.is_(False),
        )
        if author_name is not None:
            stmt = stmt.where(PendingChangeRow.author_name == author_name)
        stmt = stmt.order_by(PendingChangeRow.timestamp.asc(), PendingChangeRow.id.asc())
        return list(self._session.execute(stmt).scalars().all())

    def _update(self, pending_id: int, *conditions, **values) -> int:
        stmt = (
            update(PendingChangeRow)
            .where(PendingChangeRow.id == pending_id, *conditions)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        result = self._session.execute(stmt)
        self._session.flush()
        return result.rowcount

    def mark_conflict(self, pending_id: int) -> int:
        return self._update(pending_id, conflict=True)

    def mark_merged(self, pending_id: int, rev_id: int) -> int:
        return self._update(
            pending_id,
            PendingChangeRow.merged_rev_id.is_(None),
            merged_rev_id=rev_id,
            conflict=False,
        )

    def mark_rejected(self, pending_id: int, moderator: str, at: datetime) -> int:
        return self._update(
            pending_id,
            PendingChangeRow.merged_rev_id.is_(None),
            PendingChangeRow.rejected.is_(False),
            rejected=True,
            rejected_by=moderator,
            rejected_at=at,
        )
