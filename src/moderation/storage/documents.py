"""SQL-backed document store.

SqlDocumentStore is the reference implementation of the DocumentStore
protocol: pages with linear revision history, a recent-changes feed,
change-tracking audit rows, an action log, change tags, and a write
pipeline with two synchronous phases (PRE_FINALIZE, POST_FINALIZE) that
listeners such as the approve hook subscribe to.

Every write runs in this order:

1. validate (author rights, block, title, size) -- StoreRejectedError
2. check the expected latest revision -- EditConflictError
3. build revision / recent-change / tracking / log rows
4. fire PRE_FINALIZE (rows still mutable, no identifiers yet)
5. flush rows, then compare-and-swap the page's latest revision id
6. fire POST_FINALIZE (identifiers assigned)
7. commit

Not thread-safe.  Each thread should use its own session and store.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import update

from moderation.exceptions import (
    EditConflictError,
    RevisionNotFoundError,
    StoreRejectedError,
)
from moderation.hooks.event import PhaseEvent
from moderation.merge3 import merge3
from moderation.models.author import Author, is_ip_address
from moderation.models.change import ChangeKind
from moderation.models.document import RequestOrigin, RevisionInfo, ip_to_hex
from moderation.protocols import Phase
from moderation.storage.schema import (
    AuthorRow,
    ChangeTrackingRow,
    LogEntryRow,
    PageRow,
    RecentChangeRow,
    RevisionRow,
)
from moderation.storage.sqlite import (
    SqliteAuthorRepository,
    SqliteChangeTagRepository,
    SqliteChangeTrackingRepository,
    SqliteLogRepository,
    SqlitePageRepository,
    SqliteRecentChangeRepository,
    SqliteRevisionRepository,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.orm import Session

    from moderation.models.config import ModerationConfig
    from moderation.protocols import PhaseHandler, TagsUpdatedListener

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Current time as naive UTC (the storage convention)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SqlTagStore:
    """Change-tag subsystem.

    Listeners registered with :meth:`on_tags_updated` run synchronously
    after tags are added, receiving
    ``(added, removed, previous, rc_id, rev_id, log_id)``.
    """

    def __init__(self, tag_repo: SqliteChangeTagRepository) -> None:
        self._tag_repo = tag_repo
        self._listeners: list[TagsUpdatedListener] = []

    def add_tags(
        self,
        tags: list[str],
        *,
        rc_id: int | None = None,
        rev_id: int | None = None,
        log_id: int | None = None,
    ) -> list[str]:
        """Attach *tags* to the given records.

        Tags already present on any of the records are skipped.

        Returns:
            The tags actually added, in the order given.

        Raises:
            ValueError: If no identifier is given.
        """
        if rc_id is None and rev_id is None and log_id is None:
            raise ValueError("add_tags() needs at least one of rc_id, rev_id, log_id")

        previous = self._tag_repo.get_tags(rc_id=rc_id, rev_id=rev_id, log_id=log_id)
        added = [tag for tag in dict.fromkeys(tags) if tag and tag not in previous]
        for tag in added:
            self._tag_repo.add(tag, rc_id=rc_id, rev_id=rev_id, log_id=log_id)

        if added:
            for listener in list(self._listeners):
                listener(list(added), [], list(previous), rc_id, rev_id, log_id)
        return added

    def get_tags(
        self,
        *,
        rc_id: int | None = None,
        rev_id: int | None = None,
        log_id: int | None = None,
    ) -> list[str]:
        return self._tag_repo.get_tags(rc_id=rc_id, rev_id=rev_id, log_id=log_id)

    def on_tags_updated(self, listener: TagsUpdatedListener) -> None:
        self._listeners.append(listener)

    def off_tags_updated(self, listener: TagsUpdatedListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)


class SqlDocumentStore:
    """Document store over a SQLAlchemy session.

    Create via :meth:`Moderation.open` (recommended) or directly with a
    session for testing.
    """

    def __init__(self, session: Session, config: ModerationConfig) -> None:
        self._session = session
        self._config = config
        self._pages = SqlitePageRepository(session)
        self._revisions = SqliteRevisionRepository(session)
        self._recent_changes = SqliteRecentChangeRepository(session)
        self._tracking = SqliteChangeTrackingRepository(session)
        self._log = SqliteLogRepository(session)
        self._authors = SqliteAuthorRepository(session)
        self.tags = SqlTagStore(SqliteChangeTagRepository(session))
        self._handlers: dict[Phase, list[PhaseHandler]] = defaultdict(list)

    # ------------------------------------------------------------------
    # Authors
    # ------------------------------------------------------------------

    def register_author(
        self,
        name: str,
        rights: Sequence[str] | None = None,
        *,
        blocked: bool = False,
    ) -> Author:
        """Create or update a registered author."""
        if rights is None:
            rights = self._config.default_rights
        row = self._authors.get(name)
        if row is None:
            row = AuthorRow(name=name, rights_json=list(rights), blocked=blocked)
        else:
            row.rights_json = list(rights)
            row.blocked = blocked
        self._authors.save(row)
        self._session.commit()
        return Author(name=name, rights=frozenset(rights), blocked=blocked)

    def author(self, name: str) -> Author:
        """Resolve *name* to an Author with its current rights.

        IP addresses get the anonymous rights; unknown names get the
        default rights of a registered author.
        """
        if is_ip_address(name):
            return Author(name=name, rights=frozenset(self._config.anonymous_rights))
        row = self._authors.get(name)
        if row is None:
            return Author(name=name, rights=frozenset(self._config.default_rights))
        return Author(name=name, rights=frozenset(row.rights_json or []), blocked=row.blocked)

    # ------------------------------------------------------------------
    # Phase listeners
    # ------------------------------------------------------------------

    def on_phase(self, phase: Phase, handler: PhaseHandler) -> None:
        """Register *handler* to run synchronously at *phase* of every write."""
        self._handlers[Phase(phase)].append(handler)

    def off_phase(self, phase: Phase, handler: PhaseHandler) -> None:
        handlers = self._handlers[Phase(phase)]
        if handler in handlers:
            handlers.remove(handler)

    def _fire(self, event: PhaseEvent) -> None:
        for handler in list(self._handlers[event.phase]):
            handler(event)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def exists(self, document: str) -> bool:
        page = self._pages.get_by_title(document)
        return page is not None and page.latest_rev_id is not None

    def get_latest_version_id(self, document: str) -> int | None:
        page = self._pages.get_by_title(document)
        return page.latest_rev_id if page is not None else None

    def get_content_at(self, rev_id: int) -> str:
        row = self._revisions.get(rev_id)
        if row is None:
            raise RevisionNotFoundError(rev_id)
        return row.text

    def get_revision(self, rev_id: int) -> RevisionInfo:
        row = self._revisions.get(rev_id)
        if row is None:
            raise RevisionNotFoundError(rev_id)
        return self._to_info(row)

    def get_latest_revision(self, document: str) -> RevisionInfo | None:
        rev_id = self.get_latest_version_id(document)
        if rev_id is None:
            return None
        return self.get_revision(rev_id)

    def history(self, document: str) -> list[RevisionInfo]:
        """All revisions of *document*, oldest first."""
        page = self._pages.get_by_title(document)
        if page is None:
            return []
        return [self._to_info(row, title=page.title) for row in self._revisions.get_history(page.page_id)]

    def get_recent_change(self, rev_id: int) -> RecentChangeRow | None:
        return self._recent_changes.get_by_revision(rev_id)

    def get_tracking(self, rev_id: int) -> ChangeTrackingRow | None:
        return self._tracking.get_by_revision(rev_id)

    def get_log_entry(self, log_id: int) -> LogEntryRow | None:
        return self._log.get(log_id)

    def three_way_merge(self, base: str, proposed: str, current: str) -> str | None:
        return merge3(base, proposed, current)

    def _to_info(self, row: RevisionRow, title: str | None = None) -> RevisionInfo:
        if title is None:
            page = self._session.get(PageRow, row.page_id)
            title = page.title if page is not None else ""
        rc = self._recent_changes.get_by_revision(row.rev_id)
        return RevisionInfo(
            rev_id=row.rev_id,
            document=title,
            parent_id=row.parent_id,
            text=row.text,
            comment=row.comment,
            author_name=row.author_name,
            timestamp=row.timestamp,
            minor=row.minor,
            bot=rc.bot if rc is not None else False,
            tags=self.tags.get_tags(rev_id=row.rev_id),
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _validate(self, document: str, text: str, author: Author, right: str = "edit") -> None:
        if not document or not document.strip():
            raise StoreRejectedError("invalid-title", "Document title must not be empty")
        if author.blocked:
            raise StoreRejectedError("blocked", f"Author '{author}' is blocked")
        if not author.is_allowed(right):
            raise StoreRejectedError(
                "permission-denied", f"Author '{author}' lacks the '{right}' right"
            )
        size = len(text.encode("utf-8"))
        if size > self._config.max_content_size:
            raise StoreRejectedError(
                "content-too-big",
                f"Content is {size} bytes (max: {self._config.max_content_size})",
            )

    def create_document(
        self,
        document: str,
        text: str,
        comment: str,
        author: Author,
        *,
        minor: bool = False,
        bot: bool = False,
        origin: RequestOrigin | None = None,
    ) -> RevisionInfo:
        """Create *document* with its first revision.

        Raises:
            StoreRejectedError: If the write is not allowed.
            EditConflictError: If the document already exists.
        """
        self._validate(document, text, author)
        page = self._pages.get_by_title(document)
        if page is not None and page.latest_rev_id is not None:
            raise EditConflictError(document, None, page.latest_rev_id)

        if page is None:
            page = PageRow(title=document, latest_rev_id=None)
            self._pages.save(page)
        return self._save_edit(page, text, comment, author, None, minor, bot, origin)

    def update_document(
        self,
        document: str,
        text: str,
        comment: str,
        author: Author,
        *,
        expected_latest: int | None,
        minor: bool = False,
        bot: bool = False,
        origin: RequestOrigin | None = None,
    ) -> RevisionInfo:
        """Append a revision to *document* if its latest is still *expected_latest*.

        Writing the current text again is a null edit: nothing is stored
        and the latest revision is returned.

        Raises:
            StoreRejectedError: If the write is not allowed.
            EditConflictError: If the latest revision is not *expected_latest*
                (including when the document no longer exists).
        """
        self._validate(document, text, author)
        page = self._pages.get_by_title(document)
        actual = page.latest_rev_id if page is not None else None
        if page is None or actual is None or actual != expected_latest:
            raise EditConflictError(document, expected_latest, actual)

        previous = self._revisions.get(actual)
        if previous is not None and previous.text == text:
            logger.debug("Null edit on '%s', nothing stored", document)
            return self._to_info(previous, title=page.title)
        return self._save_edit(page, text, comment, author, previous, minor, bot, origin)

    def _save_edit(
        self,
        page: PageRow,
        text: str,
        comment: str,
        author: Author,
        previous: RevisionRow | None,
        minor: bool,
        bot: bool,
        origin: RequestOrigin | None,
    ) -> RevisionInfo:
        origin = origin or RequestOrigin()
        now = utcnow()
        minor = minor and previous is not None and author.is_allowed("minoredit")
        parent_id = previous.rev_id if previous is not None else None

        revision = RevisionRow(
            page_id=page.page_id,
            parent_id=parent_id,
            text=text,
            comment=comment,
            author_name=author.name,
            timestamp=now,
            minor=minor,
            length=len(text.encode("utf-8")),
        )
        rc = RecentChangeRow(
            timestamp=now,
            title=page.title,
            author_name=author.name,
            change_type="edit" if previous is not None else "new",
            last_rev_id=parent_id,
            comment=comment,
            ip=origin.ip,
            minor=minor,
            bot=bot,
        )
        tracking = self._make_tracking(page.title, author, origin, now)

        return self._finalize(
            page=page,
            expected_latest=parent_id,
            kind=ChangeKind.EDIT,
            document=page.title,
            author=author,
            revisions=(revision,),
            rc=rc,
            tracking=tracking,
            log_entry=None,
            previous=previous,
        )

    def move_document(
        self,
        document: str,
        new_document: str,
        comment: str,
        author: Author,
        *,
        leave_redirect: bool = True,
        origin: RequestOrigin | None = None,
    ) -> RevisionInfo:
        """Rename *document* to *new_document*.

        Creates a null revision on the moved page, a ``move`` log entry and,
        if *leave_redirect*, a redirect page at the old title.  Phase events
        are attributed to the old title with kind ``move``.

        Returns:
            The null revision recording the move.

        Raises:
            StoreRejectedError: If the move is not allowed, the source does
                not exist or the target already exists.
        """
        self._validate(new_document, "", author, right="move")
        page = self._pages.get_by_title(document)
        if page is None or page.latest_rev_id is None:
            raise StoreRejectedError("nonexistent-source", f"Cannot move missing '{document}'")
        if self._pages.get_by_title(new_document) is not None:
            raise StoreRejectedError("target-exists", f"'{new_document}' already exists")

        origin = origin or RequestOrigin()
        now = utcnow()
        previous = self._revisions.get(page.latest_rev_id)
        if previous is None:
            raise RevisionNotFoundError(page.latest_rev_id)

        page.title = new_document
        self._pages.save(page)

        summary = f"moved [[{document}]] to [[{new_document}]]"
        if comment:
            summary += f": {comment}"
        revisions = [
            RevisionRow(
                page_id=page.page_id,
                parent_id=previous.rev_id,
                text=previous.text,
                comment=summary,
                author_name=author.name,
                timestamp=now,
                minor=True,
                length=previous.length,
            )
        ]
        if leave_redirect:
            redirect_page = PageRow(title=document, latest_rev_id=None, is_redirect=True)
            self._pages.save(redirect_page)
            redirect_text = f"#REDIRECT [[{new_document}]]"
            revisions.append(
                RevisionRow(
                    page_id=redirect_page.page_id,
                    parent_id=None,
                    text=redirect_text,
                    comment=summary,
                    author_name=author.name,
                    timestamp=now,
                    minor=False,
                    length=len(redirect_text.encode("utf-8")),
                )
            )

        log_entry = LogEntryRow(
            log_type="move",
            action="move_redir" if leave_redirect else "move",
            timestamp=now,
            title=document,
            author_name=author.name,
            comment=comment,
            params_json={"target": new_document, "noredir": not leave_redirect},
        )
        rc = RecentChangeRow(
            timestamp=now,
            title=document,
            author_name=author.name,
            change_type="log",
            last_rev_id=previous.rev_id,
            comment=comment,
            ip=origin.ip,
        )
        tracking = self._make_tracking(document, author, origin, now)

        return self._finalize(
            page=page,
            expected_latest=previous.rev_id,
            kind=ChangeKind.MOVE,
            document=document,
            author=author,
            revisions=tuple(revisions),
            rc=rc,
            tracking=tracking,
            log_entry=log_entry,
            previous=previous,
        )

    @staticmethod
    def _make_tracking(
        title: str, author: Author, origin: RequestOrigin, now: datetime
    ) -> ChangeTrackingRow:
        return ChangeTrackingRow(
            timestamp=now,
            title=title,
            author_name=author.name,
            ip=origin.ip,
            ip_hex=ip_to_hex(origin.ip),
            xff=origin.xff,
            user_agent=origin.user_agent,
        )

    def _finalize(
        self,
        *,
        page: PageRow,
        expected_latest: int | None,
        kind: ChangeKind,
        document: str,
        author: Author,
        revisions: tuple[RevisionRow, ...],
        rc: RecentChangeRow,
        tracking: ChangeTrackingRow,
        log_entry: LogEntryRow | None,
        previous: RevisionRow | None,
    ) -> RevisionInfo:
        """Run the PRE/POST phases around persisting one write."""
        event_args = dict(
            document=document,
            author=author.name,
            kind=kind,
            revisions=revisions,
            recent_change=rc,
            tracking=tracking,
            log_entry=log_entry,
            previous_timestamp=previous.timestamp if previous is not None else None,
        )
        try:
            self._fire(PhaseEvent(phase=Phase.PRE_FINALIZE, **event_args))

            for revision in revisions:
                self._revisions.save(revision)
            if log_entry is not None:
                self._log.save(log_entry)
                rc.log_id = log_entry.log_id
                tracking.log_id = log_entry.log_id

            primary = revisions[0]
            rc.this_rev_id = primary.rev_id
            tracking.this_rev_id = primary.rev_id
            self._recent_changes.save(rc)
            self._tracking.save(tracking)

            # Store-enforced precondition: only advance from the expected revision
            swapped = self._session.execute(
                update(PageRow)
                .where(PageRow.page_id == page.page_id)
                .where(
                    PageRow.latest_rev_id.is_(None)
                    if expected_latest is None
                    else PageRow.latest_rev_id == expected_latest
                )
                .values(latest_rev_id=primary.rev_id)
                .execution_options(synchronize_session="fetch")
            ).rowcount
            if swapped != 1:
                self._session.rollback()
                actual = self.get_latest_version_id(document)
                raise EditConflictError(document, expected_latest, actual)

            # Redirect pages left behind by a move point at their own revision
            for revision in revisions[1:]:
                self._session.execute(
                    update(PageRow)
                    .where(PageRow.page_id == revision.page_id)
                    .values(latest_rev_id=revision.rev_id)
                    .execution_options(synchronize_session="fetch")
                )
            self._session.flush()

            self._fire(PhaseEvent(phase=Phase.POST_FINALIZE, **event_args))
            self._session.commit()
        except EditConflictError:
            raise
        except Exception:
            self._session.rollback()
            raise

        logger.debug("Saved r%s on '%s' by %s (%s)", primary.rev_id, document, author, kind)
        return self._to_info(primary, title=page.title)
