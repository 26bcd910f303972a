"""Moderation facade -- the public entry point for the approval engine.

Provides ``Moderation.open()`` for creating/opening a moderation database,
queueing changes for review, and approving or rejecting them.  Each
approval is composed from consequences run through a ConsequenceManager:
install the approve-hook task first, then the write, then record the
outcome on the queue.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import tenacity

from moderation.consequence import (
    ApproveEditConsequence,
    ApproveMoveConsequence,
    ConsequenceContext,
    ConsequenceManager,
    InstallApproveHookConsequence,
    MarkAsMergedConsequence,
    RejectOneConsequence,
)
from moderation.diff import ChangeDiff, compute_change_diff
from moderation.exceptions import (
    AlreadyMergedError,
    AlreadyRejectedError,
    DocumentNotFoundError,
    PendingChangeNotFoundError,
)
from moderation.hooks import ApproveHook
from moderation.models.change import ChangeKind, PendingChangeInfo
from moderation.models.config import ModerationConfig
from moderation.models.overrides import OverrideBundle, parse_tag_list
from moderation.pending import PendingChange
from moderation.storage.documents import SqlDocumentStore, utcnow
from moderation.storage.engine import create_moderation_engine, create_session_factory, init_db
from moderation.storage.schema import PendingChangeRow
from moderation.storage.sqlite import SqlitePendingChangeRepository

if TYPE_CHECKING:
    from sqlalchemy import Engine
    from sqlalchemy.orm import Session

    from moderation.models.author import Author
    from moderation.models.result import ConsequenceResult

logger = logging.getLogger(__name__)


def _naive_utc(ts: datetime | None) -> datetime:
    if ts is None:
        return utcnow()
    if ts.tzinfo is not None:
        return ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts


class Moderation:
    """Approval engine over a moderation queue and a document store.

    Create via :meth:`Moderation.open`, not directly.

    Example::

        with Moderation.open("wiki.db") as mod:
            change = mod.queue_edit("Page", "new text", "Alice", ip="10.0.0.1")
            result = mod.approve(change.pending_id)
    """

    def __init__(
        self,
        *,
        engine: Engine | None,
        session: Session,
        config: ModerationConfig,
        store: SqlDocumentStore,
        changes: SqlitePendingChangeRepository,
        approve_hook: ApproveHook,
        manager: ConsequenceManager,
    ) -> None:
        self._engine = engine
        self._session = session
        self._config = config
        self._store = store
        self._changes = changes
        self._approve_hook = approve_hook
        self._manager = manager
        self._closed = False

    @classmethod
    def open(
        cls,
        path: str = ":memory:",
        *,
        config: ModerationConfig | None = None,
        manager: ConsequenceManager | None = None,
    ) -> Moderation:
        """Open (or create) a moderation database.

        Args:
            path: SQLite path.  ``":memory:"`` for in-memory (default).
            config: Moderation configuration.  Defaults created if *None*.
            manager: Consequence manager to run approvals through.  A
                ConsequenceManager bound to this instance by default; pass
                a RecordingConsequenceManager to observe without writing.

        Returns:
            A ready-to-use ``Moderation`` instance.
        """
        if config is None:
            config = ModerationConfig(db_path=path)

        engine = create_moderation_engine(config.db_path, url=config.db_url)
        init_db(engine)
        session = create_session_factory(engine)()

        store = SqlDocumentStore(session, config)
        changes = SqlitePendingChangeRepository(session)
        approve_hook = ApproveHook()
        approve_hook.attach(store)

        if manager is None:
            manager = ConsequenceManager(
                ConsequenceContext(store=store, changes=changes, approve_hook=approve_hook)
            )

        return cls(
            engine=engine,
            session=session,
            config=config,
            store=store,
            changes=changes,
            approve_hook=approve_hook,
            manager=manager,
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def store(self) -> SqlDocumentStore:
        return self._store

    @property
    def approve_hook(self) -> ApproveHook:
        return self._approve_hook

    @property
    def manager(self) -> ConsequenceManager:
        """The consequence manager; it records only the latest approve/reject call."""
        return self._manager

    @property
    def config(self) -> ModerationConfig:
        return self._config

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def queue_edit(
        self,
        document: str,
        text: str,
        author: str,
        *,
        comment: str = "",
        minor: bool = False,
        bot: bool = False,
        ip: str | None = None,
        xff: str | None = None,
        user_agent: str | None = None,
        tags: str | Sequence[str] | None = None,
        timestamp: datetime | None = None,
    ) -> PendingChange:
        """Queue an edit of *document* for moderation.

        The document's current latest revision is recorded as the baseline
        the edit was written against.
        """
        base_rev_id = self._store.get_latest_version_id(document)
        row = PendingChangeRow(
            timestamp=_naive_utc(timestamp),
            author_name=author,
            document=document,
            kind=ChangeKind.EDIT,
            comment=comment,
            minor=minor,
            bot=bot,
            is_new=base_rev_id is None,
            base_rev_id=base_rev_id,
            text=text,
            ip=ip,
            xff=xff,
            user_agent=user_agent,
            tags="\n".join(parse_tag_list(tags)) or None,
        )
        self._changes.save(row)
        self._session.commit()
        logger.debug("Queued edit #%s of '%s' by %s", row.id, document, author)
        return self._wrap(row)

    def queue_move(
        self,
        document: str,
        new_document: str,
        author: str,
        *,
        comment: str = "",
        ip: str | None = None,
        xff: str | None = None,
        user_agent: str | None = None,
        tags: str | Sequence[str] | None = None,
        timestamp: datetime | None = None,
    ) -> PendingChange:
        """Queue a rename of *document* to *new_document*.

        Raises:
            DocumentNotFoundError: If *document* does not exist.
        """
        base_rev_id = self._store.get_latest_version_id(document)
        if base_rev_id is None:
            raise DocumentNotFoundError(document)
        row = PendingChangeRow(
            timestamp=_naive_utc(timestamp),
            author_name=author,
            document=document,
            new_document=new_document,
            kind=ChangeKind.MOVE,
            comment=comment,
            base_rev_id=base_rev_id,
            ip=ip,
            xff=xff,
            user_agent=user_agent,
            tags="\n".join(parse_tag_list(tags)) or None,
        )
        self._changes.save(row)
        self._session.commit()
        logger.debug("Queued move #%s of '%s' to '%s'", row.id, document, new_document)
        return self._wrap(row)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, pending_id: int) -> PendingChange:
        """Return the pending change *pending_id*, whatever its status.

        Raises:
            PendingChangeNotFoundError: If no such change was queued.
        """
        row = self._changes.get(pending_id)
        if row is None:
            raise PendingChangeNotFoundError(pending_id)
        return self._wrap(row)

    def pending(self, author: str | None = None) -> list[PendingChange]:
        """Unresolved changes, oldest first, optionally for one author."""
        return [self._wrap(row) for row in self._changes.list_pending(author)]

    def diff(self, pending_id: int) -> ChangeDiff:
        """Diff pending change *pending_id* against its document's latest text.

        Read-only: adds no consequence and writes nothing.  A document that
        does not exist yet diffs against empty text.

        Raises:
            PendingChangeNotFoundError: If no such change was queued.
        """
        row = self._changes.get(pending_id)
        if row is None:
            raise PendingChangeNotFoundError(pending_id)
        if row.kind == ChangeKind.MOVE:
            return ChangeDiff(pending_id=row.id, document=row.document, nodiff_reason="move")
        latest = self._store.get_latest_revision(row.document)
        return compute_change_diff(
            row.id,
            row.document,
            latest.text if latest is not None else "",
            row.text,
            from_rev_id=latest.rev_id if latest is not None else None,
        )

    def _wrap(self, row: PendingChangeRow) -> PendingChange:
        return PendingChange(info=self._to_info(row), moderation=self)

    @staticmethod
    def _to_info(row: PendingChangeRow) -> PendingChangeInfo:
        return PendingChangeInfo(
            pending_id=row.id,
            timestamp=row.timestamp,
            author_name=row.author_name,
            document=row.document,
            new_document=row.new_document,
            kind=row.kind,
            comment=row.comment,
            minor=row.minor,
            bot=row.bot,
            is_new=row.is_new,
            base_rev_id=row.base_rev_id,
            text=row.text,
            ip=row.ip,
            xff=row.xff,
            user_agent=row.user_agent,
            tags=parse_tag_list(row.tags),
            conflict=row.conflict,
            rejected=row.rejected,
            rejected_by=row.rejected_by,
            rejected_at=row.rejected_at,
            merged_rev_id=row.merged_rev_id,
        )

    # ------------------------------------------------------------------
    # Approval
    # ------------------------------------------------------------------

    def install_metadata_override(
        self,
        document: str,
        author: str,
        kind: ChangeKind,
        overrides: OverrideBundle,
    ) -> ConsequenceResult:
        """Register *overrides* for the next write of *document* by *author*."""
        return self._manager.add(
            InstallApproveHookConsequence(
                document=document,
                author_name=author,
                kind=ChangeKind(kind),
                overrides=overrides,
            )
        )

    def approve(self, pending_id: int) -> ConsequenceResult:
        """Approve one pending change.

        Writes the change as its original author, with the original
        submission metadata (ip, xff, user agent, tags, timestamp) applied
        to the records the write creates.  Writes that lose a race with
        another edit are retried from fresh state.

        Returns:
            The result of the write.  A failed merge or a refused write is
            reported here, not raised.

        Raises:
            PendingChangeNotFoundError: If no such change was queued.
            AlreadyMergedError: If the change was already approved.
            AlreadyRejectedError: If the change was rejected.
        """
        row = self._require_pending(pending_id)
        self._manager.clear()
        with self._approve_hook.batch():
            result = self._approve_row(row)
        return result

    def approve_all(self, author: str) -> list[ConsequenceResult]:
        """Approve every pending change of *author*, oldest first.

        The changes form one batch: a failure is reported in its slot of
        the returned list and does not stop the remaining approvals.
        """
        rows = self._changes.list_pending(author)
        results: list[ConsequenceResult] = []
        self._manager.clear()
        with self._approve_hook.batch():
            for row in rows:
                results.append(self._approve_row(row))
        logger.info(
            "Approved %d/%d pending changes by %s",
            sum(1 for r in results if r.ok), len(results), author,
        )
        return results

    def _approve_row(self, row: PendingChangeRow) -> ConsequenceResult:
        pending_id = row.id
        kind = ChangeKind(row.kind)
        self.install_metadata_override(
            row.document,
            row.author_name,
            kind,
            OverrideBundle(
                ip=row.ip,
                xff=row.xff,
                user_agent=row.user_agent,
                tags=row.tags,
                timestamp=row.timestamp,
            ),
        )

        author = self._store.author(row.author_name)
        retryer = tenacity.Retrying(
            retry=tenacity.retry_if_result(lambda r: r.is_retryable),
            stop=tenacity.stop_after_attempt(self._config.precondition_retries),
            retry_error_callback=lambda state: state.outcome.result(),
            before_sleep=tenacity.before_sleep_log(logger, logging.DEBUG),
        )
        result = retryer(self._run_write, row, author)

        if result.ok and result.rev_id is not None:
            self._manager.add(MarkAsMergedConsequence(pending_id=pending_id, rev_id=result.rev_id))
            logger.info("Approved pending change #%s as r%s", pending_id, result.rev_id)
        elif not result.ok:
            logger.info("Approval of pending change #%s failed: %s", pending_id, result)
        # Commit the conflict flag even when the write failed
        self._session.commit()
        return result

    def _run_write(self, row: PendingChangeRow, author: Author) -> ConsequenceResult:
        if row.kind == ChangeKind.MOVE:
            consequence = ApproveMoveConsequence(
                pending_id=row.id,
                author=author,
                document=row.document,
                new_document=row.new_document or "",
                comment=row.comment,
            )
        else:
            consequence = ApproveEditConsequence(
                pending_id=row.id,
                author=author,
                document=row.document,
                text=row.text,
                comment=row.comment,
                bot=row.bot,
                minor=row.minor,
                base_rev_id=row.base_rev_id,
            )
        return self._manager.add(consequence)

    def _require_pending(self, pending_id: int) -> PendingChangeRow:
        row = self._changes.get(pending_id)
        if row is None:
            raise PendingChangeNotFoundError(pending_id)
        if row.merged_rev_id is not None:
            raise AlreadyMergedError(pending_id, row.merged_rev_id)
        if row.rejected:
            raise AlreadyRejectedError(pending_id)
        return row

    # ------------------------------------------------------------------
    # Rejection
    # ------------------------------------------------------------------

    def reject(self, pending_id: int, moderator: str) -> ConsequenceResult:
        """Reject one pending change.

        Raises:
            PendingChangeNotFoundError: If no such change was queued.
            AlreadyMergedError: If the change was already approved.
            AlreadyRejectedError: If the change was already rejected.
        """
        self._require_pending(pending_id)
        self._manager.clear()
        result = self._manager.add(RejectOneConsequence(pending_id=pending_id, moderator=moderator))
        self._session.commit()
        logger.info("Pending change #%s rejected by %s", pending_id, moderator)
        return result

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Detach the approve hook, close the session and dispose the engine."""
        if self._closed:
            return
        self._closed = True
        self._approve_hook.detach()
        self._session.close()
        if self._engine is not None:
            self._engine.dispose()

    def __enter__(self) -> Moderation:
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object) -> None:
        self.close()

    def __repr__(self) -> str:
        if self._closed:
            return "Moderation(closed=True)"
        return f"Moderation(db='{self._config.db_path}')"
