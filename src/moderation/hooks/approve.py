"""Approve hook: retroactive metadata patching of approved writes.

When a moderator approves a change, the document store writes it under
the moderator's request: the revision gets the approval time, and the
recent-change and change-tracking rows get the moderator's IP and user
agent.  The store's write pipeline accepts none of the submitter's
metadata as input, so the approve hook patches it in from the outside:

1. Before the write, a task is installed for the key
   (document, author, kind) with the submitter's metadata.
2. PRE_FINALIZE: rows are built but not flushed.  The hook overrides
   timestamps, IP, forwarded-for and user agent on them.
3. POST_FINALIZE: identifiers are assigned.  The hook attaches the
   task's tags to the new revision, log entry and recent change.

Tasks are keyed, not queued: a second task for the same key replaces the
first (last registration wins), including its timestamp.  Tasks are not
consumed by a match.  The registry lives on an ApproveHook instance and
is reset between approval batches.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

from moderation.models.change import ChangeKind
from moderation.models.document import ip_to_hex
from moderation.models.overrides import OverrideBundle, TaskKey
from moderation.protocols import Phase

if TYPE_CHECKING:
    from collections.abc import Iterator

    from moderation.hooks.event import PhaseEvent
    from moderation.protocols import DocumentStore

logger = logging.getLogger(__name__)


class ApproveHook:
    """Task registry plus the phase listeners that apply its tasks.

    Lifecycle: create, :meth:`attach` to a document store, install tasks,
    trigger writes, :meth:`reset` between batches, :meth:`detach` when done.

    Example::

        hook = ApproveHook()
        hook.attach(store)
        with hook.batch():
            hook.install(TaskKey("Page", "Alice", ChangeKind.EDIT),
                         OverrideBundle(ip="10.0.0.1", tags="a\\nb"))
            store.update_document("Page", ...)
    """

    def __init__(self) -> None:
        self._tasks: dict[TaskKey, OverrideBundle] = {}
        self._store: DocumentStore | None = None

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def install(self, key: TaskKey, overrides: OverrideBundle) -> None:
        """Register *overrides* for writes matching *key*.

        Replaces any task already installed for the same key.
        """
        if key in self._tasks:
            logger.debug("Replacing approve-hook task for %s", key)
        self._tasks[key] = overrides

    def get_task(self, key: TaskKey) -> OverrideBundle | None:
        return self._tasks.get(key)

    def forget(self, key: TaskKey) -> None:
        """Remove the task for *key*, for callers that need one-shot tasks."""
        self._tasks.pop(key, None)

    def reset(self) -> None:
        """Drop every installed task."""
        self._tasks.clear()

    @property
    def tasks(self) -> dict[TaskKey, OverrideBundle]:
        """Copy of the installed tasks."""
        return dict(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    @contextmanager
    def batch(self) -> Iterator[ApproveHook]:
        """Scope one approval batch: the registry is reset when it ends."""
        try:
            yield self
        finally:
            self.reset()

    # ------------------------------------------------------------------
    # Store wiring
    # ------------------------------------------------------------------

    def attach(self, store: DocumentStore) -> None:
        """Subscribe to *store*'s pipeline phases."""
        if self._store is store:
            return
        if self._store is not None:
            self.detach()
        store.on_phase(Phase.PRE_FINALIZE, self.on_pre_finalize)
        store.on_phase(Phase.POST_FINALIZE, self.on_post_finalize)
        self._store = store

    def detach(self) -> None:
        """Unsubscribe from the attached store, if any."""
        if self._store is None:
            return
        self._store.off_phase(Phase.PRE_FINALIZE, self.on_pre_finalize)
        self._store.off_phase(Phase.POST_FINALIZE, self.on_post_finalize)
        self._store = None

    @property
    def attached(self) -> bool:
        return self._store is not None

    def _match(self, event: PhaseEvent) -> OverrideBundle | None:
        if not self._tasks:
            return None
        return self._tasks.get(TaskKey(event.document, event.author, ChangeKind(event.kind)))

    # ------------------------------------------------------------------
    # Phase listeners
    # ------------------------------------------------------------------

    def on_pre_finalize(self, event: PhaseEvent) -> None:
        """Patch timestamp and network origin on rows about to be saved."""
        task = self._match(event)
        if task is None:
            return

        logger.debug("Approve hook matched %s/%s/%s", event.document, event.author, event.kind)
        self._apply_timestamp(event, task)
        self._apply_origin(event, task)

    def on_post_finalize(self, event: PhaseEvent) -> None:
        """Attach the task's tags once identifiers are assigned."""
        task = self._match(event)
        if task is None or not task.tags:
            return
        if self._store is None:
            return

        tags = list(task.tags)
        self._store.tags.add_tags(
            tags, rc_id=event.rc_id, rev_id=event.rev_id, log_id=event.log_id
        )
        # Secondary revisions (e.g. the redirect left behind by a move)
        for revision in event.revisions[1:]:
            self._store.tags.add_tags(tags, rev_id=revision.rev_id)

    @staticmethod
    def _apply_timestamp(event: PhaseEvent, task: OverrideBundle) -> None:
        timestamp = task.timestamp
        if timestamp is None:
            return
        if event.previous_timestamp is not None and timestamp < event.previous_timestamp:
            # Never let a backdated revision regress history ordering
            logger.warning(
                "Skipping timestamp override %s for '%s': earlier than latest revision (%s)",
                timestamp.isoformat(),
                event.document,
                event.previous_timestamp.isoformat(),
            )
            return

        for revision in event.revisions:
            revision.timestamp = timestamp
        if event.recent_change is not None:
            event.recent_change.timestamp = timestamp
        if event.tracking is not None:
            event.tracking.timestamp = timestamp
        if event.log_entry is not None:
            event.log_entry.timestamp = timestamp

    @staticmethod
    def _apply_origin(event: PhaseEvent, task: OverrideBundle) -> None:
        if event.recent_change is not None and task.ip is not None:
            event.recent_change.ip = task.ip

        tracking = event.tracking
        if tracking is None:
            return
        if task.ip is not None:
            tracking.ip = task.ip
            tracking.ip_hex = ip_to_hex(task.ip)
        # Absent headers in the original request stay absent
        tracking.xff = task.xff
        tracking.user_agent = task.user_agent
