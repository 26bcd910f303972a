"""Protocol definitions for moderation.

Defines the interfaces the approval core consumes from the document store
(DocumentStore, TagStore) and the phase names of the store's write
pipeline.

No SQLAlchemy imports allowed in this module -- pure domain protocols.
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING, Callable, Protocol, runtime_checkable

if TYPE_CHECKING:
    from moderation.hooks.event import PhaseEvent
    from moderation.models.author import Author
    from moderation.models.document import RequestOrigin, RevisionInfo


class Phase(str, enum.Enum):
    """Named phases of the document store's write pipeline.

    PRE_FINALIZE fires after the new records are built but before they
    are flushed, so listeners may still mutate them.  POST_FINALIZE fires
    once identifiers (revision id, log id, recent-change id) are assigned.
    """

    PRE_FINALIZE = "pre-finalize"
    POST_FINALIZE = "post-finalize"

    def __str__(self) -> str:
        return self.value


PhaseHandler = Callable[["PhaseEvent"], None]

# (tags_added, tags_removed, previous_tags, rc_id, rev_id, log_id)
TagsUpdatedListener = Callable[
    [list[str], list[str], list[str], "int | None", "int | None", "int | None"],
    None,
]


@runtime_checkable
class TagStore(Protocol):
    """Change-tag subsystem of the document store."""

    def add_tags(
        self,
        tags: list[str],
        *,
        rc_id: int | None = None,
        rev_id: int | None = None,
        log_id: int | None = None,
    ) -> list[str]:
        """Attach *tags* to the given records.  Returns the tags actually added."""
        ...

    def on_tags_updated(self, listener: TagsUpdatedListener) -> None:
        """Register a listener fired synchronously after tags change."""
        ...


@runtime_checkable
class DocumentStore(Protocol):
    """Document store consumed by the approval core.

    Writes raise EditConflictError when ``expected_latest`` no longer
    matches, and StoreRejectedError for policy or validation failures.
    """

    tags: TagStore

    def exists(self, document: str) -> bool:
        ...

    def get_latest_version_id(self, document: str) -> int | None:
        ...

    def get_content_at(self, rev_id: int) -> str:
        ...

    def three_way_merge(self, base: str, proposed: str, current: str) -> str | None:
        """Merge divergent texts.  None means the conflict is unresolvable."""
        ...

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
        ...

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
        ...

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
        ...

    def on_phase(self, phase: Phase, handler: PhaseHandler) -> None:
        ...

    def off_phase(self, phase: Phase, handler: PhaseHandler) -> None:
        ...
