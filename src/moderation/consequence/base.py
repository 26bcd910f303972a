"""Base Consequence class and the context consequences run in.

A consequence is one side-effecting action (approve an edit, install an
approve-hook task, mark a change rejected...).  Consequences are frozen
dataclasses holding only their inputs, so two consequences with the same
inputs compare equal -- the recording manager relies on this to let tests
assert on "what would have happened".

Collaborators are not stored on the consequence: the manager passes a
ConsequenceContext to :meth:`Consequence.run`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from moderation.hooks.approve import ApproveHook
    from moderation.models.result import ConsequenceResult
    from moderation.protocols import DocumentStore
    from moderation.storage.repositories import PendingChangeRepository


@dataclass(frozen=True)
class ConsequenceContext:
    """Collaborators available to a running consequence.

    Attributes:
        store: The document store writes go to.
        changes: Repository of the moderation queue.
        approve_hook: Registry receiving approve-hook tasks.
    """

    store: DocumentStore
    changes: PendingChangeRepository
    approve_hook: ApproveHook


class Consequence(ABC):
    """Base class for all consequences.

    Subclasses are frozen dataclasses.  :meth:`run` must not raise for
    expected failures; it returns a fatal ConsequenceResult instead.
    """

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def run(self, context: ConsequenceContext) -> ConsequenceResult:
        """Execute the side effect and report its outcome."""
        ...
