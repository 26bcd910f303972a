"""Consequence that approves one pending move."""

from __future__ import annotations

from dataclasses import dataclass

from moderation.consequence.base import Consequence, ConsequenceContext
from moderation.exceptions import EditConflictError, RevisionNotFoundError, StoreRejectedError
from moderation.models.author import Author
from moderation.models.result import ConsequenceResult, FailureKind


@dataclass(frozen=True)
class ApproveMoveConsequence(Consequence):
    """Rename a document as the author of the queued move."""

    pending_id: int
    author: Author
    document: str
    new_document: str
    comment: str = ""
    leave_redirect: bool = True

    def run(self, context: ConsequenceContext) -> ConsequenceResult:
        try:
            revision = context.store.move_document(
                self.document, self.new_document, self.comment, self.author,
                leave_redirect=self.leave_redirect,
            )
        except EditConflictError as e:
            return ConsequenceResult.fatal(FailureKind.PRECONDITION_FAILED, str(e))
        except StoreRejectedError as e:
            return ConsequenceResult.fatal(FailureKind.STORE_REJECTED, str(e))
        except RevisionNotFoundError as e:
            return ConsequenceResult.fatal(FailureKind.STORE_REJECTED, str(e))
        return ConsequenceResult.good(rev_id=revision.rev_id)
