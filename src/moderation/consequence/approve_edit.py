"""Consequence that approves one pending edit.

The document may have changed since the edit was queued.  Three cases:

- the document does not exist: create it, no conflict is possible;
- its latest revision is still the baseline: write the new text on top;
- it moved on: three-way merge baseline / proposed / latest, and write
  the merge on top of the *latest* revision.  If the merge fails, the
  pending change is flagged as a conflict for manual resolution and no
  write happens.

Every write passes the latest revision id the decision was based on, so
the store rejects it if yet another edit slipped in (PRECONDITION_FAILED,
safe to retry with fresh state).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from moderation.consequence.base import Consequence, ConsequenceContext
from moderation.exceptions import (
    EditConflictError,
    RevisionNotFoundError,
    StoreRejectedError,
)
from moderation.models.author import Author
from moderation.models.result import ConsequenceResult, FailureKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApproveEditConsequence(Consequence):
    """Apply a queued edit to the document store.

    Attributes:
        pending_id: Id of the pending change (used to flag conflicts).
        author: Author the edit is written as.
        document: Target document title.
        text: Proposed text.
        comment: Edit summary.
        bot: Mark as bot edit; honored only if *author* has the bot right.
        minor: Mark as minor edit; the store checks the minoredit right.
        base_rev_id: Latest revision when the edit was queued (None or 0
            for edits queued against a missing document).
    """

    pending_id: int
    author: Author
    document: str
    text: str
    comment: str = ""
    bot: bool = False
    minor: bool = False
    base_rev_id: int | None = None

    def run(self, context: ConsequenceContext) -> ConsequenceResult:
        store = context.store
        bot = self.bot and self.author.is_allowed("bot")

        try:
            if not store.exists(self.document):
                # New document: nothing to conflict with
                revision = store.create_document(
                    self.document, self.text, self.comment, self.author,
                    minor=self.minor, bot=bot,
                )
                return ConsequenceResult.good(rev_id=revision.rev_id, merged=False)

            latest = store.get_latest_version_id(self.document)
            if latest == self.base_rev_id:
                revision = store.update_document(
                    self.document, self.text, self.comment, self.author,
                    expected_latest=latest, minor=self.minor, bot=bot,
                )
                return ConsequenceResult.good(rev_id=revision.rev_id, merged=False)

            # Document changed since the edit was queued
            base_text = store.get_content_at(self.base_rev_id) if self.base_rev_id else ""
            latest_text = store.get_content_at(latest) if latest is not None else ""
            merged = store.three_way_merge(base_text, self.text, latest_text)
            if merged is None:
                context.changes.mark_conflict(self.pending_id)
                logger.warning(
                    "Edit conflict: pending change %s on '%s' (base r%s, latest r%s)",
                    self.pending_id, self.document, self.base_rev_id, latest,
                )
                return ConsequenceResult.fatal(
                    FailureKind.MERGE_CONFLICT,
                    f"Changes to '{self.document}' conflict with revision {latest}",
                )

            revision = store.update_document(
                self.document, merged, self.comment, self.author,
                expected_latest=latest, minor=self.minor, bot=bot,
            )
            return ConsequenceResult.good(rev_id=revision.rev_id, merged=True)

        except EditConflictError as e:
            return ConsequenceResult.fatal(FailureKind.PRECONDITION_FAILED, str(e))
        except StoreRejectedError as e:
            return ConsequenceResult.fatal(FailureKind.STORE_REJECTED, str(e))
        except RevisionNotFoundError as e:
            # Baseline revision vanished; treat like the store refusing the write
            return ConsequenceResult.fatal(FailureKind.STORE_REJECTED, str(e))
