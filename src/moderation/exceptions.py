"""Moderation exception hierarchy.

All moderation-specific exceptions inherit from ModerationError.

Exceptions raised by the document store (EditConflictError,
StoreRejectedError) never cross a consequence boundary: consequences
convert them into failure results.
"""


class ModerationError(Exception):
    """Base exception for all moderation errors."""


class DocumentNotFoundError(ModerationError):
    """Raised when a document title lookup fails."""

    def __init__(self, document: str) -> None:
        self.document = document
        super().__init__(f"Document not found: {document}")


class RevisionNotFoundError(ModerationError):
    """Raised when a revision id lookup fails."""

    def __init__(self, rev_id: int) -> None:
        self.rev_id = rev_id
        super().__init__(f"Revision not found: {rev_id}")


class EditConflictError(ModerationError):
    """Raised when a conditional write finds a different latest revision.

    The document changed between the caller's check and the write.
    Retrying the whole approval with a fresh latest revision id is safe.
    """

    def __init__(self, document: str, expected: int | None, actual: int | None) -> None:
        self.document = document
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Edit conflict on '{document}': expected latest revision "
            f"{expected}, found {actual}"
        )


class StoreRejectedError(ModerationError):
    """Raised when the document store refuses a write.

    Covers policy failures (blocked author, missing right) and validation
    failures such as oversized content.  *reason* is a short machine code.
    """

    def __init__(self, reason: str, message: str = "") -> None:
        self.reason = reason
        super().__init__(message or f"Write rejected: {reason}")


class PendingChangeNotFoundError(ModerationError):
    """Raised when a pending change id lookup fails."""

    def __init__(self, pending_id: int) -> None:
        self.pending_id = pending_id
        super().__init__(f"Pending change not found: {pending_id}")


class AlreadyMergedError(ModerationError):
    """Raised when approving a pending change that was already applied."""

    def __init__(self, pending_id: int, rev_id: int) -> None:
        self.pending_id = pending_id
        self.rev_id = rev_id
        super().__init__(
            f"Pending change {pending_id} was already merged as revision {rev_id}"
        )


class AlreadyRejectedError(ModerationError):
    """Raised when approving or rejecting a change that was already rejected."""

    def __init__(self, pending_id: int) -> None:
        self.pending_id = pending_id
        super().__init__(f"Pending change {pending_id} was already rejected")


class ConsequenceError(ModerationError):
    """Raised when a consequence is misused (e.g. submitted twice)."""
