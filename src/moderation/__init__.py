"""Moderation: approval engine for queued document changes.

Changes submitted by untrusted authors wait in a queue until a moderator
approves them.  Approval writes each change as its original author, merges
it with edits made in the meantime, and restores the original submission
metadata on the records the write creates.
"""

from moderation._version import __version__

# Core entry point
from moderation.moderation import Moderation
from moderation.pending import PendingChange

# Models
from moderation.models.author import Author
from moderation.models.change import ChangeKind, ChangeStatus, PendingChangeInfo
from moderation.models.config import ModerationConfig
from moderation.models.document import RequestOrigin, RevisionInfo
from moderation.models.overrides import OverrideBundle, TaskKey
from moderation.models.result import ConsequenceResult, FailureKind

# Consequences
from moderation.consequence import (
    ApproveEditConsequence,
    ApproveMoveConsequence,
    Consequence,
    ConsequenceContext,
    ConsequenceManager,
    InstallApproveHookConsequence,
    MarkAsConflictConsequence,
    MarkAsMergedConsequence,
    RecordingConsequenceManager,
    RejectOneConsequence,
)

# Hooks and protocols
from moderation.hooks import ApproveHook, PhaseEvent
from moderation.protocols import DocumentStore, Phase, TagStore

# Reference store, merge and diff primitives
from moderation.diff import ChangeDiff, compute_change_diff
from moderation.merge3 import merge3
from moderation.storage.documents import SqlDocumentStore

from moderation.formatting import format_timestamp

# Exceptions
from moderation.exceptions import (
    AlreadyMergedError,
    AlreadyRejectedError,
    ConsequenceError,
    DocumentNotFoundError,
    EditConflictError,
    ModerationError,
    PendingChangeNotFoundError,
    RevisionNotFoundError,
    StoreRejectedError,
)

__all__ = [
    "__version__",
    # Core
    "Moderation",
    "PendingChange",
    # Models
    "Author",
    "ChangeKind",
    "ChangeStatus",
    "PendingChangeInfo",
    "ModerationConfig",
    "RequestOrigin",
    "RevisionInfo",
    "OverrideBundle",
    "TaskKey",
    "ConsequenceResult",
    "FailureKind",
    # Consequences
    "Consequence",
    "ConsequenceContext",
    "ConsequenceManager",
    "RecordingConsequenceManager",
    "ApproveEditConsequence",
    "ApproveMoveConsequence",
    "InstallApproveHookConsequence",
    "MarkAsMergedConsequence",
    "MarkAsConflictConsequence",
    "RejectOneConsequence",
    # Hooks and protocols
    "ApproveHook",
    "PhaseEvent",
    "DocumentStore",
    "Phase",
    "TagStore",
    # Store
    "merge3",
    "ChangeDiff",
    "compute_change_diff",
    "SqlDocumentStore",
    "format_timestamp",
    # Exceptions
    "ModerationError",
    "DocumentNotFoundError",
    "RevisionNotFoundError",
    "EditConflictError",
    "StoreRejectedError",
    "PendingChangeNotFoundError",
    "AlreadyMergedError",
    "AlreadyRejectedError",
    "ConsequenceError",
]
