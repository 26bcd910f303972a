"""Consequences: single side-effecting moderation actions.

Public API:
    Consequence                    -- base class (frozen dataclass variants)
    ConsequenceContext             -- collaborators passed to run()
    ConsequenceManager             -- runs consequences in submission order
    RecordingConsequenceManager    -- records without running (tests)
    ApproveEditConsequence         -- apply a queued edit, merging if needed
    ApproveMoveConsequence         -- apply a queued move
    InstallApproveHookConsequence  -- register metadata overrides
    MarkAsMergedConsequence        -- record the approval outcome
    MarkAsConflictConsequence      -- flag a change for manual merge
    RejectOneConsequence           -- reject one pending change
"""

from moderation.consequence.approve_edit import ApproveEditConsequence
from moderation.consequence.approve_move import ApproveMoveConsequence
from moderation.consequence.base import Consequence, ConsequenceContext
from moderation.consequence.install_hook import InstallApproveHookConsequence
from moderation.consequence.manager import ConsequenceManager, RecordingConsequenceManager
from moderation.consequence.queue import (
    MarkAsConflictConsequence,
    MarkAsMergedConsequence,
    RejectOneConsequence,
)

__all__ = [
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
]
