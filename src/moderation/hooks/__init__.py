"""Document-store pipeline hooks.

Public API:
    ApproveHook  -- task registry + listeners patching approved writes
    PhaseEvent   -- payload delivered to phase listeners
"""

from moderation.hooks.approve import ApproveHook
from moderation.hooks.event import PhaseEvent

__all__ = [
    "ApproveHook",
    "PhaseEvent",
]
