"""Consequence result model.

Failures are values: every consequence returns a ConsequenceResult, and
the caller inspects ``ok`` / ``failure`` instead of catching exceptions.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any


class FailureKind(str, enum.Enum):
    """Typed failure outcomes of a consequence."""

    PRECONDITION_FAILED = "precondition-failed"
    MERGE_CONFLICT = "merge-conflict"
    STORE_REJECTED = "store-rejected"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ConsequenceResult:
    """Outcome of running one consequence.

    Attributes:
        failure: None on success, otherwise the kind of failure.
        message: Human-readable detail (empty on success).
        value: Success payload, e.g. a dict with ``rev_id``.
    """

    failure: FailureKind | None = None
    message: str = ""
    value: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def good(cls, **value: Any) -> ConsequenceResult:
        return cls(value=value)

    @classmethod
    def fatal(cls, failure: FailureKind, message: str = "") -> ConsequenceResult:
        return cls(failure=failure, message=message or str(failure))

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def is_retryable(self) -> bool:
        """True for precondition failures, which a fresh attempt may fix."""
        return self.failure is FailureKind.PRECONDITION_FAILED

    @property
    def rev_id(self) -> int | None:
        return self.value.get("rev_id")

    def __bool__(self) -> bool:
        return self.ok

    def __str__(self) -> str:
        if self.ok:
            return f"ok {self.value}" if self.value else "ok"
        return f"fatal: {self.failure} ({self.message})"
