"""Approve-hook task models.

TaskKey identifies the write an override applies to.  OverrideBundle is
the metadata the approve hook writes into records created by that write.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, field_validator

from moderation.models.change import ChangeKind


def parse_tag_list(value: object) -> list[str]:
    """Split a newline-delimited tag string into a list.

    Blank lines are dropped.  Lists and tuples are copied as-is.
    """
    if value is None:
        return []
    if isinstance(value, str):
        return [line.strip() for line in value.split("\n") if line.strip()]
    return [str(v) for v in value]


@dataclass(frozen=True)
class TaskKey:
    """(document, author, kind) triple that matches a task to a write."""

    document: str
    author: str
    kind: ChangeKind

    def __str__(self) -> str:
        return f"{self.document}|{self.author}|{self.kind}"


class OverrideBundle(BaseModel):
    """Metadata overrides applied to records created by an approved write.

    Attributes:
        ip: Origin IP address of the original submitter.
        xff: X-Forwarded-For chain of the original request.
        user_agent: User-Agent string of the original request.
        tags: Change tags to attach.  Accepts a newline-delimited string.
        timestamp: Submission time.  Applied only if it does not precede
            the latest existing revision of the document.
    """

    model_config = {"frozen": True}

    ip: Optional[str] = None
    xff: Optional[str] = None
    user_agent: Optional[str] = None
    tags: list[str] = []
    timestamp: Optional[datetime] = None

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, v: object) -> list[str]:
        return parse_tag_list(v)

    @field_validator("timestamp", mode="after")
    @classmethod
    def _as_naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        # Stored timestamps are naive UTC
        if v is not None and v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v
