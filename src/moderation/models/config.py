"""Configuration models for moderation.

ModerationConfig holds per-instance settings for the facade and the
reference document store.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class ModerationConfig(BaseModel):
    """Per-instance configuration."""

    db_path: str = ":memory:"
    db_url: Optional[str] = None
    # Attempts for an approval whose conditional write lost a race.
    precondition_retries: int = Field(default=3, ge=1)
    max_content_size: int = 2 * 1024 * 1024  # bytes
    default_rights: list[str] = ["edit", "minoredit", "move"]
    anonymous_rights: list[str] = ["edit"]
