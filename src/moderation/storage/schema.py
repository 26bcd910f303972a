"""SQLAlchemy ORM schema for moderation.

Defines the document store tables (pages, revisions, recent_changes,
change_tracking, log_entries, change_tags, authors) and the moderation
queue table (pending_changes), plus _moderation_meta for the schema
version.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from moderation.models.change import ChangeKind


class Base(DeclarativeBase):
    """Base class for all moderation ORM models."""

    pass


class PageRow(Base):
    """A document.  ``latest_rev_id`` points at its newest revision."""

    __tablename__ = "pages"

    page_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    latest_rev_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_redirect: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class RevisionRow(Base):
    """One immutable version of a page."""

    __tablename__ = "revisions"

    rev_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    page_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("pages.page_id"), nullable=False
    )
    parent_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    comment: Mapped[str] = mapped_column(Text, nullable=False, default="")
    author_name: Mapped[str] = mapped_column(String(255), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    minor: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    length: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("ix_revisions_page_time", "page_id", "timestamp"),
    )


class RecentChangeRow(Base):
    """Entry in the recent-changes feed, one per write."""

    __tablename__ = "recent_changes"

    rc_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    author_name: Mapped[str] = mapped_column(String(255), nullable=False)
    change_type: Mapped[str] = mapped_column(String(10), nullable=False)  # "new", "edit", "log"
    this_rev_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    last_rev_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    log_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    comment: Mapped[str] = mapped_column(Text, nullable=False, default="")
    ip: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    minor: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    bot: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("ix_recent_changes_this_rev", "this_rev_id"),
    )


class ChangeTrackingRow(Base):
    """Per-write audit row recording network origin of the writer."""

    __tablename__ = "change_tracking"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    author_name: Mapped[str] = mapped_column(String(255), nullable=False)
    this_rev_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    log_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    ip: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    ip_hex: Mapped[Optional[str]] = mapped_column(String(35), nullable=True)
    xff: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class LogEntryRow(Base):
    """Entry in the action log (moves)."""

    __tablename__ = "log_entries"

    log_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    log_type: Mapped[str] = mapped_column(String(32), nullable=False)
    action: Mapped[str] = mapped_column(String(32), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    author_name: Mapped[str] = mapped_column(String(255), nullable=False)
    comment: Mapped[str] = mapped_column(Text, nullable=False, default="")
    params_json: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)


class ChangeTagRow(Base):
    """Tag attached to a recent change, revision and/or log entry."""

    __tablename__ = "change_tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tag: Mapped[str] = mapped_column(String(255), nullable=False)
    rc_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    rev_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    log_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        Index("ix_change_tags_rev", "rev_id"),
        Index("ix_change_tags_rc", "rc_id"),
        Index("ix_change_tags_log", "log_id"),
    )


class AuthorRow(Base):
    """Registered author and the rights granted to it."""

    __tablename__ = "authors"

    name: Mapped[str] = mapped_column(String(255), primary_key=True)
    rights_json: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    blocked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class PendingChangeRow(Base):
    """A queued change awaiting moderation.

    Never deleted by the approval core: approval sets ``merged_rev_id``,
    rejection sets ``rejected``, an unresolvable merge sets ``conflict``.
    """

    __tablename__ = "pending_changes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    author_name: Mapped[str] = mapped_column(String(255), nullable=False)
    document: Mapped[str] = mapped_column(String(255), nullable=False)
    new_document: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    kind: Mapped[ChangeKind] = mapped_column(nullable=False, default=ChangeKind.EDIT)
    comment: Mapped[str] = mapped_column(Text, nullable=False, default="")
    minor: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    bot: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_new: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    base_rev_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    ip: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    xff: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tags: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # newline-delimited
    conflict: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    rejected: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    rejected_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    rejected_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    merged_rev_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        Index("ix_pending_changes_author_time", "author_name", "timestamp"),
        Index("ix_pending_changes_document", "document"),
    )


class ModerationMetaRow(Base):
    """Key-value metadata for the moderation database (schema version)."""

    __tablename__ = "_moderation_meta"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
