"""Shared test fixtures for moderation.

Provides in-memory SQLite engine, session, repository and store fixtures.
"""

from datetime import datetime

import pytest
from sqlalchemy.orm import Session, sessionmaker

from moderation.hooks import ApproveHook
from moderation.models.config import ModerationConfig
from moderation.storage.documents import SqlDocumentStore
from moderation.storage.engine import create_moderation_engine, init_db
from moderation.storage.sqlite import (
    SqliteChangeTagRepository,
    SqlitePageRepository,
    SqlitePendingChangeRepository,
    SqliteRevisionRepository,
)


@pytest.fixture
def engine():
    """In-memory SQLite engine with all tables created."""
    eng = create_moderation_engine(":memory:")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    """Session with automatic rollback after each test."""
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)
    sess = SessionLocal()
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture
def config() -> ModerationConfig:
    return ModerationConfig()


@pytest.fixture
def page_repo(session: Session) -> SqlitePageRepository:
    return SqlitePageRepository(session)


@pytest.fixture
def revision_repo(session: Session) -> SqliteRevisionRepository:
    return SqliteRevisionRepository(session)


@pytest.fixture
def tag_repo(session: Session) -> SqliteChangeTagRepository:
    return SqliteChangeTagRepository(session)


@pytest.fixture
def changes(session: Session) -> SqlitePendingChangeRepository:
    return SqlitePendingChangeRepository(session)


@pytest.fixture
def store(session: Session, config: ModerationConfig) -> SqlDocumentStore:
    return SqlDocumentStore(session, config)


@pytest.fixture
def hook(store: SqlDocumentStore):
    """ApproveHook attached to the store fixture."""
    h = ApproveHook()
    h.attach(store)
    yield h
    h.detach()


# ------------------------------------------------------------------
# Shared test helpers
# ------------------------------------------------------------------

def make_moderation(**kwargs) -> "Moderation":
    """Create an in-memory Moderation for testing."""
    from moderation import Moderation
    return Moderation.open(":memory:", **kwargs)


def make_pending_row(**overrides) -> "PendingChangeRow":
    """Build an unsaved PendingChangeRow with sensible defaults."""
    from moderation.models.change import ChangeKind
    from moderation.storage.schema import PendingChangeRow

    values = dict(
        timestamp=datetime(2024, 3, 1, 12, 0, 0),
        author_name="Alice",
        document="Page",
        kind=ChangeKind.EDIT,
        text="proposed",
    )
    values.update(overrides)
    return PendingChangeRow(**values)
