"""Tests for the storage layer: repositories and the SQL document store."""

from __future__ import annotations

from datetime import datetime

import pytest
from sqlalchemy import select

from moderation.exceptions import EditConflictError, RevisionNotFoundError, StoreRejectedError
from moderation.models.author import Author
from moderation.protocols import DocumentStore, Phase, TagStore
from moderation.storage.engine import SCHEMA_VERSION
from moderation.storage.schema import ModerationMetaRow
from tests.conftest import make_pending_row

ALICE = Author("Alice", frozenset({"edit", "minoredit", "move"}))


class TestEngine:
    def test_schema_version_recorded(self, session):
        row = session.execute(
            select(ModerationMetaRow).where(ModerationMetaRow.key == "schema_version")
        ).scalar_one()
        assert row.value == SCHEMA_VERSION


class TestPendingChangeRepository:
    def test_save_assigns_id(self, changes):
        row = make_pending_row()
        changes.save(row)
        assert row.id is not None
        assert changes.get(row.id) is row

    def test_list_pending_excludes_resolved(self, changes):
        open_row = make_pending_row(timestamp=datetime(2024, 3, 2))
        merged = make_pending_row(merged_rev_id=1)
        rejected = make_pending_row(rejected=True)
        older = make_pending_row(timestamp=datetime(2024, 3, 1), author_name="Bob")
        for row in (open_row, merged, rejected, older):
            changes.save(row)
        assert [r.id for r in changes.list_pending()] == [older.id, open_row.id]
        assert [r.id for r in changes.list_pending("Alice")] == [open_row.id]

    def test_mark_rejected_only_once(self, changes):
        row = make_pending_row()
        changes.save(row)
        assert changes.mark_rejected(row.id, "Mod", datetime(2024, 3, 1)) == 1
        assert changes.mark_rejected(row.id, "Other", datetime(2024, 3, 2)) == 0
        assert changes.get(row.id).rejected_by == "Mod"


class TestChangeTagRepository:
    def test_tags_or_across_ids_deduplicated(self, tag_repo):
        tag_repo.add("a", rc_id=1, rev_id=10)
        tag_repo.add("b", rev_id=10)
        tag_repo.add("a", log_id=5)
        tag_repo.add("c", rc_id=2)
        assert tag_repo.get_tags(rc_id=1, rev_id=10, log_id=5) == ["a", "b"]
        assert tag_repo.get_tags() == []


class TestDocumentStore:
    def test_satisfies_protocols(self, store):
        assert isinstance(store, DocumentStore)
        assert isinstance(store.tags, TagStore)

    def test_create_and_read(self, store):
        revision = store.create_document("Page", "hello", "first", ALICE)
        assert store.exists("Page")
        assert store.get_latest_version_id("Page") == revision.rev_id
        assert store.get_content_at(revision.rev_id) == "hello"
        assert revision.comment == "first"

    def test_missing_document(self, store):
        assert not store.exists("Nope")
        assert store.get_latest_version_id("Nope") is None
        assert store.get_latest_revision("Nope") is None
        assert store.history("Nope") == []

    def test_missing_revision(self, store):
        with pytest.raises(RevisionNotFoundError):
            store.get_content_at(404)

    def test_create_existing_conflicts(self, store):
        store.create_document("Page", "hello", "", ALICE)
        with pytest.raises(EditConflictError):
            store.create_document("Page", "again", "", ALICE)

    def test_update_requires_expected_latest(self, store):
        first = store.create_document("Page", "one", "", ALICE)
        store.update_document("Page", "two", "", ALICE, expected_latest=first.rev_id)
        with pytest.raises(EditConflictError) as exc_info:
            store.update_document("Page", "three", "", ALICE, expected_latest=first.rev_id)
        assert exc_info.value.expected == first.rev_id

    def test_update_missing_document(self, store):
        with pytest.raises(EditConflictError):
            store.update_document("Nope", "text", "", ALICE, expected_latest=None)

    def test_empty_title_rejected(self, store):
        with pytest.raises(StoreRejectedError) as exc_info:
            store.create_document("  ", "text", "", ALICE)
        assert exc_info.value.reason == "invalid-title"

    def test_three_way_merge(self, store):
        assert store.three_way_merge("a\nb\nc", "A\nb\nc", "a\nb\nC") == "A\nb\nC"

    def test_failed_listener_rolls_back(self, store):
        def explode(event):
            raise RuntimeError("listener failed")

        store.on_phase(Phase.POST_FINALIZE, explode)
        with pytest.raises(RuntimeError):
            store.create_document("Page", "text", "", ALICE)
        store.off_phase(Phase.POST_FINALIZE, explode)
        assert not store.exists("Page")

    def test_phase_order(self, store):
        seen = []
        store.on_phase(Phase.PRE_FINALIZE, lambda e: seen.append((e.phase, e.rev_id)))
        store.on_phase(Phase.POST_FINALIZE, lambda e: seen.append((e.phase, e.rev_id)))
        revision = store.create_document("Page", "text", "", ALICE)
        assert seen == [(Phase.PRE_FINALIZE, None), (Phase.POST_FINALIZE, revision.rev_id)]


class TestAuthors:
    def test_unknown_user_gets_default_rights(self, store, config):
        assert store.author("Carol").rights == frozenset(config.default_rights)

    def test_ip_gets_anonymous_rights(self, store, config):
        author = store.author("192.0.2.1")
        assert author.is_anonymous
        assert author.rights == frozenset(config.anonymous_rights)

    def test_registered_author(self, store):
        store.register_author("Robot", ["edit", "bot"])
        author = store.author("Robot")
        assert author.is_allowed("bot")
        assert not author.blocked


class TestRecentChangeRepository:
    def test_lookup_by_log(self, session, store):
        from moderation.storage.sqlite import SqliteRecentChangeRepository

        store.create_document("Old", "content", "", ALICE)
        revision = store.move_document("Old", "New", "", ALICE)
        rc = store.get_recent_change(revision.rev_id)
        assert SqliteRecentChangeRepository(session).get_by_log(rc.log_id) is rc


class TestTagStore:
    def test_existing_tags_skipped(self, store):
        revision = store.create_document("Page", "text", "", ALICE)
        assert store.tags.add_tags(["a", "b"], rev_id=revision.rev_id) == ["a", "b"]
        assert store.tags.add_tags(["b", "c"], rev_id=revision.rev_id) == ["c"]

    def test_listener_removed(self, store):
        calls = []
        listener = lambda *args: calls.append(args)  # noqa: E731
        store.tags.on_tags_updated(listener)
        store.tags.off_tags_updated(listener)
        revision = store.create_document("Page", "text", "", ALICE)
        store.tags.add_tags(["a"], rev_id=revision.rev_id)
        assert calls == []

    def test_listener_sees_previous_tags(self, store):
        revision = store.create_document("Page", "text", "", ALICE)
        store.tags.add_tags(["a"], rev_id=revision.rev_id)
        calls = []
        store.tags.on_tags_updated(lambda *args: calls.append(args))
        store.tags.add_tags(["b"], rev_id=revision.rev_id)
        assert calls == [(["b"], [], ["a"], None, revision.rev_id, None)]
