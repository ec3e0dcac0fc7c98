"""Tests for SQLAlchemyStore against in-memory SQLite."""

from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import insert

from medpost.models.post import OrphanedAsset, Post
from medpost.store import SQLAlchemyStore
from medpost.store.sql import AlertRow, Base, Doctor, UserProfile


async def _seed(store: SQLAlchemyStore, *statements: object) -> None:
    assert store._engine is not None
    async with store._engine.begin() as conn:
        for stmt in statements:
            await conn.execute(stmt)


def _post(**overrides: object) -> Post:
    values: dict[str, object] = {
        "author_id": "doc-1",
        "author_display_name": "Dr. Rivera",
        "title": "Clinic hours",
        "content": "Open Sunday",
        "location": "Ward 3",
        "image_url": "",
    }
    values.update(overrides)
    return Post.model_validate(values)


def _orphan(path: str) -> OrphanedAsset:
    return OrphanedAsset(
        path=path,
        public_url=f"https://cdn.test/{path}",
        author_id="doc-1",
        reason="RuntimeError: insert failed",
    )


class TestProfileLookups:
    @pytest.mark.asyncio
    async def test_doctor_record_presence(self, sql_store: SQLAlchemyStore) -> None:
        # Given: One doctor row
        await _seed(sql_store, insert(Doctor).values({Doctor.user_id: "doc-1"}))

        # When/Then: Only that user has the capability
        assert await sql_store.has_doctor_record("doc-1") is True
        assert await sql_store.has_doctor_record("u-2") is False

    @pytest.mark.asyncio
    async def test_display_name_lookup(self, sql_store: SQLAlchemyStore) -> None:
        await _seed(
            sql_store,
            insert(UserProfile).values(
                {UserProfile.user_id: "doc-1", UserProfile.user_name: "Dr. Rivera"}
            ),
        )

        assert await sql_store.get_display_name("doc-1") == "Dr. Rivera"
        assert await sql_store.get_display_name("missing") is None


class TestPosts:
    @pytest.mark.asyncio
    async def test_insert_assigns_id_and_timestamp(self, sql_store: SQLAlchemyStore) -> None:
        # Given: A post without database-assigned fields
        post = _post(image_url="https://cdn.test/post/doc_1_a_png")

        # When: Inserting twice
        first = await sql_store.insert_post(post)
        second = await sql_store.insert_post(post)

        # Then: Ids are assigned sequentially and the row is referenced by URL
        assert first.id is not None
        assert second.id == first.id + 1
        assert first.created_at is not None
        assert first.author_display_name == "Dr. Rivera"
        assert await sql_store.post_references("https://cdn.test/post/doc_1_a_png") is True
        assert await sql_store.post_references("https://cdn.test/other") is False


class TestAlerts:
    @pytest.mark.asyncio
    async def test_list_alerts_in_id_order(self, sql_store: SQLAlchemyStore) -> None:
        await _seed(
            sql_store,
            insert(AlertRow).values(title="Outage", message="Portal down Sunday"),
            insert(AlertRow).values(title="Reminder", message="Update your profile"),
        )

        alerts = await sql_store.list_alerts()

        assert [a.title for a in alerts] == ["Outage", "Reminder"]
        assert alerts[0].id < alerts[1].id

    @pytest.mark.asyncio
    async def test_empty_alerts(self, sql_store: SQLAlchemyStore) -> None:
        assert await sql_store.list_alerts() == []


class TestOrphanLedger:
    @pytest.mark.asyncio
    async def test_record_list_and_resolve(self, sql_store: SQLAlchemyStore) -> None:
        # Given: Three recorded orphans
        for name in ("a", "b", "c"):
            await sql_store.record_orphan(_orphan(f"post/{name}"))

        # When: Paging with limit 2
        page1 = await sql_store.list_unresolved_orphans(limit=2)
        page2 = await sql_store.list_unresolved_orphans(limit=2, after_id=page1[-1].id)

        # Then: Pages are ordered and disjoint
        assert [o.path for o in page1] == ["post/a", "post/b"]
        assert [o.path for o in page2] == ["post/c"]

        # When: Resolving the first orphan
        assert page1[0].id is not None
        await sql_store.mark_orphan_resolved(page1[0].id)

        # Then: It no longer appears as unresolved
        remaining = await sql_store.list_unresolved_orphans(limit=10)
        assert [o.path for o in remaining] == ["post/b", "post/c"]


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_ping_and_shutdown(self, sql_store: SQLAlchemyStore) -> None:
        assert await sql_store.ping() is True

        await sql_store.shutdown()

        assert await sql_store.ping() is False
        with pytest.raises(RuntimeError, match="not initialized"):
            await sql_store.list_alerts()

    @pytest.mark.asyncio
    async def test_initialize_failure_returns_false(self) -> None:
        store = SQLAlchemyStore("mysql://user@localhost/db")

        assert await store.initialize() is False
        assert await store.ping() is False

    @pytest.mark.asyncio
    async def test_store_recovers_when_database_becomes_reachable(self, tmp_path: Path) -> None:
        # Given: A SQLite file in a directory that does not exist yet
        db_dir = tmp_path / "late"
        store = SQLAlchemyStore(f"sqlite:///{db_dir / 'medpost.db'}")
        assert await store.initialize() is False
        assert await store.ping() is False

        # When: The database becomes reachable
        db_dir.mkdir()
        try:
            assert store._engine is not None
            async with store._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            await _seed(store, insert(Doctor).values({Doctor.user_id: "doc-1"}))

            # Then: Lookups succeed without re-initializing
            assert await store.ping() is True
            assert await store.has_doctor_record("doc-1") is True
        finally:
            await store.shutdown()
