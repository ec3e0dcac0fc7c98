"""Tests for the orphaned-asset reconcile job."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
import yaml

from medpost.maintenance.reconcile_orphans import (
    ReconcileCounts,
    ReconcileOptions,
    reconcile_orphans,
    run_reconcile,
)
from medpost.models.post import OrphanedAsset, Post
from medpost.store import Base, SQLAlchemyStore
from tests.medpost.mocks import MockLedger, MockObjectStore


async def _record(ledger: MockLedger | SQLAlchemyStore, storage: MockObjectStore, name: str) -> None:
    path = f"post/{name}"
    await storage.put_object(path, b"x")
    await ledger.record_orphan(
        OrphanedAsset(
            path=path,
            public_url=storage.public_url_for(path),
            author_id="doc-1",
            reason="RuntimeError: insert failed",
        )
    )


class TestReconcileOrphans:
    @pytest.mark.asyncio
    async def test_dry_run_changes_nothing(
        self, ledger: MockLedger, object_store: MockObjectStore
    ) -> None:
        # Given: Two recorded orphans
        await _record(ledger, object_store, "a")
        await _record(ledger, object_store, "b")

        # When: Running in dry-run mode
        counts = await reconcile_orphans(ledger, object_store, dry_run=True)

        # Then: Nothing is deleted or resolved
        assert counts == ReconcileCounts(scanned=2)
        assert object_store.delete_calls == []
        assert ledger.resolved_ids == []

    @pytest.mark.asyncio
    async def test_deletes_and_resolves_unreferenced(
        self, ledger: MockLedger, object_store: MockObjectStore
    ) -> None:
        await _record(ledger, object_store, "a")

        counts = await reconcile_orphans(ledger, object_store, dry_run=False)

        assert counts == ReconcileCounts(scanned=1, deleted=1)
        assert object_store.objects == {}
        assert ledger.resolved_ids == [1]

    @pytest.mark.asyncio
    async def test_referenced_object_is_kept(self, object_store: MockObjectStore) -> None:
        # Given: An orphan whose URL a later post references again
        ledger = MockLedger(
            referenced_urls={"https://cdn.test/public/images/post/a"},
        )
        await _record(ledger, object_store, "a")

        # When: Reconciling
        counts = await reconcile_orphans(ledger, object_store, dry_run=False)

        # Then: Object survives and the row is resolved
        assert counts == ReconcileCounts(scanned=1, still_referenced=1)
        assert "post/a" in object_store.objects
        assert ledger.resolved_ids == [1]

    @pytest.mark.asyncio
    async def test_delete_failure_leaves_row_unresolved(self, ledger: MockLedger) -> None:
        storage = MockObjectStore(simulate_delete_failure=True)
        await _record(ledger, storage, "a")

        counts = await reconcile_orphans(ledger, storage, dry_run=False)

        assert counts == ReconcileCounts(scanned=1, delete_errors=1)
        assert ledger.resolved_ids == []

    @pytest.mark.asyncio
    async def test_pages_through_batches(
        self, ledger: MockLedger, object_store: MockObjectStore
    ) -> None:
        for name in ("a", "b", "c", "d", "e"):
            await _record(ledger, object_store, name)

        counts = await reconcile_orphans(ledger, object_store, batch_size=2, dry_run=False)

        assert counts.scanned == 5
        assert counts.deleted == 5
        assert ledger.resolved_ids == [1, 2, 3, 4, 5]

    @pytest.mark.asyncio
    async def test_summary_logged(
        self,
        ledger: MockLedger,
        object_store: MockObjectStore,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        await _record(ledger, object_store, "a")

        with caplog.at_level(logging.INFO, logger="medpost.reconcile_orphans"):
            await reconcile_orphans(ledger, object_store, dry_run=True, run_id="run-1")

        assert '"event": "reconcile.summary"' in caplog.text
        assert '"run_id": "run-1"' in caplog.text


class TestReconcileWithDatabase:
    @pytest.mark.asyncio
    async def test_sql_ledger_round(self, sql_store: SQLAlchemyStore) -> None:
        # Given: One unreferenced and one re-referenced orphan in the database
        storage = MockObjectStore()
        await _record(sql_store, storage, "gone")
        await _record(sql_store, storage, "kept")
        await sql_store.insert_post(
            Post(
                author_id="doc-1",
                author_display_name="Dr. Rivera",
                title="t",
                content="c",
                location="l",
                image_url=storage.public_url_for("post/kept"),
            )
        )

        # When: Reconciling for real
        counts = await reconcile_orphans(sql_store, storage, dry_run=False)

        # Then: Only the unreferenced object is deleted and both rows are resolved
        assert counts == ReconcileCounts(scanned=2, still_referenced=1, deleted=1)
        assert list(storage.objects) == ["post/kept"]
        assert await sql_store.list_unresolved_orphans(limit=10) == []


class TestRunReconcile:
    @pytest.mark.asyncio
    async def test_run_reconcile_from_config(self, tmp_path: Path) -> None:
        """End to end: config file, local storage and a SQLite file database."""
        # Given: A config pointing at local storage and an empty migrated database
        db_path = tmp_path / "medpost.db"
        dsn = f"sqlite:///{db_path}"
        seed = SQLAlchemyStore(dsn)
        assert await seed.initialize()
        assert seed._engine is not None
        async with seed._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        await seed.shutdown()

        config_path = tmp_path / "config.yaml"
        config_path.write_text(
            yaml.safe_dump(
                {
                    "storage": {"backend": "local", "config": {"root": str(tmp_path / "s")}},
                    "database": {"dsn": dsn},
                }
            )
        )
        config_path.chmod(0o600)

        # When: Running the job
        counts = await run_reconcile(ReconcileOptions(config_path=config_path, dry_run=False))

        # Then: An empty ledger yields zero counts
        assert counts == ReconcileCounts()
