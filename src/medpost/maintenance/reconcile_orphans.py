"""Reconcile uploaded assets left without a referencing post.

This module is intended to be run via the MedPost CLI (`medpost reconcile`).
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, Field

from medpost.config import load_config, resolve_database_dsn
from medpost.interfaces import ObjectStore, OrphanLedger
from medpost.models.post import OrphanedAsset
from medpost.plugins.storage import load_storage_plugin
from medpost.store import SQLAlchemyStore

logger = logging.getLogger("medpost.reconcile_orphans")


class ReconcileOptions(BaseModel):
    """Options for the reconcile workflow (CLI-facing)."""

    config_path: Path
    batch_size: int = Field(default=100, ge=1)
    dry_run: bool = True


@dataclass(frozen=True)
class ReconcileCounts:
    scanned: int = 0
    still_referenced: int = 0
    deleted: int = 0
    delete_errors: int = 0

    def __add__(self, other: ReconcileCounts) -> ReconcileCounts:
        return ReconcileCounts(
            scanned=self.scanned + other.scanned,
            still_referenced=self.still_referenced + other.still_referenced,
            deleted=self.deleted + other.deleted,
            delete_errors=self.delete_errors + other.delete_errors,
        )


def _log_json(level: int, message: str, payload: dict[str, object]) -> None:
    if "message" not in payload:
        payload = {"message": message, **payload}
    logger.log(level, json.dumps(payload, sort_keys=True, default=str))


def _orphan_payload(
    *, run_id: str, event: str, orphan: OrphanedAsset, dry_run: bool
) -> dict[str, object]:
    return {
        "event": event,
        "run_id": run_id,
        "orphan_id": orphan.id,
        "path": orphan.path,
        "author_id": orphan.author_id,
        "dry_run": dry_run,
    }


async def run_reconcile(opts: ReconcileOptions) -> ReconcileCounts:
    """Load config, open the store and storage backend, and reconcile the ledger."""
    cfg = load_config(opts.config_path)

    storage = load_storage_plugin(cfg.storage)
    store = SQLAlchemyStore(resolve_database_dsn(cfg))
    try:
        if not await store.initialize():
            raise RuntimeError("Failed to initialize database store")
        return await reconcile_orphans(
            store,
            storage,
            batch_size=opts.batch_size,
            dry_run=opts.dry_run,
        )
    finally:
        try:
            await storage.shutdown()
        finally:
            await store.shutdown()


async def reconcile_orphans(
    ledger: OrphanLedger,
    storage: ObjectStore,
    *,
    batch_size: int = 100,
    dry_run: bool = True,
    run_id: str | None = None,
) -> ReconcileCounts:
    """Page through unresolved orphans and resolve each one.

    An orphan whose public URL is referenced by a post again (a later retry
    re-uploaded the same name) is resolved without deleting the object.
    """
    run_id = run_id or str(uuid.uuid4())
    totals = ReconcileCounts()
    after_id: int | None = None

    while True:
        rows = await ledger.list_unresolved_orphans(limit=batch_size, after_id=after_id)
        if not rows:
            break
        after_id = rows[-1].id
        totals = totals + ReconcileCounts(scanned=len(rows))

        for orphan in rows:
            totals = totals + await _process_orphan(
                ledger, storage, orphan, dry_run=dry_run, run_id=run_id
            )

        if len(rows) < batch_size:
            break

    summary: dict[str, object] = {
        "event": "reconcile.summary",
        "run_id": run_id,
        "dry_run": dry_run,
        "scanned": totals.scanned,
        "still_referenced": totals.still_referenced,
        "deleted": totals.deleted,
        "delete_errors": totals.delete_errors,
    }
    _log_json(logging.INFO, "Reconcile summary", summary)
    return totals


async def _process_orphan(
    ledger: OrphanLedger,
    storage: ObjectStore,
    orphan: OrphanedAsset,
    *,
    dry_run: bool,
    run_id: str,
) -> ReconcileCounts:
    if orphan.id is None:
        raise ValueError(f"Orphan row without id: {orphan.path}")

    if await ledger.post_references(orphan.public_url):
        _log_json(
            logging.INFO,
            "Orphan is referenced by a post; keeping object",
            _orphan_payload(
                run_id=run_id, event="reconcile.referenced", orphan=orphan, dry_run=dry_run
            ),
        )
        if not dry_run:
            await ledger.mark_orphan_resolved(orphan.id)
        return ReconcileCounts(still_referenced=1)

    if dry_run:
        _log_json(
            logging.INFO,
            "Would delete orphaned asset",
            _orphan_payload(
                run_id=run_id, event="reconcile.would_delete", orphan=orphan, dry_run=dry_run
            ),
        )
        return ReconcileCounts()

    try:
        await storage.delete_object(orphan.path)
    except Exception as exc:
        payload = _orphan_payload(
            run_id=run_id, event="reconcile.error", orphan=orphan, dry_run=dry_run
        )
        payload.update({"error_code": "delete_failed", "error_detail": str(exc)})
        _log_json(logging.WARNING, "Reconcile error: delete failed", payload)
        return ReconcileCounts(delete_errors=1)

    await ledger.mark_orphan_resolved(orphan.id)
    _log_json(
        logging.INFO,
        "Deleted orphaned asset",
        _orphan_payload(run_id=run_id, event="reconcile.deleted", orphan=orphan, dry_run=dry_run),
    )
    return ReconcileCounts(deleted=1)
