"""SubmissionPipeline orchestrator - core submission logic."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from medpost.errors import (
    PersistenceError,
    SubmissionError,
    UploadError,
    ValidationError,
)
from medpost.interfaces import ObjectStore, OrphanLedger, PostStore
from medpost.models.config import SubmissionConfig
from medpost.models.enums import OrphanPolicy
from medpost.models.identity import Identity
from medpost.models.post import DraftPost, OrphanedAsset, Post, StoredAsset
from medpost.uploader import AssetUploader

logger = logging.getLogger(__name__)


class SubmissionPipeline:
    """Sequences validation, optional upload and the post insert.

    Implements error-as-value pattern: `submit` returns Post | SubmissionError
    instead of raising. Every failure is terminal for the attempt; nothing is
    retried.

    The two remote writes are not transactional. When the upload succeeds and
    the insert fails, the uploaded object has no referencing post. The
    configured OrphanPolicy decides whether it is deleted right away or
    recorded in the orphan ledger for the reconcile job.
    """

    def __init__(
        self,
        uploader: AssetUploader,
        posts: PostStore,
        storage: ObjectStore,
        ledger: OrphanLedger | None = None,
        config: SubmissionConfig | None = None,
    ) -> None:
        self._uploader = uploader
        self._posts = posts
        self._storage = storage
        self._ledger = ledger
        self._config = config or SubmissionConfig()

    async def submit(self, identity: Identity, draft: DraftPost) -> Post | SubmissionError:
        """Submit a draft on behalf of `identity`.

        Flow:
        1. Validate required fields (no remote calls on failure)
        2. Upload the selected asset, if any
        3. Build the post record
        4. Insert; compensate for the uploaded asset on failure
        """
        author_id = identity.id

        missing = draft.missing_fields()
        if missing:
            logger.info("Rejected draft from %s: missing %s", author_id, missing)
            return ValidationError(author_id, missing=missing)

        asset: StoredAsset | None = None
        if draft.selected_asset is not None:
            try:
                asset = await self._uploader.upload(author_id, draft.selected_asset)
            except UploadError as upload_err:
                logger.error(
                    "Upload failed for %s: %s",
                    author_id,
                    upload_err.cause,
                    exc_info=upload_err.cause,
                )
                return upload_err

        post = Post(
            author_id=author_id,
            author_display_name=identity.display_name,
            title=draft.title,
            content=draft.content,
            location=draft.location,
            image_url=asset.public_url if asset is not None else "",
        )

        try:
            stored = await self._posts.insert_post(post)
        except Exception as exc:
            logger.error("Post insert failed for %s: %s", author_id, exc, exc_info=exc)
            if asset is not None:
                await self._compensate(author_id, asset, exc)
            return PersistenceError(
                author_id,
                cause=exc,
                orphaned_path=asset.path if asset is not None else None,
            )

        logger.info(
            "Post created for %s: id=%s image=%s",
            author_id,
            stored.id,
            bool(stored.image_url),
        )
        return stored

    async def _compensate(self, author_id: str, asset: StoredAsset, cause: Exception) -> None:
        """Handle an uploaded asset whose post insert failed.

        Same-name uploads share a path, so under the delete policy the object
        is only removed when no committed post references its URL. Otherwise
        it is recorded in the ledger.

        Never raises: compensation problems are logged so they cannot mask
        the PersistenceError returned to the caller.
        """
        if self._config.orphan_policy == OrphanPolicy.DELETE:
            if await self._still_referenced(asset):
                logger.warning(
                    "Not deleting %s: a committed post still references %s",
                    asset.path,
                    asset.public_url,
                )
            else:
                try:
                    await self._storage.delete_object(asset.path)
                except Exception as exc:
                    logger.warning(
                        "Orphan delete failed for %s (recording instead): %s",
                        asset.path,
                        exc,
                        exc_info=exc,
                    )
                else:
                    logger.info("Deleted orphaned asset %s", asset.path)
                    return

        await self._record_orphan(author_id, asset, cause)

    async def _still_referenced(self, asset: StoredAsset) -> bool:
        """True when a post references the asset URL or the check itself fails."""
        if self._ledger is None:
            return False
        try:
            return await self._ledger.post_references(asset.public_url)
        except Exception as exc:
            logger.warning(
                "Reference check failed for %s (keeping object): %s",
                asset.public_url,
                exc,
                exc_info=exc,
            )
            return True

    async def _record_orphan(self, author_id: str, asset: StoredAsset, cause: Exception) -> None:
        logger.warning(
            "Orphaned asset left in storage: path=%s url=%s",
            asset.path,
            asset.public_url,
            extra={"author_id": author_id, "reason": _format_reason(cause)},
        )
        if self._ledger is None:
            return
        orphan = OrphanedAsset(
            path=asset.path,
            public_url=asset.public_url,
            author_id=author_id,
            reason=_format_reason(cause),
            created_at=datetime.now(UTC),
        )
        try:
            await self._ledger.record_orphan(orphan)
        except Exception as exc:
            logger.error(
                "Failed to record orphaned asset %s: %s",
                asset.path,
                exc,
                exc_info=exc,
            )


def _format_reason(exc: Exception) -> str:
    return f"{type(exc).__name__}: {exc}"
