"""Asset uploader: selected binary -> publicly addressable stored object."""

from __future__ import annotations

import logging
import time

from medpost.errors import UploadError
from medpost.interfaces import ObjectStore
from medpost.models.config import StoragePathsConfig
from medpost.models.post import SelectedAsset, StoredAsset
from medpost.storage_paths import build_post_asset_path

logger = logging.getLogger(__name__)


class AssetUploader:
    """Uploads post images under a path derived from (user id, filename).

    Re-uploading the same filename as the same user overwrites the earlier
    object. Failures are not retried.
    """

    def __init__(self, storage: ObjectStore, paths: StoragePathsConfig | None = None) -> None:
        self._storage = storage
        self._paths = paths or StoragePathsConfig()

    def destination_for(self, user_id: str, asset: SelectedAsset) -> str:
        return build_post_asset_path(user_id, asset.filename, self._paths)

    async def upload(self, user_id: str, asset: SelectedAsset) -> StoredAsset:
        """Upload the asset. Raises UploadError if the object store rejects it."""
        try:
            path = self.destination_for(user_id, asset)
        except ValueError as exc:
            raise UploadError(user_id, path=None, cause=exc) from exc

        started = time.monotonic()
        try:
            await self._storage.put_object(path, asset.content, asset.content_type)
        except Exception as exc:
            raise UploadError(user_id, path=path, cause=exc) from exc

        public_url = self._storage.public_url_for(path)
        duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            "Uploaded asset for %s: path=%s bytes=%d duration_ms=%d",
            user_id,
            path,
            asset.size,
            duration_ms,
        )
        return StoredAsset(path=path, public_url=public_url)
