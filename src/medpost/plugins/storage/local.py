"""Local filesystem storage backend."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path, PurePosixPath

from pydantic import BaseModel

from medpost.interfaces import ObjectStore
from medpost.plugins.registry import PluginType, plugin

logger = logging.getLogger(__name__)


class LocalStorageConfig(BaseModel):
    """Local storage configuration.

    public_base_url: when set, public URLs are `{public_base_url}/{path}`
    (e.g. a static file mount); otherwise file:// URLs are returned.
    """

    root: str = "./storage"
    public_base_url: str | None = None


@plugin(plugin_type=PluginType.STORAGE, name="local")
class LocalStorage(ObjectStore):
    """Local storage backend for development and tests."""

    config_cls = LocalStorageConfig

    @classmethod
    def create(cls, config: LocalStorageConfig) -> ObjectStore:
        return cls(config)

    def __init__(self, config: LocalStorageConfig) -> None:
        self.root = Path(config.root).expanduser().resolve()
        self.root.mkdir(parents=True, exist_ok=True)
        self._public_base_url = (
            config.public_base_url.rstrip("/") if config.public_base_url else None
        )
        self._shutdown_called = False

    async def put_object(self, path: str, data: bytes, content_type: str | None = None) -> None:
        _ = content_type
        self._ensure_open()
        dest = self._full_dest_path(path)
        dest.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(dest.write_bytes, data)
        logger.debug("Wrote %d bytes to %s", len(data), dest)

    def public_url_for(self, path: str) -> str:
        dest = self._full_dest_path(path)
        if self._public_base_url:
            return f"{self._public_base_url}/{dest.relative_to(self.root).as_posix()}"
        return dest.as_uri()

    async def delete_object(self, path: str) -> None:
        self._ensure_open()
        dest = self._full_dest_path(path)
        await asyncio.to_thread(dest.unlink, True)

    async def ping(self) -> bool:
        return self.root.exists() and self.root.is_dir()

    async def shutdown(self, timeout: float | None = None) -> None:
        _ = timeout
        self._shutdown_called = True

    def _ensure_open(self) -> None:
        if self._shutdown_called:
            raise RuntimeError("Storage has been shut down")

    def _full_dest_path(self, dest_path: str) -> Path:
        cleaned = str(dest_path).lstrip("/")
        if not cleaned or "\\" in cleaned:
            raise ValueError(f"Invalid dest_path: {dest_path}")
        path = PurePosixPath(cleaned)
        if path.is_absolute() or ".." in path.parts:
            raise ValueError(f"Invalid dest_path: {dest_path}")
        return self.root.joinpath(*path.parts)
