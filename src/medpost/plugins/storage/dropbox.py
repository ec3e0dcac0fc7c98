"""Dropbox storage backend plugin."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import PurePosixPath
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

dropbox: Any

try:
    import dropbox as _dropbox  # type: ignore[import-untyped]
except Exception:
    dropbox = None
else:
    dropbox = _dropbox


from pydantic import BaseModel

from medpost.interfaces import ObjectStore
from medpost.plugins.registry import PluginType, plugin

logger = logging.getLogger(__name__)

CHUNK_SIZE = 4 * 1024 * 1024


class DropboxStorageConfig(BaseModel):
    """Dropbox storage configuration."""

    root: str = "/medpost"
    token_env: str = "DROPBOX_TOKEN"
    app_key_env: str = "DROPBOX_APP_KEY"
    app_secret_env: str = "DROPBOX_APP_SECRET"
    refresh_token_env: str = "DROPBOX_REFRESH_TOKEN"
    web_url_prefix: str = "https://www.dropbox.com/home"
    shared_links: bool = True


def _ensure_dropbox_dependencies() -> None:
    if dropbox is None:
        raise RuntimeError("Missing dependency: dropbox. Install with: uv pip install dropbox")


@plugin(plugin_type=PluginType.STORAGE, name="dropbox")
class DropboxStorage(ObjectStore):
    """Dropbox storage backend.

    Uploads use overwrite mode, so re-uploading a path replaces the object.
    With `shared_links` enabled each upload gets a public shared link, served
    as a raw-content URL. Without it, `public_url_for` falls back to a
    `web_url_prefix` viewer URL that only the account owner can open.

    Supports two auth modes:
    1. Simple token: Set DROPBOX_TOKEN env var
    2. Refresh token flow: Set DROPBOX_APP_KEY, DROPBOX_APP_SECRET, DROPBOX_REFRESH_TOKEN
    """

    config_cls = DropboxStorageConfig

    @classmethod
    def create(cls, config: DropboxStorageConfig) -> ObjectStore:
        return cls(config)

    def __init__(self, config: DropboxStorageConfig) -> None:
        _ensure_dropbox_dependencies()
        self.root = str(config.root).rstrip("/")
        self.web_url_prefix = str(config.web_url_prefix).rstrip("/")
        self.shared_links = config.shared_links
        self.client = self._create_client(config)
        self._links: dict[str, str] = {}
        self._shutdown_called = False

        logger.info("DropboxStorage initialized: root=%s", self.root)

    def _create_client(self, config: DropboxStorageConfig) -> Any:
        """Create Dropbox client from env vars.

        Tries simple token first, then falls back to refresh token flow.
        """
        token = os.getenv(config.token_env)
        if token:
            logger.info("Using Dropbox simple token auth")
            return dropbox.Dropbox(token)

        app_key = os.getenv(config.app_key_env)
        app_secret = os.getenv(config.app_secret_env)
        refresh_token = os.getenv(config.refresh_token_env)

        if app_key and app_secret and refresh_token:
            logger.info("Using Dropbox refresh token auth")
            return dropbox.Dropbox(
                app_key=app_key,
                app_secret=app_secret,
                oauth2_refresh_token=refresh_token,
            )

        raise ValueError(
            f"Missing Dropbox credentials. Set {config.token_env} or "
            f"({config.app_key_env}, {config.app_secret_env}, {config.refresh_token_env})."
        )

    async def put_object(self, path: str, data: bytes, content_type: str | None = None) -> None:
        _ = content_type
        self._ensure_open()
        remote_path = self._full_dest_path(path)
        await asyncio.to_thread(self._upload_bytes, data, remote_path)
        if self.shared_links:
            url = await asyncio.to_thread(self._shared_link_for, remote_path)
            self._links[remote_path] = _raw_content_url(url)

    def public_url_for(self, path: str) -> str:
        remote_path = self._full_dest_path(path)
        link = self._links.get(remote_path)
        if link is not None:
            return link
        return f"{self.web_url_prefix}{remote_path}"

    def _shared_link_for(self, remote_path: str) -> str:
        """Create a public shared link, reusing one that already exists (blocking)."""
        try:
            return str(self.client.sharing_create_shared_link_with_settings(remote_path).url)
        except dropbox.exceptions.ApiError as exc:
            err = getattr(exc, "error", None)
            if err is None or not getattr(err, "is_shared_link_already_exists", lambda: False)():
                raise
        links = self.client.sharing_list_shared_links(path=remote_path, direct_only=True).links
        if not links:
            raise RuntimeError(f"No shared link available for {remote_path}")
        return str(links[0].url)

    def _upload_bytes(self, data: bytes, remote_path: str) -> None:
        """Upload bytes (blocking operation)."""
        mode = dropbox.files.WriteMode.overwrite
        if len(data) <= CHUNK_SIZE:
            self.client.files_upload(data, remote_path, mode=mode)
        else:
            self._upload_chunked(data, remote_path)
        logger.debug("Uploaded to Dropbox: %s", remote_path)

    def _upload_chunked(self, data: bytes, remote_path: str) -> None:
        """Upload in chunks using a Dropbox upload session."""
        session = self.client.files_upload_session_start(data[:CHUNK_SIZE])
        cursor = dropbox.files.UploadSessionCursor(
            session_id=session.session_id,
            offset=CHUNK_SIZE,
        )
        commit = dropbox.files.CommitInfo(
            path=remote_path,
            mode=dropbox.files.WriteMode.overwrite,
        )

        while cursor.offset < len(data):
            chunk = data[cursor.offset : cursor.offset + CHUNK_SIZE]
            if cursor.offset + len(chunk) >= len(data):
                self.client.files_upload_session_finish(chunk, cursor, commit)
                return
            self.client.files_upload_session_append_v2(chunk, cursor)
            cursor.offset += len(chunk)

    async def delete_object(self, path: str) -> None:
        """Delete file from Dropbox.

        Idempotent: missing files are treated as success.
        """
        self._ensure_open()
        remote_path = self._full_dest_path(path)
        self._links.pop(remote_path, None)

        try:
            await asyncio.to_thread(self.client.files_delete_v2, remote_path)
        except dropbox.exceptions.ApiError as exc:
            if _is_not_found(exc):
                return
            raise

    async def ping(self) -> bool:
        """Health check - verify Dropbox connection."""
        try:
            await asyncio.to_thread(self.client.users_get_current_account)
            return True
        except Exception as e:
            logger.warning("Dropbox ping failed: %s", e, exc_info=True)
            return False

    async def shutdown(self, timeout: float | None = None) -> None:
        _ = timeout
        if self._shutdown_called:
            return

        self._shutdown_called = True
        logger.info("DropboxStorage closed")

    def _ensure_open(self) -> None:
        if self._shutdown_called:
            raise RuntimeError("Storage has been shut down")

    def _full_dest_path(self, dest_path: str) -> str:
        cleaned = str(dest_path).lstrip("/")
        if not cleaned or "\\" in cleaned:
            raise ValueError(f"Invalid dest_path: {dest_path}")
        path = PurePosixPath(cleaned)
        if ".." in path.parts:
            raise ValueError(f"Invalid dest_path: {dest_path}")
        return f"{self.root}/{path}"


def _is_not_found(exc: Exception) -> bool:
    err = getattr(exc, "error", None)
    if err is None or not getattr(err, "is_path_lookup", lambda: False)():
        return False
    lookup = err.get_path_lookup()
    return bool(getattr(lookup, "is_not_found", lambda: False)())


def _raw_content_url(url: str) -> str:
    """Turn a shared-link preview URL into one that serves the file bytes."""
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query) if k not in ("dl", "raw")]
    query.append(("raw", "1"))
    return urlunsplit(parts._replace(query=urlencode(query)))
