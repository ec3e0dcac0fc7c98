"""Supabase Storage backend plugin (REST over aiohttp)."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any
from urllib.parse import quote

aiohttp: Any

try:
    import aiohttp as _aiohttp
except Exception:
    aiohttp = None
else:
    aiohttp = _aiohttp


from pydantic import BaseModel, Field

from medpost.interfaces import ObjectStore
from medpost.plugins.registry import PluginType, plugin

logger = logging.getLogger(__name__)


class SupabaseStorageConfig(BaseModel):
    """Supabase Storage configuration.

    The project URL and service key are read from the environment.
    """

    url_env: str = "SUPABASE_URL"
    key_env: str = "SUPABASE_SERVICE_KEY"
    bucket: str = "images"
    request_timeout_s: float = Field(default=30.0, gt=0.0)


def _ensure_supabase_dependencies() -> None:
    """Fail fast with a clear error if Supabase storage dependencies are missing."""
    if aiohttp is None:
        raise RuntimeError(
            "Missing dependency for Supabase storage. Install with: uv pip install aiohttp"
        )


@plugin(plugin_type=PluginType.STORAGE, name="supabase")
class SupabaseStorage(ObjectStore):
    """Supabase Storage bucket backend.

    Uploads use `x-upsert: true` so a second upload to the same path replaces
    the first. Public URLs follow the public-bucket layout and are derived
    locally.
    """

    config_cls = SupabaseStorageConfig

    @classmethod
    def create(cls, config: SupabaseStorageConfig) -> ObjectStore:
        return cls(config)

    def __init__(self, config: SupabaseStorageConfig) -> None:
        _ensure_supabase_dependencies()
        base_url = os.getenv(config.url_env)
        if not base_url:
            raise ValueError(f"Missing Supabase URL. Set {config.url_env}.")
        self._api_key = os.getenv(config.key_env)
        if not self._api_key:
            raise ValueError(f"Missing Supabase service key. Set {config.key_env}.")

        self._base_url = base_url.rstrip("/")
        self._bucket = config.bucket
        self._timeout_s = float(config.request_timeout_s)
        self._session: aiohttp.ClientSession | None = None
        self._shutdown_called = False

        logger.info("SupabaseStorage initialized: bucket=%s", self._bucket)

    async def put_object(self, path: str, data: bytes, content_type: str | None = None) -> None:
        self._ensure_open()
        url = f"{self._base_url}/storage/v1/object/{self._bucket}/{_quote_path(path)}"
        headers = {
            **self._auth_headers(),
            "x-upsert": "true",
            "Content-Type": content_type or "application/octet-stream",
        }
        session = await self._get_session()

        async with session.post(url, data=data, headers=headers) as response:
            if response.status >= 400:
                details = await response.text()
                logger.debug("Supabase upload error details: %s", details)
                raise RuntimeError(f"Supabase upload failed: HTTP {response.status}")

        logger.debug("Uploaded to Supabase: %s/%s", self._bucket, path)

    def public_url_for(self, path: str) -> str:
        return (
            f"{self._base_url}/storage/v1/object/public/{self._bucket}/{_quote_path(path)}"
        )

    async def delete_object(self, path: str) -> None:
        """Delete an object. Missing objects are reported as an empty result, not an error."""
        self._ensure_open()
        url = f"{self._base_url}/storage/v1/object/{self._bucket}"
        session = await self._get_session()

        async with session.delete(
            url, json={"prefixes": [path]}, headers=self._auth_headers()
        ) as response:
            if response.status == 404:
                return
            if response.status >= 400:
                details = await response.text()
                logger.debug("Supabase delete error details: %s", details)
                raise RuntimeError(f"Supabase delete failed: HTTP {response.status}")

    async def ping(self) -> bool:
        """Health check - verify the bucket is reachable with the configured key."""
        if self._shutdown_called or aiohttp is None:
            return False

        url = f"{self._base_url}/storage/v1/bucket/{self._bucket}"
        session = await self._get_session()
        try:
            async with session.get(url, headers=self._auth_headers()) as response:
                if response.status >= 400:
                    return False
                await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("Supabase storage ping failed: %s", e)
            return False
        return True

    async def shutdown(self, timeout: float | None = None) -> None:
        """Cleanup resources - close HTTP session."""
        _ = timeout
        if self._shutdown_called:
            return
        self._shutdown_called = True

        if self._session and not self._session.closed:
            await self._session.close()

    def _auth_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "apikey": str(self._api_key),
        }

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            if aiohttp is None:
                raise RuntimeError("aiohttp dependency is required for Supabase storage")
            timeout = aiohttp.ClientTimeout(total=self._timeout_s)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    def _ensure_open(self) -> None:
        if self._shutdown_called:
            raise RuntimeError("Storage has been shut down")


def _quote_path(path: str) -> str:
    return quote(path.lstrip("/"), safe="/")
