"""Tests for LocalStorage backend."""

from __future__ import annotations

from pathlib import Path

import pytest

from medpost.plugins.storage.local import LocalStorage, LocalStorageConfig


def _make_storage(tmp_path: Path, public_base_url: str | None = None) -> LocalStorage:
    """Create a LocalStorage instance with tmp_path as root."""
    config = LocalStorageConfig(root=str(tmp_path / "storage"), public_base_url=public_base_url)
    return LocalStorage(config)


class TestLocalStorageHappyPath:
    """Object lifecycle against a temporary directory."""

    @pytest.mark.asyncio
    async def test_put_then_delete(self, tmp_path: Path) -> None:
        """Put writes the bytes under the root; delete removes them."""
        # Given: A LocalStorage instance
        storage = _make_storage(tmp_path)

        # When: Writing an object
        await storage.put_object("post/doc_1_scan_png", b"image bytes", "image/png")

        # Then: Bytes are on disk under the root
        stored = tmp_path / "storage" / "post" / "doc_1_scan_png"
        assert stored.read_bytes() == b"image bytes"

        # When: Deleting the object
        await storage.delete_object("post/doc_1_scan_png")

        # Then: File is gone
        assert not stored.exists()

        await storage.shutdown()

    @pytest.mark.asyncio
    async def test_put_overwrites_existing_object(self, tmp_path: Path) -> None:
        """A second put to the same path replaces the content."""
        # Given: An existing object
        storage = _make_storage(tmp_path)
        await storage.put_object("post/a", b"first")

        # When: Writing the same path again
        await storage.put_object("post/a", b"second")

        # Then: Latest content wins
        assert (tmp_path / "storage" / "post" / "a").read_bytes() == b"second"

    @pytest.mark.asyncio
    async def test_delete_missing_object_is_noop(self, tmp_path: Path) -> None:
        """Deleting a path that was never written succeeds."""
        storage = _make_storage(tmp_path)

        await storage.delete_object("post/never_written")

    @pytest.mark.asyncio
    async def test_ping_reports_root_directory(self, tmp_path: Path) -> None:
        storage = _make_storage(tmp_path)

        assert await storage.ping() is True


class TestLocalStoragePublicUrls:
    def test_file_uri_without_base_url(self, tmp_path: Path) -> None:
        """Without a base URL, public URLs are file:// URIs."""
        storage = _make_storage(tmp_path)

        url = storage.public_url_for("post/a_png")

        assert url.startswith("file://")
        assert url.endswith("/storage/post/a_png")

    def test_base_url_prefix(self, tmp_path: Path) -> None:
        """A configured base URL is joined with the relative path."""
        storage = _make_storage(tmp_path, public_base_url="http://localhost:8080/media/")

        url = storage.public_url_for("post/a_png")

        assert url == "http://localhost:8080/media/post/a_png"


class TestLocalStorageErrors:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad_path", ["../escape", "post/../../x", "", "post\\a"])
    async def test_rejects_invalid_paths(self, tmp_path: Path, bad_path: str) -> None:
        """Paths escaping the root are rejected."""
        storage = _make_storage(tmp_path)

        with pytest.raises(ValueError):
            await storage.put_object(bad_path, b"x")

    @pytest.mark.asyncio
    async def test_operations_after_shutdown_fail(self, tmp_path: Path) -> None:
        """Writes after shutdown raise."""
        # Given: A storage that was shut down
        storage = _make_storage(tmp_path)
        await storage.shutdown()

        # When/Then: Put raises
        with pytest.raises(RuntimeError, match="shut down"):
            await storage.put_object("post/a", b"x")
