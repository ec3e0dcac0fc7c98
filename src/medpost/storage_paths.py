"""Helpers for building storage destination paths."""

from __future__ import annotations

import re
from pathlib import PurePosixPath

from medpost.models.config import StoragePathsConfig

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9]")


def sanitize_object_name(value: str) -> str:
    """Replace every character outside [A-Za-z0-9] with an underscore."""
    return _UNSAFE_CHARS.sub("_", value)


def _normalize_dest_path(path: PurePosixPath) -> str:
    if path.is_absolute():
        raise ValueError(f"dest_path must be relative, got {path}")
    for part in path.parts:
        if part in ("", ".", ".."):
            raise ValueError(f"dest_path contains invalid segment: {path}")
    return str(path)


def build_post_asset_path(user_id: str, filename: str, paths_cfg: StoragePathsConfig) -> str:
    """Build the destination path for a post image.

    The path depends only on (user_id, filename): the same user uploading the
    same filename again targets the same object, which is overwritten.
    """
    name = sanitize_object_name(f"{user_id}_{filename}")
    path = PurePosixPath(paths_cfg.posts_dir) / name
    return _normalize_dest_path(path)
