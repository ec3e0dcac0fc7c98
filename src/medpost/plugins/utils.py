"""Shared utilities for plugin discovery."""

from __future__ import annotations

from collections.abc import Iterable
from importlib import metadata


def iter_entry_points(group: str) -> Iterable[metadata.EntryPoint]:
    """Iterate entry points registered under `group` (e.g., "medpost.storage")."""
    return metadata.entry_points().select(group=group)
