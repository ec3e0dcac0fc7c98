"""Object storage backend plugins."""

from __future__ import annotations

from medpost.interfaces import ObjectStore
from medpost.models.config import StorageConfig
from medpost.plugins.registry import PluginType, load_plugin


def load_storage_plugin(config: StorageConfig) -> ObjectStore:
    """Create the configured object storage backend.

    Raises:
        ValueError: If the backend is unknown
        pydantic.ValidationError: If the backend config is invalid
    """
    storage = load_plugin(PluginType.STORAGE, config.backend, config.config)
    if not isinstance(storage, ObjectStore):
        raise TypeError(
            f"Storage plugin '{config.backend}' returned {type(storage).__name__}, "
            "expected ObjectStore"
        )
    return storage


__all__ = ["load_storage_plugin"]
