"""Storage backend discovery.

Built-in backends live in `medpost.plugins.storage` and register themselves
with `@plugin` on import. Third-party backends are packages that declare a
`medpost.storage` entry point pointing at the module that registers them.
"""

from __future__ import annotations

import importlib
import logging
import pkgutil

from medpost.plugins.registry import PluginType, get_plugin_names
from medpost.plugins.utils import iter_entry_points

logger = logging.getLogger(__name__)

STORAGE_ENTRY_POINT_GROUP = "medpost.storage"
_BUILTIN_PACKAGE = "medpost.plugins.storage"


def discover_storage_backends() -> list[str]:
    """Import built-in and external storage backends.

    Modules that fail to import are logged and skipped so that one broken
    backend does not hide the others. Safe to call repeatedly.

    Returns:
        Sorted names of every registered storage backend.
    """
    package = importlib.import_module(_BUILTIN_PACKAGE)
    for module in pkgutil.iter_modules(package.__path__):
        if module.name.startswith("_"):
            continue
        _import_backend_module(f"{_BUILTIN_PACKAGE}.{module.name}", origin="built-in")

    for point in iter_entry_points(STORAGE_ENTRY_POINT_GROUP):
        _import_backend_module(point.module, origin=f"entry point {point.name}")

    names = get_plugin_names(PluginType.STORAGE)
    logger.debug("Storage backends available: %s", ", ".join(names))
    return names


def _import_backend_module(module_path: str, *, origin: str) -> None:
    try:
        importlib.import_module(module_path)
    except Exception as exc:
        logger.error(
            "Failed to import storage backend %s (%s): %s",
            module_path,
            origin,
            exc,
            exc_info=True,
        )


__all__ = ["STORAGE_ENTRY_POINT_GROUP", "discover_storage_backends"]
