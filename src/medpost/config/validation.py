"""Custom configuration validation helpers."""

from __future__ import annotations

from medpost.config.loader import ConfigError, ConfigErrorCode
from medpost.models.config import Config
from medpost.plugins.registry import PluginType, get_plugin_names, validate_plugin


def validate_plugin_names(config: Config, valid_storage: list[str]) -> None:
    """Validate that the storage backend name is registered.

    Raises:
        ConfigError: If the backend name is not recognized
    """
    valid_storage_lower = {name.lower() for name in valid_storage}
    if config.storage.backend.lower() not in valid_storage_lower:
        raise ConfigError(
            f"Unknown storage backend: {config.storage.backend} "
            f"(valid: {sorted(valid_storage_lower)})",
            code=ConfigErrorCode.PLUGIN_NAMES_INVALID,
        )


def validate_plugin_configs(config: Config) -> None:
    """Validate plugin configs against registered plugin config models.

    On success the raw storage config dict is replaced by the validated model.
    """
    try:
        validated = validate_plugin(
            PluginType.STORAGE,
            config.storage.backend,
            config.storage.config,
        )
    except Exception as exc:
        raise ConfigError(
            f"Invalid plugin config:\n  storage[{config.storage.backend}]: {exc}",
            code=ConfigErrorCode.PLUGIN_CONFIG_INVALID,
            cause=exc,
        ) from exc
    config.storage.config = validated


def validate_config(config: Config) -> None:
    """Run all registry-backed validations. Plugins must already be discovered."""
    validate_plugin_names(config, get_plugin_names(PluginType.STORAGE))
    validate_plugin_configs(config)
