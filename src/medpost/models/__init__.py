"""MedPost data models."""

from medpost.models.alert import Alert
from medpost.models.config import (
    Config,
    DatabaseConfig,
    FastAPIServerConfig,
    GateConfig,
    SessionConfig,
    StorageConfig,
    StoragePathsConfig,
    SubmissionConfig,
)
from medpost.models.enums import GateState, OrphanPolicy
from medpost.models.identity import Identity, Session
from medpost.models.post import DraftPost, OrphanedAsset, Post, SelectedAsset, StoredAsset

__all__ = [
    "Alert",
    "Config",
    "DatabaseConfig",
    "DraftPost",
    "FastAPIServerConfig",
    "GateConfig",
    "GateState",
    "Identity",
    "OrphanPolicy",
    "OrphanedAsset",
    "Post",
    "SelectedAsset",
    "Session",
    "SessionConfig",
    "StorageConfig",
    "StoragePathsConfig",
    "StoredAsset",
    "SubmissionConfig",
]
