"""Configuration models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from medpost.models.enums import OrphanPolicy


class StoragePathsConfig(BaseModel):
    """Logical storage paths for uploaded assets."""

    posts_dir: str = "post"

    @field_validator("posts_dir")
    @classmethod
    def _strip_slashes(cls, value: str) -> str:
        cleaned = value.strip().strip("/")
        if not cleaned:
            raise ValueError("storage.paths.posts_dir must not be empty")
        return cleaned


class StorageConfig(BaseModel):
    """Object storage backend configuration.

    Note: Backend names are validated against the registry at runtime via
    validate_plugin_names(). Backend-specific config is validated by the
    plugin's own config model at load time.
    """

    backend: str = "supabase"
    config: dict[str, Any] | BaseModel = Field(default_factory=dict)
    paths: StoragePathsConfig = Field(default_factory=StoragePathsConfig)

    @field_validator("backend", mode="before")
    @classmethod
    def _normalize_backend(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.lower()
        return value


class DatabaseConfig(BaseModel):
    """Relational store configuration."""

    dsn_env: str | None = None
    dsn: str | None = None

    @model_validator(mode="after")
    def _validate_dsn(self) -> DatabaseConfig:
        if not (self.dsn_env or self.dsn):
            raise ValueError("database.dsn_env or database.dsn required")
        return self


class SessionConfig(BaseModel):
    """Access token verification settings."""

    jwt_secret_env: str = "SUPABASE_JWT_SECRET"
    audience: str | None = "authenticated"
    leeway_s: int = Field(default=0, ge=0)


class GateConfig(BaseModel):
    """Access gate behaviour for non-doctor visitors."""

    redirect_delay_s: float = Field(default=1.5, ge=0.0)
    redirect_to: str = "/doctors/authenticate"


class SubmissionConfig(BaseModel):
    """Submission pipeline settings."""

    orphan_policy: OrphanPolicy = OrphanPolicy.LOG
    success_redirect: str = "/doctors/all-post"

    @field_validator("orphan_policy", mode="before")
    @classmethod
    def _normalize_policy(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.lower()
        return value


class FastAPIServerConfig(BaseModel):
    """HTTP API server configuration."""

    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])


class Config(BaseModel):
    """Main application configuration."""

    version: int = 1
    storage: StorageConfig
    database: DatabaseConfig
    session: SessionConfig = Field(default_factory=SessionConfig)
    gate: GateConfig = Field(default_factory=GateConfig)
    submission: SubmissionConfig = Field(default_factory=SubmissionConfig)
    server: FastAPIServerConfig = Field(default_factory=FastAPIServerConfig)
