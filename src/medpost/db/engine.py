"""Database engine factory."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from medpost.db.dialect import DialectHelper, detect_dialect_from_dsn


def create_async_engine_for_dsn(dsn: str, **extra_kwargs: object) -> AsyncEngine:
    """Create an async SQLAlchemy engine with dialect-appropriate configuration.

    The DSN is normalized to its async driver and dialect defaults are
    applied; `extra_kwargs` override those defaults.

    Raises:
        ValueError: If DSN dialect is not supported
    """
    dialect = DialectHelper(detect_dialect_from_dsn(dsn))
    normalized_dsn = dialect.normalize_dsn(dsn)
    engine_kwargs = dialect.get_engine_kwargs(normalized_dsn)
    engine_kwargs.update(extra_kwargs)
    return create_async_engine(normalized_dsn, **engine_kwargs)

