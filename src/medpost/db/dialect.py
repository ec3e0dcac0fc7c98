"""Dialect-specific database operations.

All dialect differences live here so the stores can stay dialect-agnostic:
- DSN normalization (adding appropriate async drivers)
- Engine configuration (pool settings per dialect)
- Transient error classification
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE codes that indicate transient errors
_RETRYABLE_PG_SQLSTATES = frozenset(
    {
        "08000",  # connection_exception
        "08003",  # connection_does_not_exist
        "08006",  # connection_failure
        "08001",  # sqlclient_unable_to_establish_sqlconnection
        "40P01",  # deadlock_detected
        "40001",  # serialization_failure
        "53300",  # too_many_connections
        "57P01",  # admin_shutdown
    }
)

_RETRYABLE_SQLITE_MESSAGES = frozenset(
    {
        "database is locked",
        "database is busy",
    }
)


class DialectHelper:
    """Encapsulates database dialect-specific operations.

    Create an instance from a live engine with `DialectHelper.from_engine(engine)`
    or from a DSN with `DialectHelper(detect_dialect_from_dsn(dsn))`.
    """

    def __init__(self, dialect_name: str) -> None:
        if dialect_name not in ("postgresql", "sqlite"):
            raise ValueError(f"Unsupported dialect: {dialect_name}")

        self._dialect_name = dialect_name
        self._is_postgres = dialect_name == "postgresql"

    @classmethod
    def from_engine(cls, engine: AsyncEngine) -> DialectHelper:
        return cls(engine.dialect.name)

    @property
    def dialect_name(self) -> str:
        return self._dialect_name

    def is_retryable_error(self, exc: Exception) -> bool:
        """Determine if an exception represents a transient error.

        Used for logging only: inserts are never retried.
        """
        if isinstance(exc, OperationalError):
            return True
        if isinstance(exc, DBAPIError) and exc.connection_invalidated:
            return True

        if self._is_postgres:
            return _extract_sqlstate(exc) in _RETRYABLE_PG_SQLSTATES

        current: BaseException | None = exc
        while current is not None:
            msg = str(current).lower()
            if any(retryable in msg for retryable in _RETRYABLE_SQLITE_MESSAGES):
                return True
            current = current.__cause__
        return False

    def get_engine_kwargs(self, dsn: str | None = None) -> dict[str, Any]:
        """Get dialect-appropriate engine configuration.

        Args:
            dsn: Optional database connection string. Used to detect
                in-memory SQLite for special pooling needs.
        """
        if self._is_postgres:
            return {
                "pool_size": 5,
                "max_overflow": 0,
                "pool_pre_ping": True,
            }
        # In-memory SQLite needs a single shared connection.
        engine_kwargs: dict[str, Any] = {
            "pool_pre_ping": True,
        }
        if dsn is not None and ":memory:" in dsn:
            engine_kwargs.update(
                {
                    "poolclass": StaticPool,
                    "connect_args": {"check_same_thread": False},
                }
            )
        return engine_kwargs

    @staticmethod
    def normalize_dsn(dsn: str) -> str:
        """Normalize DSN to include the async driver (asyncpg / aiosqlite)."""
        if dsn.startswith("postgresql://") and "+asyncpg" not in dsn:
            return dsn.replace("postgresql://", "postgresql+asyncpg://", 1)
        if dsn.startswith("postgres://") and "+asyncpg" not in dsn:
            return dsn.replace("postgres://", "postgresql+asyncpg://", 1)
        if dsn.startswith("sqlite://") and "+aiosqlite" not in dsn:
            return dsn.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return dsn


def detect_dialect_from_dsn(dsn: str) -> str:
    """Detect database dialect from a DSN string.

    Raises:
        ValueError: If dialect cannot be detected from DSN
    """
    dsn_lower = dsn.lower()
    if dsn_lower.startswith(("postgresql://", "postgres://", "postgresql+asyncpg://")):
        return "postgresql"
    if dsn_lower.startswith(("sqlite://", "sqlite+aiosqlite://")):
        return "sqlite"
    raise ValueError(f"Cannot detect dialect from DSN: {dsn}")


def _extract_sqlstate(exc: BaseException) -> str | None:
    for candidate in (exc, getattr(exc, "orig", None), getattr(exc, "__cause__", None)):
        if candidate is None:
            continue
        sqlstate = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if sqlstate:
            return str(sqlstate)
    return None
