"""Tests for dialect helpers."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import StaticPool

from medpost.db import DialectHelper
from medpost.db.dialect import detect_dialect_from_dsn
from medpost.store import SQLAlchemyStore


@pytest.mark.parametrize(
    ("dsn", "expected"),
    [
        ("postgresql://u@h/db", "postgresql+asyncpg://u@h/db"),
        ("postgres://u@h/db", "postgresql+asyncpg://u@h/db"),
        ("postgresql+asyncpg://u@h/db", "postgresql+asyncpg://u@h/db"),
        ("sqlite:///medpost.db", "sqlite+aiosqlite:///medpost.db"),
        ("sqlite+aiosqlite:///:memory:", "sqlite+aiosqlite:///:memory:"),
    ],
)
def test_normalize_dsn_adds_async_driver(dsn: str, expected: str) -> None:
    assert DialectHelper.normalize_dsn(dsn) == expected


def test_unknown_dsn_rejected() -> None:
    with pytest.raises(ValueError, match="Cannot detect dialect"):
        detect_dialect_from_dsn("mysql://u@h/db")


def test_in_memory_sqlite_shares_one_connection() -> None:
    kwargs = DialectHelper("sqlite").get_engine_kwargs("sqlite+aiosqlite:///:memory:")

    assert kwargs["poolclass"] is StaticPool


def test_sqlite_lock_is_transient() -> None:
    helper = DialectHelper("sqlite")

    assert helper.is_retryable_error(RuntimeError("database is locked")) is True
    assert helper.is_retryable_error(RuntimeError("row-level security")) is False


def test_operational_error_is_transient() -> None:
    exc = OperationalError("INSERT", {}, Exception("connection refused"))

    assert DialectHelper("postgresql").is_retryable_error(exc) is True


@pytest.mark.asyncio
async def test_store_reports_detected_dialect(sql_store: SQLAlchemyStore) -> None:
    assert sql_store.dialect is not None
    assert sql_store.dialect.dialect_name == "sqlite"
