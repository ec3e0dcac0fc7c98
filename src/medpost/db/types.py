"""Database-agnostic type definitions."""

from __future__ import annotations

from sqlalchemy import BigInteger, Integer

# SQLite only autoincrements an INTEGER PRIMARY KEY (rowid alias); PostgreSQL
# keeps the wider BIGINT identity column.
IdentityBigInt = BigInteger().with_variant(Integer(), "sqlite")
