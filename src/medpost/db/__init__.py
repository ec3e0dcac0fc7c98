"""Database abstraction layer for SQLite and PostgreSQL support.

Key components:
- DialectHelper: Encapsulates dialect-specific engine and SQL details
- create_async_engine_for_dsn: Factory for creating properly configured engines
- IdentityBigInt: Autoincrementing primary key type for both dialects

Example usage:
    from medpost.db import DialectHelper, create_async_engine_for_dsn

    engine = create_async_engine_for_dsn("sqlite:///:memory:")
    dialect = DialectHelper.from_engine(engine)
"""

from medpost.db.dialect import DialectHelper
from medpost.db.engine import create_async_engine_for_dsn
from medpost.db.types import IdentityBigInt

__all__ = [
    "DialectHelper",
    "IdentityBigInt",
    "create_async_engine_for_dsn",
]
