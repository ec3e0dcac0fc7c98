"""SQLAlchemy implementation of the profile, post, alert and orphan stores.

Table and column names match the platform's existing schema (camelCase
columns are quoted identifiers).
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import DateTime, Index, Text, exists, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from medpost.db import DialectHelper, IdentityBigInt, create_async_engine_for_dsn
from medpost.interfaces import AlertStore, OrphanLedger, PostStore, ProfileStore, Shutdownable
from medpost.models.alert import Alert
from medpost.models.post import OrphanedAsset, Post

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class Doctor(Base):
    """Presence of a row grants the doctor capability."""

    __tablename__ = "doctors"

    user_id: Mapped[str] = mapped_column("userId", Text, primary_key=True)


class UserProfile(Base):
    __tablename__ = "user"

    user_id: Mapped[str] = mapped_column("userId", Text, primary_key=True)
    user_name: Mapped[str | None] = mapped_column("userName", Text, nullable=True)


class PostRow(Base):
    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(IdentityBigInt, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column("userId", Text, nullable=False)
    user_name: Mapped[str] = mapped_column("userName", Text, nullable=False, default="")
    title: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    location: Mapped[str] = mapped_column(Text, nullable=False)
    image_link: Mapped[str] = mapped_column("imageLink", Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("idx_posts_user_id", "userId"),
        Index("idx_posts_image_link", "imageLink"),
    )


class AlertRow(Base):
    __tablename__ = "alerts"

    id: Mapped[int] = mapped_column(IdentityBigInt, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)


class OrphanedAssetRow(Base):
    """Uploaded objects whose post insert failed."""

    __tablename__ = "orphaned_assets"

    id: Mapped[int] = mapped_column(IdentityBigInt, primary_key=True, autoincrement=True)
    path: Mapped[str] = mapped_column(Text, nullable=False)
    public_url: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[str] = mapped_column(Text, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (Index("idx_orphaned_assets_unresolved", "resolved_at", "id"),)


class SQLAlchemyStore(ProfileStore, PostStore, AlertStore, OrphanLedger, Shutdownable):
    """Relational store over a single async engine.

    Read and write methods raise on database errors; callers decide whether
    a failure is soft (identity lookups, alerts) or terminal (post insert).
    """

    def __init__(self, dsn: str) -> None:
        self._dsn = dsn
        self._engine: AsyncEngine | None = None
        self._dialect: DialectHelper | None = None

    async def initialize(self) -> bool:
        """Create the engine and verify connectivity.

        Note: Tables are created via alembic migrations, not here.

        A failed connectivity check keeps the engine: connections are opened
        per call, so the store recovers once the database is reachable.

        Returns:
            True if initialization succeeded, False otherwise
        """
        try:
            self._engine = create_async_engine_for_dsn(self._dsn)
            self._dialect = DialectHelper.from_engine(self._engine)
        except Exception as e:
            logger.error("Failed to create database engine: %s", e, exc_info=True)
            self._engine = None
            self._dialect = None
            return False

        try:
            async with self._engine.connect() as conn:
                await conn.execute(select(1))
        except Exception as e:
            logger.error("Database connectivity check failed: %s", e, exc_info=True)
            return False

        logger.info("SQLAlchemyStore initialized (%s)", self._dialect.dialect_name)
        return True

    @property
    def dialect(self) -> DialectHelper | None:
        return self._dialect

    async def has_doctor_record(self, user_id: str) -> bool:
        engine = self._require_engine()
        async with engine.connect() as conn:
            result = await conn.execute(
                select(exists().where(Doctor.user_id == user_id))
            )
            return bool(result.scalar())

    async def get_display_name(self, user_id: str) -> str | None:
        engine = self._require_engine()
        async with engine.connect() as conn:
            result = await conn.execute(
                select(UserProfile.user_name).where(UserProfile.user_id == user_id).limit(1)
            )
            return result.scalar_one_or_none()

    async def insert_post(self, post: Post) -> Post:
        engine = self._require_engine()
        created_at = post.created_at or datetime.now(UTC)
        stmt = insert(PostRow).values(
            {
                PostRow.user_id: post.author_id,
                PostRow.user_name: post.author_display_name,
                PostRow.title: post.title,
                PostRow.content: post.content,
                PostRow.location: post.location,
                PostRow.image_link: post.image_url,
                PostRow.created_at: created_at,
            }
        )
        try:
            async with engine.begin() as conn:
                result = await conn.execute(stmt)
                post_id = result.inserted_primary_key[0]
        except Exception as exc:
            transient = self._dialect is not None and self._dialect.is_retryable_error(exc)
            logger.warning("Post insert rejected (transient=%s): %s", transient, exc)
            raise
        return post.model_copy(update={"id": int(post_id), "created_at": created_at})

    async def list_alerts(self) -> list[Alert]:
        engine = self._require_engine()
        async with engine.connect() as conn:
            result = await conn.execute(
                select(AlertRow.id, AlertRow.title, AlertRow.message).order_by(AlertRow.id)
            )
            rows = result.all()
        return [Alert(id=row.id, title=row.title, message=row.message) for row in rows]

    async def record_orphan(self, orphan: OrphanedAsset) -> None:
        engine = self._require_engine()
        values: dict[str, Any] = {
            "path": orphan.path,
            "public_url": orphan.public_url,
            "author_id": orphan.author_id,
            "reason": orphan.reason,
        }
        if orphan.created_at is not None:
            values["created_at"] = orphan.created_at
        async with engine.begin() as conn:
            await conn.execute(insert(OrphanedAssetRow).values(**values))

    async def list_unresolved_orphans(
        self, *, limit: int, after_id: int | None = None
    ) -> list[OrphanedAsset]:
        engine = self._require_engine()
        query = select(OrphanedAssetRow).where(OrphanedAssetRow.resolved_at.is_(None))
        if after_id is not None:
            query = query.where(OrphanedAssetRow.id > after_id)
        query = query.order_by(OrphanedAssetRow.id).limit(limit)

        async with engine.connect() as conn:
            result = await conn.execute(query)
            rows = result.all()
        return [
            OrphanedAsset(
                id=row.id,
                path=row.path,
                public_url=row.public_url,
                author_id=row.author_id,
                reason=row.reason,
                created_at=row.created_at,
                resolved_at=row.resolved_at,
            )
            for row in rows
        ]

    async def mark_orphan_resolved(self, orphan_id: int) -> None:
        engine = self._require_engine()
        stmt = (
            update(OrphanedAssetRow)
            .where(OrphanedAssetRow.id == orphan_id)
            .values(resolved_at=datetime.now(UTC))
        )
        async with engine.begin() as conn:
            await conn.execute(stmt)

    async def post_references(self, image_url: str) -> bool:
        engine = self._require_engine()
        async with engine.connect() as conn:
            result = await conn.execute(
                select(exists().where(PostRow.image_link == image_url))
            )
            return bool(result.scalar())

    async def ping(self) -> bool:
        if self._engine is None:
            return False
        try:
            async with self._engine.connect() as conn:
                await conn.execute(select(1))
        except Exception as e:
            logger.warning("Database ping failed: %s", e)
            return False
        return True

    async def shutdown(self, timeout: float | None = None) -> None:
        _ = timeout
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
        logger.info("SQLAlchemyStore closed")

    def _require_engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("SQLAlchemyStore not initialized")
        return self._engine
