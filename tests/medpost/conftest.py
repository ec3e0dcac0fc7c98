"""Shared pytest fixtures for MedPost tests."""

from __future__ import annotations

import sys
from collections.abc import AsyncGenerator
from pathlib import Path

# Add src to sys.path for imports
src_path = Path(__file__).parent.parent.parent / "src"
if str(src_path.resolve()) not in sys.path:
    sys.path.insert(0, str(src_path.resolve()))

import pytest

from medpost.models.identity import Identity
from medpost.models.post import DraftPost, SelectedAsset
from medpost.store.sql import Base, SQLAlchemyStore
from tests.medpost.mocks import (
    ManualScheduler,
    MockAlertStore,
    MockLedger,
    MockObjectStore,
    MockPostStore,
    MockProfileStore,
    MockRedirector,
)


@pytest.fixture
def doctor() -> Identity:
    return Identity(id="doc-1", display_name="Dr. Rivera", has_doctor_capability=True)


@pytest.fixture
def draft() -> DraftPost:
    return DraftPost(title="Clinic hours", content="Open Sunday", location="Ward 3")


@pytest.fixture
def asset() -> SelectedAsset:
    return SelectedAsset(filename="x ray.png", content=b"\x89PNG...", content_type="image/png")


@pytest.fixture
def object_store() -> MockObjectStore:
    return MockObjectStore()


@pytest.fixture
def post_store() -> MockPostStore:
    return MockPostStore()


@pytest.fixture
def profile_store() -> MockProfileStore:
    return MockProfileStore(doctors={"doc-1"}, names={"doc-1": "Dr. Rivera", "u-2": "Pat"})


@pytest.fixture
def alert_store() -> MockAlertStore:
    return MockAlertStore()


@pytest.fixture
def ledger() -> MockLedger:
    return MockLedger()


@pytest.fixture
def redirector() -> MockRedirector:
    return MockRedirector()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
async def sql_store() -> AsyncGenerator[SQLAlchemyStore, None]:
    """SQLAlchemyStore on a fresh in-memory SQLite database."""
    store = SQLAlchemyStore("sqlite:///:memory:")
    initialized = await store.initialize()
    assert initialized, "Failed to initialize SQLite store"
    assert store._engine is not None
    async with store._engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield store
    await store.shutdown()
