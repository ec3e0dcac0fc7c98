"""Mock implementations for testing."""

from tests.medpost.mocks.navigation import ManualScheduler, MockRedirector
from tests.medpost.mocks.object_store import MockObjectStore
from tests.medpost.mocks.stores import (
    MockAlertStore,
    MockLedger,
    MockPostStore,
    MockProfileStore,
)

__all__ = [
    "ManualScheduler",
    "MockAlertStore",
    "MockLedger",
    "MockObjectStore",
    "MockPostStore",
    "MockProfileStore",
    "MockRedirector",
]
