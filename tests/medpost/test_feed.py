"""Tests for AnnouncementFeed."""

from __future__ import annotations

import pytest

from medpost.feed import AnnouncementFeed
from medpost.models.alert import Alert
from tests.medpost.mocks import MockAlertStore


@pytest.mark.asyncio
async def test_fetch_all_returns_every_alert_in_order() -> None:
    alerts = [
        Alert(id=1, title="Outage", message="Portal down Sunday"),
        Alert(id=2, title="Reminder", message="Update your profile"),
    ]
    feed = AnnouncementFeed(MockAlertStore(alerts))

    result = await feed.fetch_all()

    assert result == alerts


@pytest.mark.asyncio
async def test_fetch_failure_yields_empty_list() -> None:
    # Given: An alert store that errors
    store = MockAlertStore([Alert(id=1, title="t", message="m")], simulate_failure=True)
    feed = AnnouncementFeed(store)

    # When: Fetching
    result = await feed.fetch_all()

    # Then: The failure is absorbed
    assert result == []
    assert store.list_count == 1


@pytest.mark.asyncio
async def test_empty_store_yields_empty_list(alert_store: MockAlertStore) -> None:
    assert await AnnouncementFeed(alert_store).fetch_all() == []
