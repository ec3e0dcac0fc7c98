"""Announcement feed shown to every visitor."""

from __future__ import annotations

import logging

from medpost.interfaces import AlertStore
from medpost.models.alert import Alert

logger = logging.getLogger(__name__)


class AnnouncementFeed:
    """Fetches all alerts, fail-soft.

    A failed fetch is logged and rendered as zero alerts so the rest of the
    page is unaffected.
    """

    def __init__(self, alerts: AlertStore) -> None:
        self._alerts = alerts

    async def fetch_all(self) -> list[Alert]:
        try:
            alerts = await self._alerts.list_alerts()
        except Exception as exc:
            logger.error("Error fetching alerts: %s", exc, exc_info=exc)
            return []
        return list(alerts)
