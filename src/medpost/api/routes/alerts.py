"""Announcement feed endpoint."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from medpost.api.dependencies import get_medpost_app
from medpost.models.alert import Alert

if TYPE_CHECKING:
    from medpost.app import Application

router = APIRouter(tags=["alerts"])


class AlertListResponse(BaseModel):
    alerts: list[Alert]


@router.get("/api/v1/alerts", response_model=AlertListResponse)
async def list_alerts(app: Application = Depends(get_medpost_app)) -> AlertListResponse:
    """List every alert. A failed fetch returns an empty list."""
    return AlertListResponse(alerts=await app.feed.fetch_all())
