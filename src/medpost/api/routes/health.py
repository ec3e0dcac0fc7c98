"""Health endpoint."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from medpost.api.dependencies import get_medpost_app

if TYPE_CHECKING:
    from medpost.app import Application

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    database: str
    storage: str


@router.get("/health", response_model=HealthResponse)
async def get_health(
    app: Application = Depends(get_medpost_app),
) -> HealthResponse | JSONResponse:
    """Liveness/readiness probe.

    The database is required; a storage outage only degrades (posts without
    images still work).
    """
    database_ok, storage_ok = await asyncio.gather(app.store.ping(), app.storage.ping())

    if not database_ok:
        status = "unhealthy"
    elif storage_ok:
        status = "healthy"
    else:
        status = "degraded"

    response = HealthResponse(
        status=status,
        database="connected" if database_ok else "unavailable",
        storage="connected" if storage_ok else "unavailable",
    )
    if not database_ok:
        return JSONResponse(status_code=503, content=response.model_dump(mode="json"))
    return response
