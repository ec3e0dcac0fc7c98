"""API route registration."""

from __future__ import annotations

from fastapi import FastAPI

from medpost.api.routes import alerts, health, posts


def register_routes(app: FastAPI) -> None:
    """Register all API routers."""
    app.include_router(health.router)
    app.include_router(alerts.router)
    app.include_router(posts.router)
