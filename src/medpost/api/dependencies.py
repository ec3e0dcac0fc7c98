"""FastAPI dependency helpers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, cast

from fastapi import Depends, Request, status

from medpost.api.errors import APIError, APIErrorCode
from medpost.logging_setup import set_user_id
from medpost.models.identity import Session

if TYPE_CHECKING:
    from medpost.app import Application

logger = logging.getLogger(__name__)


async def get_medpost_app(request: Request) -> Application:
    """Get the MedPost Application instance from request state."""
    app = cast("Application | None", getattr(request.app.state, "medpost", None))
    if app is None:
        raise APIError(
            "Application not initialized",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code=APIErrorCode.APP_NOT_INITIALIZED,
        )
    return app


async def get_session(
    request: Request, app: Application = Depends(get_medpost_app)
) -> Session | None:
    """Resolve the caller's session from the bearer access token.

    A missing or invalid token yields None (an anonymous visitor), never an error.
    """
    session = app.session_provider.get_session(_parse_bearer_token(request))
    set_user_id(session.user_id if session is not None else None)
    return session


def _parse_bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    return auth_header.removeprefix("Bearer ").strip() or None
