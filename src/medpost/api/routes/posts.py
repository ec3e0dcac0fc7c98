"""Create-post endpoints."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from pydantic import BaseModel

from medpost.api.dependencies import get_medpost_app, get_session
from medpost.api.errors import submission_error_to_api_error
from medpost.errors import AuthorizationError, SubmissionError
from medpost.interfaces import Redirector
from medpost.models.identity import Session
from medpost.models.post import Post, SelectedAsset
from medpost.pages import CreatePostPage, FormView
from medpost.pipeline.form import SUCCESS_MESSAGE

if TYPE_CHECKING:
    from medpost.app import Application

logger = logging.getLogger(__name__)

router = APIRouter(tags=["posts"])


class ComposeResponse(BaseModel):
    state: str
    notice: str | None = None
    redirect_to: str | None = None
    redirect_after_s: float | None = None
    display_name: str | None = None


class PostResponse(BaseModel):
    id: int | None
    author_id: str
    author_display_name: str
    title: str
    content: str
    location: str
    image_url: str
    created_at: datetime | None
    message: str
    redirect_to: str | None


class _DeferredRedirect:
    """Pending redirect handed to the client instead of firing in-process."""

    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class _ClientScheduler:
    """Scheduler for request handlers: the client performs the delayed redirect."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> _DeferredRedirect:
        _ = (delay, callback)
        return _DeferredRedirect()


class _ClientRedirector(Redirector):
    def redirect(self, target: str) -> None:
        logger.debug("Redirect to %s delegated to client", target)


def _new_page(app: Application) -> CreatePostPage:
    return CreatePostPage(
        app.resolver,
        app.pipeline,
        _ClientRedirector(),
        _ClientScheduler(),
        gate_config=app.config.gate,
        submission_config=app.config.submission,
    )


@router.get("/api/v1/posts/compose", response_model=ComposeResponse)
async def get_compose(
    app: Application = Depends(get_medpost_app),
    session: Session | None = Depends(get_session),
) -> ComposeResponse:
    """Describe what the create-post page shows to the caller."""
    page = _new_page(app)
    try:
        view = await page.open(session)
    finally:
        page.close()

    if isinstance(view, FormView):
        return ComposeResponse(state="authorized", display_name=view.display_name)
    return ComposeResponse(
        state=view.state.value,
        notice=view.notice,
        redirect_to=view.redirect_to,
        redirect_after_s=view.redirect_after_s,
    )


@router.post(
    "/api/v1/posts",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_post(
    title: str = Form(default=""),
    content: str = Form(default=""),
    location: str = Form(default=""),
    image: UploadFile | None = File(default=None),
    app: Application = Depends(get_medpost_app),
    session: Session | None = Depends(get_session),
) -> PostResponse:
    """Submit a post as the calling doctor."""
    page = _new_page(app)
    try:
        await page.open(session)
        form = page.form
        if form is None:
            author_id = page.identity.id if page.identity is not None else ""
            raise submission_error_to_api_error(
                AuthorizationError(author_id, redirect_to=page.gate.redirect_to)
            )

        form.update(title=title, content=content, location=location)
        if image is not None and image.filename:
            form.select_asset(
                SelectedAsset(
                    filename=image.filename,
                    content=await image.read(),
                    content_type=image.content_type,
                )
            )
        result = await form.submit()
    finally:
        page.close()

    match result:
        case SubmissionError() as err:
            raise submission_error_to_api_error(err)
        case Post() as post:
            return PostResponse(
                **post.model_dump(),
                message=SUCCESS_MESSAGE,
                redirect_to=form.redirect_to,
            )
        case _:
            raise TypeError(f"Unexpected submit result type: {type(result).__name__}")
