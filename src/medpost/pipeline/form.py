"""Post form: owns one draft and guards against concurrent submits."""

from __future__ import annotations

import logging

from medpost.errors import SubmissionError, SubmissionInProgressError
from medpost.models.identity import Identity
from medpost.models.post import DraftPost, Post, SelectedAsset
from medpost.pipeline.core import SubmissionPipeline

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Your post has been created successfully!"


class PostForm:
    """One create-post form instance.

    At most one submission is in flight per instance; `submitting` doubles as
    the disabled state of the submit control. The draft is cleared after a
    successful submit and kept unchanged after a failed one.
    """

    def __init__(
        self,
        pipeline: SubmissionPipeline,
        identity: Identity,
        *,
        success_redirect: str = "/doctors/all-post",
    ) -> None:
        self._pipeline = pipeline
        self._identity = identity
        self._success_redirect = success_redirect
        self.draft = DraftPost()
        self.submitting = False
        self.error_message: str | None = None
        self.success_message: str | None = None
        self.redirect_to: str | None = None

    @property
    def submit_disabled(self) -> bool:
        return self.submitting

    def update(
        self,
        *,
        title: str | None = None,
        content: str | None = None,
        location: str | None = None,
    ) -> None:
        if title is not None:
            self.draft.title = title
        if content is not None:
            self.draft.content = content
        if location is not None:
            self.draft.location = location

    def select_asset(self, asset: SelectedAsset | None) -> None:
        self.draft.selected_asset = asset

    async def submit(self) -> Post | SubmissionError:
        if self.submitting:
            logger.info("Ignoring submit from %s: already in flight", self._identity.id)
            return SubmissionInProgressError(self._identity.id)

        # Flag must be set before the first await.
        self.submitting = True
        self.error_message = None
        self.success_message = None
        try:
            result = await self._pipeline.submit(self._identity, self.draft.model_copy())
        finally:
            self.submitting = False

        match result:
            case SubmissionError() as err:
                self.error_message = err.user_message
            case Post():
                self.success_message = SUCCESS_MESSAGE
                self.redirect_to = self._success_redirect
                self.draft = DraftPost()
            case _:
                raise TypeError(f"Unexpected submit result type: {type(result).__name__}")
        return result
