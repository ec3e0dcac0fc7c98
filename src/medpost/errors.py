"""Error hierarchy for MedPost submission stages."""

from __future__ import annotations


class SubmissionError(Exception):
    """Base exception for all submission errors.

    Compatible with error-as-value pattern: instances can be returned as values
    instead of raised. Preserves stack traces via exception chaining.
    """

    def __init__(
        self,
        message: str,
        stage: str,
        author_id: str,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.stage = stage
        self.author_id = author_id
        self.cause = cause
        self.__cause__ = cause

    @property
    def user_message(self) -> str:
        """Message shown to the submitting user."""
        if self.cause is not None and str(self.cause):
            return str(self.cause)
        return str(self)


class ValidationError(SubmissionError):
    """Draft is missing a required field. Raised before any remote call."""

    def __init__(self, author_id: str, missing: list[str]) -> None:
        super().__init__(
            "Title, content, and location are required.",
            stage="validate",
            author_id=author_id,
        )
        self.missing = missing

    @property
    def user_message(self) -> str:
        return str(self)


class AuthorizationError(SubmissionError):
    """Actor does not hold the doctor capability."""

    def __init__(self, author_id: str, redirect_to: str) -> None:
        super().__init__(
            "You are not authorized to create posts.",
            stage="authorize",
            author_id=author_id,
        )
        self.redirect_to = redirect_to

    @property
    def user_message(self) -> str:
        return str(self)


class UploadError(SubmissionError):
    """Object store rejected the asset write."""

    def __init__(self, author_id: str, path: str | None, cause: Exception) -> None:
        super().__init__(
            f"Upload failed for {path or '<unknown path>'}",
            stage="upload",
            author_id=author_id,
            cause=cause,
        )
        self.path = path


class PersistenceError(SubmissionError):
    """Relational insert of the post record was rejected.

    `orphaned_path` is set when an asset was uploaded earlier in the same
    attempt and no post references it.
    """

    def __init__(
        self, author_id: str, cause: Exception, orphaned_path: str | None = None
    ) -> None:
        super().__init__(
            f"Post insert failed for {author_id or '<anonymous>'}",
            stage="persist",
            author_id=author_id,
            cause=cause,
        )
        self.orphaned_path = orphaned_path


class SubmissionInProgressError(SubmissionError):
    """A submission from the same form instance is still in flight."""

    def __init__(self, author_id: str) -> None:
        super().__init__(
            "A submission is already in progress.",
            stage="submit",
            author_id=author_id,
        )

    @property
    def user_message(self) -> str:
        return str(self)
