"""Draft, asset and post models for the submission pipeline."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class SelectedAsset(BaseModel):
    """Local binary picked in the form, not yet uploaded."""

    filename: str  # original name as selected by the user
    content: bytes = Field(repr=False)
    content_type: str | None = None

    @property
    def size(self) -> int:
        return len(self.content)


class DraftPost(BaseModel):
    """User-entered, not-yet-persisted post state."""

    title: str = ""
    content: str = ""
    location: str = ""
    selected_asset: SelectedAsset | None = None

    def missing_fields(self) -> list[str]:
        """Return required fields that are empty or whitespace-only."""
        return [
            name
            for name in ("title", "content", "location")
            if not getattr(self, name).strip()
        ]


class StoredAsset(BaseModel):
    """Uploaded object under a deterministic path."""

    model_config = ConfigDict(frozen=True)

    path: str
    public_url: str


class Post(BaseModel):
    """Persisted post record.

    `id` and `created_at` are assigned by the database on insert.
    """

    author_id: str
    author_display_name: str
    title: str
    content: str
    location: str
    image_url: str = ""
    id: int | None = None
    created_at: datetime | None = None


class OrphanedAsset(BaseModel):
    """Uploaded object left without a referencing post."""

    id: int | None = None
    path: str
    public_url: str
    author_id: str
    reason: str
    created_at: datetime | None = None
    resolved_at: datetime | None = None
