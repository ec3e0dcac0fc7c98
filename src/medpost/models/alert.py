"""Broadcast announcement model."""

from __future__ import annotations

from pydantic import BaseModel


class Alert(BaseModel):
    """Site-wide notice shown to every visitor."""

    id: int
    title: str
    message: str
