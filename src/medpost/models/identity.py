"""Session and identity models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Session(BaseModel):
    """Authenticated session as reported by the session provider."""

    user_id: str
    email: str | None = None


class Identity(BaseModel):
    """Acting user for a page session. Immutable during a submission attempt."""

    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str = ""
    has_doctor_capability: bool = False

    @classmethod
    def anonymous(cls) -> Identity:
        """Non-privileged placeholder used when no session is present."""
        return cls(id="", display_name="", has_doctor_capability=False)
