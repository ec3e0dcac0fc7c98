"""Interface definitions for MedPost collaborators."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from medpost.models.alert import Alert
    from medpost.models.identity import Session
    from medpost.models.post import OrphanedAsset, Post


class Shutdownable(ABC):
    """Async shutdown interface for managed components."""

    @abstractmethod
    async def shutdown(self, timeout: float | None = None) -> None:
        """Release resources and stop background work."""
        raise NotImplementedError


class SessionProvider(ABC):
    """Resolves a request credential into a session."""

    @abstractmethod
    def get_session(self, token: str | None) -> Session | None:
        """Return the session for `token`, or None when absent or invalid."""
        raise NotImplementedError


class ProfileStore(ABC):
    """Per-user profile lookups. Each lookup is independently queryable."""

    @abstractmethod
    async def has_doctor_record(self, user_id: str) -> bool:
        """Return True if a doctor record exists for the user. Raises on failure."""
        raise NotImplementedError

    @abstractmethod
    async def get_display_name(self, user_id: str) -> str | None:
        """Return the user's display name, None if no profile row. Raises on failure."""
        raise NotImplementedError


class ObjectStore(Shutdownable, ABC):
    """Stores uploaded binaries under caller-chosen paths."""

    @abstractmethod
    async def put_object(self, path: str, data: bytes, content_type: str | None = None) -> None:
        """Write `data` at `path`, overwriting any existing object. Raises on failure."""
        raise NotImplementedError

    @abstractmethod
    def public_url_for(self, path: str) -> str:
        """Return the public URL of the object at `path`.

        Derived without a remote call; valid once the object exists.
        """
        raise NotImplementedError

    @abstractmethod
    async def delete_object(self, path: str) -> None:
        """Delete the object at `path`.

        Must be idempotent: deleting a missing object should succeed.
        """
        raise NotImplementedError

    @abstractmethod
    async def ping(self) -> bool:
        """Health check. Returns True if storage is reachable."""
        raise NotImplementedError


class PostStore(ABC):
    """Relational persistence of post records."""

    @abstractmethod
    async def insert_post(self, post: Post) -> Post:
        """Insert a post and return it with database-assigned fields. Raises on failure."""
        raise NotImplementedError


class AlertStore(ABC):
    """Read access to broadcast alerts."""

    @abstractmethod
    async def list_alerts(self) -> list[Alert]:
        """Return every alert. Raises on failure."""
        raise NotImplementedError


class OrphanLedger(ABC):
    """Records uploaded assets that ended up without a referencing post."""

    @abstractmethod
    async def record_orphan(self, orphan: OrphanedAsset) -> None:
        """Append an orphaned asset. Raises on failure."""
        raise NotImplementedError

    @abstractmethod
    async def list_unresolved_orphans(
        self, *, limit: int, after_id: int | None = None
    ) -> list[OrphanedAsset]:
        """Return unresolved orphans ordered by id, after `after_id`."""
        raise NotImplementedError

    @abstractmethod
    async def mark_orphan_resolved(self, orphan_id: int) -> None:
        """Stamp the orphan as handled."""
        raise NotImplementedError

    @abstractmethod
    async def post_references(self, image_url: str) -> bool:
        """Return True if any post references `image_url`."""
        raise NotImplementedError


class Redirector(ABC):
    """Navigates the current visitor to another page."""

    @abstractmethod
    def redirect(self, target: str) -> None:
        raise NotImplementedError


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Schedules a callback after a delay, returning a cancellable handle."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...
