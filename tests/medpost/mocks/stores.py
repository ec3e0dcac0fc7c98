"""Mock relational stores for testing."""

from __future__ import annotations

import asyncio
from datetime import datetime

from medpost.interfaces import AlertStore, OrphanLedger, PostStore, ProfileStore
from medpost.models.alert import Alert
from medpost.models.post import OrphanedAsset, Post


class MockProfileStore(ProfileStore):
    """In-memory doctors/user tables with independent failure switches."""

    def __init__(
        self,
        doctors: set[str] | None = None,
        names: dict[str, str | None] | None = None,
        fail_capability: bool = False,
        fail_name: bool = False,
        delay_s: float = 0.0,
    ) -> None:
        self.doctors = set(doctors or ())
        self.names = dict(names or {})
        self.fail_capability = fail_capability
        self.fail_name = fail_name
        self.delay_s = delay_s
        self.capability_calls = 0
        self.name_calls = 0

    async def has_doctor_record(self, user_id: str) -> bool:
        self.capability_calls += 1
        if self.delay_s > 0:
            await asyncio.sleep(self.delay_s)
        if self.fail_capability:
            raise RuntimeError("Simulated doctors lookup failure")
        return user_id in self.doctors

    async def get_display_name(self, user_id: str) -> str | None:
        self.name_calls += 1
        if self.delay_s > 0:
            await asyncio.sleep(self.delay_s)
        if self.fail_name:
            raise RuntimeError("Simulated profile lookup failure")
        return self.names.get(user_id)


class MockPostStore(PostStore):
    """Records inserted posts and assigns sequential ids."""

    def __init__(self, simulate_failure: bool = False, delay_s: float = 0.0) -> None:
        self.simulate_failure = simulate_failure
        self.delay_s = delay_s
        self.posts: list[Post] = []
        self.insert_count = 0

    async def insert_post(self, post: Post) -> Post:
        self.insert_count += 1
        if self.delay_s > 0:
            await asyncio.sleep(self.delay_s)
        if self.simulate_failure:
            raise RuntimeError("insert violates row-level security policy")
        stored = post.model_copy(
            update={"id": len(self.posts) + 1, "created_at": datetime.now()}
        )
        self.posts.append(stored)
        return stored


class MockAlertStore(AlertStore):
    def __init__(self, alerts: list[Alert] | None = None, simulate_failure: bool = False) -> None:
        self.alerts = list(alerts or [])
        self.simulate_failure = simulate_failure
        self.list_count = 0

    async def list_alerts(self) -> list[Alert]:
        self.list_count += 1
        if self.simulate_failure:
            raise RuntimeError("Simulated alerts fetch failure")
        return list(self.alerts)


class MockLedger(OrphanLedger):
    """In-memory orphan ledger. `referenced_urls` stands in for the posts table."""

    def __init__(
        self,
        referenced_urls: set[str] | None = None,
        simulate_failure: bool = False,
    ) -> None:
        self.referenced_urls = set(referenced_urls or ())
        self.simulate_failure = simulate_failure
        self.orphans: list[OrphanedAsset] = []
        self.resolved_ids: list[int] = []

    async def record_orphan(self, orphan: OrphanedAsset) -> None:
        if self.simulate_failure:
            raise RuntimeError("Simulated ledger write failure")
        self.orphans.append(orphan.model_copy(update={"id": len(self.orphans) + 1}))

    async def list_unresolved_orphans(
        self, *, limit: int, after_id: int | None = None
    ) -> list[OrphanedAsset]:
        rows = [
            orphan
            for orphan in self.orphans
            if orphan.resolved_at is None
            and orphan.id is not None
            and (after_id is None or orphan.id > after_id)
        ]
        return rows[:limit]

    async def mark_orphan_resolved(self, orphan_id: int) -> None:
        self.resolved_ids.append(orphan_id)
        self.orphans = [
            orphan.model_copy(update={"resolved_at": datetime.now()})
            if orphan.id == orphan_id
            else orphan
            for orphan in self.orphans
        ]

    async def post_references(self, image_url: str) -> bool:
        return image_url in self.referenced_urls
