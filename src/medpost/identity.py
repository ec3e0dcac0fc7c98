"""Resolve the acting user's identity and doctor capability."""

from __future__ import annotations

import asyncio
import logging

from medpost.interfaces import ProfileStore
from medpost.models.identity import Identity, Session

logger = logging.getLogger(__name__)


class IdentityResolver:
    """Builds an Identity from a session using two independent profile lookups.

    Lookup failures never propagate: a failed capability check means "not a
    doctor" (fail-closed) and a failed name lookup leaves the name empty.
    """

    def __init__(self, profiles: ProfileStore) -> None:
        self._profiles = profiles

    async def resolve(self, session: Session | None) -> Identity:
        if session is None:
            return Identity.anonymous()

        user_id = session.user_id
        is_doctor, display_name = await asyncio.gather(
            self._check_capability(user_id),
            self._lookup_display_name(user_id),
        )
        identity = Identity(
            id=user_id,
            display_name=display_name,
            has_doctor_capability=is_doctor,
        )
        logger.info(
            "Resolved identity: user_id=%s doctor=%s",
            user_id,
            identity.has_doctor_capability,
        )
        return identity

    async def _check_capability(self, user_id: str) -> bool:
        try:
            return await self._profiles.has_doctor_record(user_id)
        except Exception as exc:
            logger.error(
                "Doctor lookup failed for %s (treating as not a doctor): %s",
                user_id,
                exc,
                exc_info=exc,
            )
            return False

    async def _lookup_display_name(self, user_id: str) -> str:
        try:
            name = await self._profiles.get_display_name(user_id)
        except Exception as exc:
            logger.error("Display name lookup failed for %s: %s", user_id, exc, exc_info=exc)
            return ""
        return name or ""
