"""Access gate for the create-post view."""

from __future__ import annotations

import logging

from medpost.interfaces import Redirector, Scheduler, TimerHandle
from medpost.models.enums import GateState

logger = logging.getLogger(__name__)

DEFAULT_REDIRECT_DELAY_S = 1.5
PENDING_NOTICE = "Checking authorization..."
NOT_AUTHORIZED_NOTICE = "You are not authorized to create posts. Redirecting..."


class AccessGate:
    """Blocks the privileged view until the doctor capability is known.

    A denied actor gets a single redirect after `delay_s`. The timer is
    cancelled when capability flips to true or the gate is closed, so no
    redirect fires after teardown.
    """

    def __init__(
        self,
        redirector: Redirector,
        scheduler: Scheduler,
        *,
        redirect_to: str,
        delay_s: float = DEFAULT_REDIRECT_DELAY_S,
    ) -> None:
        self._redirector = redirector
        self._scheduler = scheduler
        self._redirect_to = redirect_to
        self._delay_s = delay_s
        self._state = GateState.PENDING
        self._has_capability = False
        self._timer: TimerHandle | None = None

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def redirect_to(self) -> str:
        return self._redirect_to

    @property
    def delay_s(self) -> float:
        return self._delay_s

    @property
    def allows_form(self) -> bool:
        """True only once the actor is known to hold the capability."""
        return self._state == GateState.RESOLVED and self._has_capability

    @property
    def redirect_pending(self) -> bool:
        return self._timer is not None

    @property
    def notice(self) -> str | None:
        """Blocking notice to render instead of the form, if any."""
        if self.allows_form:
            return None
        if self._state == GateState.PENDING:
            return PENDING_NOTICE
        if self._state == GateState.CLOSED and self._has_capability:
            return None
        return NOT_AUTHORIZED_NOTICE

    def resolve(self, has_capability: bool) -> None:
        """Record the resolved capability and (re)arm or cancel the redirect."""
        if self._state in (GateState.REDIRECTED, GateState.CLOSED):
            logger.debug("Ignoring gate resolution in terminal state %s", self._state)
            return

        self._state = GateState.RESOLVED
        self._has_capability = has_capability
        if has_capability:
            self._cancel_timer()
            return
        if self._timer is None:
            logger.info(
                "Actor not authorized; redirecting to %s in %.2fs",
                self._redirect_to,
                self._delay_s,
            )
            self._timer = self._scheduler.call_later(self._delay_s, self._fire)

    def close(self) -> None:
        """Tear the gate down. Cancels any pending redirect."""
        self._cancel_timer()
        if self._state != GateState.REDIRECTED:
            self._state = GateState.CLOSED

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        self._timer = None
        if self._state != GateState.RESOLVED or self._has_capability:
            return
        self._state = GateState.REDIRECTED
        logger.info("Redirecting unauthorized actor to %s", self._redirect_to)
        self._redirector.redirect(self._redirect_to)
