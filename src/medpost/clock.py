from __future__ import annotations

import asyncio
from collections.abc import Callable

from medpost.interfaces import TimerHandle


class LoopScheduler:
    """Scheduler backed by the asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)
