"""
Watchdog - Liveness fallback for lost push signals.

Armed whenever the engine is waiting on the authority. If nothing disarms
it within the window, the expiry callback runs once for the session it was
armed for. Re-arming replaces the previous timer, and a generation counter
guarantees that a timer superseded while it was already firing does
nothing.
"""

from __future__ import annotations
from typing import Awaitable, Callable
import asyncio
import logging

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0

ExpireFn = Callable[[int], Awaitable[None]]


class Watchdog:
    """
    One-shot asyncio timer bound to a session id.

    Usage:
        watchdog = Watchdog(15.0, reconciler.on_watchdog_expired)
        watchdog.arm(session_id)
        ...
        watchdog.disarm()
    """

    def __init__(self, timeout: float, on_expire: ExpireFn):
        self.timeout = timeout
        self.on_expire = on_expire
        self._task: asyncio.Task | None = None
        self._armed_for: int | None = None
        self._generation = 0

    @property
    def armed_for(self) -> int | None:
        return self._armed_for

    @property
    def is_armed(self) -> bool:
        return self._armed_for is not None

    def arm(self, session_id: int):
        """Start (or restart) the timer. Must be called inside a running loop."""
        self.disarm()
        self._generation += 1
        self._armed_for = session_id
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(session_id, self._generation))
        logger.debug("Watchdog armed for session %s (%.1fs)", session_id, self.timeout)

    def disarm(self):
        if self._task is not None and not self._task.done():
            self._task.cancel()
        if self._armed_for is not None:
            logger.debug("Watchdog disarmed for session %s", self._armed_for)
        self._task = None
        self._armed_for = None
        self._generation += 1

    async def _run(self, session_id: int, generation: int):
        await asyncio.sleep(self.timeout)
        if generation != self._generation:
            return
        self._task = None
        self._armed_for = None
        logger.info("Watchdog expired for session %s", session_id)
        await self.on_expire(session_id)
