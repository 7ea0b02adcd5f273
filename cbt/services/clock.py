import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

ExpiryCallback = Callable[[], Awaitable[None]]


class ExamClock:
    """Countdown for one attempt, decremented once per tick (one second)."""

    def __init__(self, duration_minutes: int, on_expire: Optional[ExpiryCallback] = None,
                 time_remaining: Optional[int] = None):
        self.duration_seconds = duration_minutes * 60
        self.time_remaining = self.duration_seconds if time_remaining is None else max(0, time_remaining)
        self.on_expire = on_expire
        self._running = self.time_remaining > 0
        self._expired_fired = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def expired(self) -> bool:
        return self.time_remaining == 0

    def stop(self):
        self._running = False

    async def tick(self) -> int:
        if not self._running:
            return self.time_remaining

        self.time_remaining = max(0, self.time_remaining - 1)
        if self.time_remaining == 0:
            self._running = False
            await self._fire_expiry()
        return self.time_remaining

    async def expire_now(self):
        """Used when the clock is already at zero on resume."""
        self.time_remaining = 0
        self._running = False
        await self._fire_expiry()

    async def _fire_expiry(self):
        if self._expired_fired:
            return
        self._expired_fired = True
        logger.info("Exam clock reached zero")
        if self.on_expire:
            await self.on_expire()
