"""Sliding-window rate limiter for outbound calls."""

import asyncio
import logging
import time
from collections import deque
from typing import Awaitable, Callable, Deque

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    """Allow at most ``max_requests`` acquisitions per ``window_seconds``.

    Constructed once at process start and handed to the components that make
    paced outbound calls. Waiters queue on a lock, so acquisitions are granted
    in arrival order.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._sleep = sleep
        self._timestamps: Deque[float] = deque()
        self._lock = asyncio.Lock()

    def _evict(self, now: float) -> None:
        while self._timestamps and now - self._timestamps[0] >= self.window_seconds:
            self._timestamps.popleft()

    async def acquire(self) -> None:
        """Wait until a slot is free in the current window, then take it."""
        async with self._lock:
            now = self._clock()
            self._evict(now)

            while len(self._timestamps) >= self.max_requests:
                wait_seconds = self.window_seconds - (now - self._timestamps[0])
                logger.debug(
                    "Rate limit reached, waiting",
                    extra={"wait_seconds": round(wait_seconds, 3)},
                )
                await self._sleep(wait_seconds)
                now = self._clock()
                self._evict(now)

            self._timestamps.append(now)

    @property
    def in_window(self) -> int:
        """Number of acquisitions counted in the current window."""
        self._evict(self._clock())
        return len(self._timestamps)
