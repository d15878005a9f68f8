"""
Per-source outbound rate limiting.

A sliding-window log: each permitted call records its timestamp, and a new call
waits until fewer than ``max_calls`` timestamps remain inside the window.
"""

import asyncio
import logging
import time
from collections import deque
from typing import Awaitable, Callable, Deque

logger = logging.getLogger(__name__)


class RateLimiter:
    """Caps calls to ``max_calls`` per rolling ``period`` seconds.

    Excess callers are delayed, never dropped. Waiters are served in arrival
    order because the internal lock is held while sleeping.

    Args:
        max_calls: Calls permitted in any rolling window.
        period: Window length in seconds (60 for per-minute budgets).
        name: Label used in log messages.
        clock: Monotonic time source, injectable for tests.
        sleep: Coroutine used to wait, injectable for tests.
    """

    def __init__(
        self,
        max_calls: int,
        period: float = 60.0,
        name: str = "",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_calls < 1:
            raise ValueError(f"max_calls must be at least 1, got {max_calls}")
        self.max_calls = max_calls
        self.period = period
        self.name = name
        self._clock = clock
        self._sleep = sleep
        self._calls: Deque[float] = deque()
        self._lock = asyncio.Lock()

    @classmethod
    def per_minute(cls, rate: int, name: str = "", **kwargs) -> "RateLimiter":
        return cls(max_calls=rate, period=60.0, name=name, **kwargs)

    def _evict(self, now: float) -> None:
        while self._calls and now - self._calls[0] >= self.period:
            self._calls.popleft()

    @property
    def available(self) -> int:
        """Slots free right now."""
        self._evict(self._clock())
        return self.max_calls - len(self._calls)

    async def acquire(self) -> None:
        """Wait until a slot is free, then claim it."""
        async with self._lock:
            while True:
                now = self._clock()
                self._evict(now)
                if len(self._calls) < self.max_calls:
                    self._calls.append(now)
                    return
                wait = self.period - (now - self._calls[0])
                logger.debug("Rate limit reached for %s, waiting %.2fs", self.name or "source", wait)
                await self._sleep(wait)

    async def __aenter__(self) -> "RateLimiter":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None
