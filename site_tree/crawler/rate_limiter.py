# site_tree/crawler/rate_limiter.py
"""
Site-wide request pulse shared by every worker.
"""
from __future__ import annotations

import asyncio
import time


class RateLimiter:
    """Lets at most one caller through per *interval* seconds, pool-wide.

    The lock is held while sleeping, so waiting callers queue up behind it
    and are released one per tick. ``interval == 0`` disables the limiter.
    """

    def __init__(self, interval: float) -> None:
        if interval < 0:
            raise ValueError("interval must be >= 0")
        self.interval = interval
        self._lock = asyncio.Lock()
        self._last_tick = 0.0
        self.ticks = 0

    def slow_down(self, interval: float) -> None:
        """Raise the interval, e.g. to honour a robots ``Crawl-delay``."""
        self.interval = max(self.interval, interval)

    async def wait(self) -> None:
        if self.interval <= 0:
            self.ticks += 1
            return
        async with self._lock:
            wait = self.interval - (time.monotonic() - self._last_tick)
            if wait > 0:
                await asyncio.sleep(wait)
            self._last_tick = time.monotonic()
            self.ticks += 1


__all__ = ("RateLimiter",)
