# site_tree/crawler/termination.py
"""
Completion detection for a crawl run.

The crawl has no idea how big the site is, so it is declared finished
either when the page budget runs out or when the frontier has been quiet
for ``idle_timeout`` seconds with nothing in flight. Both paths go through
:meth:`TerminationDetector.fire`, which only the first caller wins; every
worker and the crawl's caller observe the same :class:`asyncio.Event`.
"""
from __future__ import annotations

import asyncio
import enum
import time
from contextlib import contextmanager
from typing import Iterator, Optional


class StopReason(str, enum.Enum):
    IDLE = "idle"
    BUDGET = "budget"


class TerminationDetector:
    """Single-fire stop broadcast plus the idle watchdog."""

    def __init__(self, idle_timeout: float) -> None:
        if idle_timeout <= 0:
            raise ValueError("idle_timeout must be > 0")
        self.idle_timeout = idle_timeout
        self._event = asyncio.Event()
        self._reason: Optional[StopReason] = None
        self._last_activity = time.monotonic()
        self._in_flight = 0

    @property
    def fired(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[StopReason]:
        return self._reason

    @property
    def in_flight(self) -> int:
        return self._in_flight

    def fire(self, reason: StopReason) -> bool:
        """Broadcast stop; True only for the call that actually fired it."""
        if self._event.is_set():
            return False
        self._reason = reason
        self._event.set()
        return True

    def touch(self) -> None:
        self._last_activity = time.monotonic()

    @contextmanager
    def active(self) -> Iterator[None]:
        """Mark one frontier entry as being processed."""
        self._in_flight += 1
        self.touch()
        try:
            yield
        finally:
            self._in_flight -= 1
            self.touch()

    def idle_for(self) -> float:
        return time.monotonic() - self._last_activity

    async def wait(self) -> StopReason:
        await self._event.wait()
        assert self._reason is not None
        return self._reason

    async def watch(self) -> None:
        """Fire ``IDLE`` once nothing happened for ``idle_timeout`` seconds."""
        while not self._event.is_set():
            remaining = self.idle_timeout - self.idle_for()
            if remaining <= 0 and self._in_flight == 0:
                self.fire(StopReason.IDLE)
                return
            try:
                await asyncio.wait_for(self._event.wait(), timeout=max(remaining, 0.01))
            except asyncio.TimeoutError:
                pass


__all__ = ("StopReason", "TerminationDetector")
