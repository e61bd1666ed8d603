# site_tree/crawler/frontier.py
"""
Frontier queue: pending crawl targets shared by all workers.
"""
from __future__ import annotations

import asyncio
from typing import Optional

from site_tree.crawler.models import FrontierEntry


class Frontier:
    """Unbounded multi-producer/multi-consumer queue of :class:`FrontierEntry`."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[FrontierEntry] = asyncio.Queue()
        self.pushed = 0

    def push(self, entry: FrontierEntry) -> None:
        """Enqueue *entry*; never blocks since the queue is unbounded."""
        self._queue.put_nowait(entry)
        self.pushed += 1

    async def pop(self, timeout: Optional[float] = None) -> Optional[FrontierEntry]:
        """Wait for the next entry; ``None`` once *timeout* seconds pass without one."""
        if timeout is None:
            return await self._queue.get()
        try:
            return await asyncio.wait_for(self._queue.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def empty(self) -> bool:
        return self._queue.empty()


__all__ = ("Frontier",)
