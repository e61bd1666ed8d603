# site_tree/crawler/fetcher.py
"""
Fetcher module: GET a page with the crawl's User-Agent, timeout and retry policy.
"""
from __future__ import annotations

import asyncio
import random
from typing import Optional, Protocol, Sequence

from aiohttp import ClientError, ClientSession, ClientTimeout

from site_tree.config import CrawlerConfig
from site_tree.crawler.models import PageData
from site_tree.logger import logger

RETRY_STATUS: Sequence[int] = tuple(range(500, 600)) + (429,)
_HTML_TYPES = ("text/html", "application/xhtml+xml", "text/plain")


class FetchError(Exception):
    """The page could not be fetched; the crawl skips it."""

    def __init__(self, url: str, message: str, status: Optional[int] = None) -> None:
        super().__init__(f"{url}: {message}")
        self.url = url
        self.status = status


class NotFoundError(FetchError):
    """4xx response."""


class ServerError(FetchError):
    """5xx response (after retries, if any)."""


class PageFetcher(Protocol):
    async def fetch(self, url: str) -> PageData: ...


class Fetcher:
    """aiohttp-backed page fetcher; use as ``async with Fetcher(config) as f``."""

    def __init__(
        self,
        config: CrawlerConfig,
        session: Optional[ClientSession] = None,
        retry_status: Sequence[int] = RETRY_STATUS,
    ) -> None:
        self.config = config
        self.session = session
        self._owns_session = session is None
        self._retry_status = retry_status

    async def __aenter__(self) -> Fetcher:
        if self.session is None:
            self.session = ClientSession(
                timeout=ClientTimeout(total=self.config.request_timeout),
                headers={"User-Agent": self.config.user_agent},
                raise_for_status=False,
            )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()

    async def fetch(self, url: str) -> PageData:
        """
        Fetch *url* and return its body.

        Raises NotFoundError for 4xx, ServerError for 5xx and FetchError for
        connection failures, timeouts and non-text responses.
        """
        if self.session is None:
            raise RuntimeError("Session not initialized")

        attempts = 0
        while True:
            try:
                async with self.session.get(url, allow_redirects=True) as resp:
                    status = resp.status
                    if status in self._retry_status and attempts < self.config.retry_times:
                        raise ClientError(f"retryable status {status}")
                    if 400 <= status < 500:
                        raise NotFoundError(url, f"HTTP {status}", status)
                    if status >= 500:
                        raise ServerError(url, f"HTTP {status}", status)
                    mime = resp.headers.get("Content-Type", "").split(";", 1)[0].strip().lower()
                    if mime and mime not in _HTML_TYPES:
                        raise FetchError(url, f"unsupported content type {mime}", status)
                    text = await resp.text(errors="replace")
                    return PageData(url=str(resp.url), content=text, status=status, content_type=mime)
            except asyncio.TimeoutError as exc:
                # no retry on timeout
                raise FetchError(url, "timed out") from exc
            except FetchError:
                raise
            except ClientError as exc:
                attempts += 1
                if attempts > self.config.retry_times:
                    raise FetchError(url, str(exc) or type(exc).__name__) from exc
                # exponential backoff, cap at 60s
                backoff = min(60, 2**attempts + random.random())
                logger.debug(
                    "Retry %d/%d for %s after %.2f s", attempts, self.config.retry_times, url, backoff
                )
                await asyncio.sleep(backoff)


__all__ = ("Fetcher", "PageFetcher", "FetchError", "NotFoundError", "ServerError", "RETRY_STATUS")
