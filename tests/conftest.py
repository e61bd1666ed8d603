# File: tests/conftest.py
from __future__ import annotations

import asyncio
from collections import Counter
from typing import Dict, List, Optional

import pytest

from site_tree.config import CrawlerConfig
from site_tree.crawler.fetcher import FetchError, NotFoundError, ServerError
from site_tree.crawler.models import PageData


def pytest_configure(config):
    """Register custom markers so that `--strict-markers` does not fail."""
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (deselect with '-m \"not slow\"')",
    )


def html_page(links: List[str]) -> str:
    anchors = "".join(f'<a href="{href}">{href}</a>' for href in links)
    return f"<html><body>{anchors}</body></html>"


class StubFetcher:
    """
    In-memory site: maps absolute URL -> list of hrefs on that page.

    Unknown URLs raise NotFoundError, URLs in *errors* raise the given error.
    Every call is counted so tests can assert at-most-once fetching.
    """

    def __init__(
        self,
        pages: Dict[str, List[str]],
        robots: Optional[str] = None,
        errors: Optional[Dict[str, FetchError]] = None,
        delay: float = 0.0,
    ) -> None:
        self.pages = pages
        self.robots = robots
        self.errors = errors or {}
        self.delay = delay
        self.calls: Counter[str] = Counter()

    async def fetch(self, url: str) -> PageData:
        self.calls[url] += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if url in self.errors:
            raise self.errors[url]
        if url.endswith("/robots.txt"):
            if self.robots is None:
                raise NotFoundError(url, "HTTP 404", 404)
            return PageData(url=url, content=self.robots, content_type="text/plain")
        if url not in self.pages:
            raise NotFoundError(url, "HTTP 404", 404)
        return PageData(url=url, content=html_page(self.pages[url]))

    @property
    def page_calls(self) -> Counter[str]:
        return Counter({u: n for u, n in self.calls.items() if not u.endswith("/robots.txt")})


@pytest.fixture()
def make_config():
    """
    Return a factory for fast CrawlerConfig objects suitable for stub crawls.
    """

    def _make(start_url: str = "https://example.com/", **overrides) -> CrawlerConfig:
        data = dict(
            start_url=start_url,
            max_workers=8,
            crawl_rate=0,
            idle_timeout=0.3,
            request_timeout=1.0,
            respect_robots=False,
            user_agent="TestAgent/1.0",
        )
        data.update(overrides)
        return CrawlerConfig(**data)

    return _make


@pytest.fixture()
def scenario_site() -> StubFetcher:
    """Root links to /a, /b and an external page; /a links back to /b."""
    return StubFetcher(
        {
            "https://example.com/": ["/a", "/b", "https://other.com/x"],
            "https://example.com/a": ["/b"],
            "https://example.com/b": [],
        }
    )


@pytest.fixture()
def server_error() -> ServerError:
    return ServerError("https://example.com/broken", "HTTP 500", 500)
