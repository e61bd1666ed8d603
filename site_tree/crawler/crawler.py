# === FILE: site_tree/crawler/crawler.py ===
from __future__ import annotations

import asyncio
import time
from typing import Callable, List, Optional, Sequence

from site_tree.config import CrawlerConfig
from site_tree.crawler.classifier import accept
from site_tree.crawler.fetcher import Fetcher, FetchError, NotFoundError, PageFetcher
from site_tree.crawler.frontier import Frontier
from site_tree.crawler.models import FrontierEntry, Node, PageData, SiteMap
from site_tree.crawler.rate_limiter import RateLimiter
from site_tree.crawler.registry import Registry
from site_tree.crawler.termination import StopReason, TerminationDetector
from site_tree.logger import logger
from site_tree.parser.html_parser import extract_links
from site_tree.parser.robots_parser import RobotsRules, parse_robots
from site_tree.utils import extract_host, is_crawlable_url, normalize_url, robots_url

__all__ = ("SiteCrawler", "CrawlStartupError", "LinkParser", "RobotsParser")

LinkParser = Callable[[str, str], Sequence[str]]
RobotsParser = Callable[[str, str, str], RobotsRules]


class CrawlStartupError(Exception):
    """The crawl could not start: bad seed URL or unreadable robots.txt."""


class SiteCrawler:
    """Асинхронный краулер одного сайта: пул воркеров над общей очередью ссылок.

    Каждый запуск :meth:`crawl` создаёт собственные Registry, Frontier,
    RateLimiter и TerminationDetector, так что состояние не переживает
    запуск и не делится между экземплярами.
    """

    def __init__(
        self,
        config: CrawlerConfig,
        fetcher: Optional[PageFetcher] = None,
        link_parser: LinkParser = extract_links,
        robots_parser: RobotsParser = parse_robots,
    ) -> None:
        self.config = config
        self.fetcher = fetcher
        self._own_fetcher: Optional[Fetcher] = None
        self.link_parser = link_parser
        self.robots_parser = robots_parser

        self.registry = Registry(config.max_pages)
        self.frontier = Frontier()
        self.limiter = RateLimiter(config.crawl_rate)
        self.detector = TerminationDetector(config.idle_timeout)
        self.site_map: Optional[SiteMap] = None
        self.host = ""
        self.robots_rules: Optional[RobotsRules] = None
        self.skipped: List[str] = []

    async def __aenter__(self) -> SiteCrawler:
        if self.fetcher is None:
            self._own_fetcher = Fetcher(self.config)
            await self._own_fetcher.__aenter__()
            self.fetcher = self._own_fetcher
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._own_fetcher is not None:
            await self._own_fetcher.close()

    @property
    def stop_reason(self) -> Optional[StopReason]:
        return self.detector.reason

    async def crawl(self) -> SiteMap:
        """Обходит сайт и возвращает готовое (замороженное) дерево страниц."""
        if self.fetcher is None:
            raise RuntimeError("Fetcher not initialized, use 'async with SiteCrawler(...)'")
        if self.site_map is not None:
            raise RuntimeError("SiteCrawler instances are single-use")

        seed = normalize_url(self.config.seed)
        if not is_crawlable_url(seed):
            raise CrawlStartupError(f"Invalid start URL: {self.config.seed}")
        self.host = extract_host(seed)

        if self.config.respect_robots:
            await self._load_robots(seed)
            if self.registry.is_banned(seed):
                raise CrawlStartupError(f"Start URL disallowed by robots.txt: {seed}")

        logger.info("Starting crawl: %s (%d workers)", seed, self.config.max_workers)
        start = time.monotonic()

        root = Node(seed)
        self.site_map = SiteMap(root)
        self.registry.try_claim(seed)
        self.frontier.push(FrontierEntry(root))
        self.detector.touch()

        workers = [
            asyncio.create_task(self._worker(), name=f"site-tree-worker-{i}")
            for i in range(self.config.max_workers)
        ]
        watchdog = asyncio.create_task(self.detector.watch(), name="site-tree-watchdog")
        try:
            reason = await self.detector.wait()
        finally:
            self.detector.fire(StopReason.IDLE)
            for task in (*workers, watchdog):
                task.cancel()
            await asyncio.gather(*workers, watchdog, return_exceptions=True)
            self.site_map.freeze(self.detector.reason.value)

        duration = time.monotonic() - start
        logger.info(
            "Crawl finished (%s): %d pages visited, %d nodes in %.2f s",
            reason.value,
            self.registry.visited_count,
            self.site_map.count(),
            duration,
        )
        return self.site_map

    async def _load_robots(self, seed: str) -> None:
        url = robots_url(seed)
        assert self.fetcher is not None
        try:
            page = await self.fetcher.fetch(url)
        except NotFoundError as exc:
            logger.info("No robots.txt at %s (HTTP %s), crawling unrestricted", url, exc.status)
            self.registry.load_banned([])
            return
        except FetchError as exc:
            raise CrawlStartupError(f"Could not load robots.txt: {exc}") from exc

        self.robots_rules = self.robots_parser(page.content, url, self.config.user_agent)
        self.registry.load_banned(self.robots_rules.disallowed)
        if self.robots_rules.crawl_delay:
            self.limiter.slow_down(self.robots_rules.crawl_delay)
        logger.info(
            "robots.txt: %d disallowed prefixes, crawl delay %s",
            len(self.robots_rules.disallowed),
            self.robots_rules.crawl_delay,
        )

    async def _worker(self) -> None:
        """Pop an entry, then take the shared rate-limit pulse, then fetch it.

        The pulse is taken after the pop so that workers idling on an empty
        frontier do not bank ticks and start a burst of fetches later.
        """
        while not self.detector.fired:
            entry = await self.frontier.pop(timeout=self.config.idle_timeout)
            if entry is None:
                continue
            with self.detector.active():
                await self.limiter.wait()
                if self.detector.fired:
                    return
                await self._process(entry)

    async def _process(self, entry: FrontierEntry) -> None:
        """Fetch one frontier entry and push every newly claimed link it yields."""
        assert self.fetcher is not None and self.site_map is not None
        try:
            page: PageData = await self.fetcher.fetch(entry.url)
            links = self.link_parser(page.content, page.url)
        except FetchError as exc:
            logger.debug("Skipping %s: %s", entry.url, exc)
            self.skipped.append(entry.url)
            return
        except Exception as exc:  # parser failures only cost this page
            logger.debug("Could not parse %s: %s", entry.url, exc)
            self.skipped.append(entry.url)
            return

        # from here on no awaits: the expansion is atomic w.r.t. other workers
        if self.detector.fired:
            return
        for link in links:
            try:
                url = normalize_url(link)
                if not accept(url, self.host, self.registry, self.config.host_scope):
                    continue
            except ValueError as exc:
                logger.debug("Malformed link %r on %s: %s", link, entry.url, exc)
                continue
            if not self.registry.try_claim(url):
                if self.registry.exhausted and not self.registry.is_visited(url):
                    logger.info(
                        "Page budget of %d reached, %d queued entries dropped",
                        self.config.max_pages,
                        self.frontier.pending,
                    )
                    self.detector.fire(StopReason.BUDGET)
                    return
                continue
            child = Node(url)
            self.site_map.add_child(entry.node, child)
            self.frontier.push(FrontierEntry(child, entry.node))
