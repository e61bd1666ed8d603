# File: site_tree/engine.py
"""site_tree.engine: Orchestration layer для запуска обхода сайта и получения дерева страниц."""

from __future__ import annotations

import asyncio
from typing import Optional

from site_tree.config import CrawlerConfig, load_config
from site_tree.crawler.crawler import SiteCrawler
from site_tree.crawler.fetcher import PageFetcher
from site_tree.crawler.models import SiteMap
from site_tree.logger import logger

__all__ = ["Engine", "start_crawl"]


async def start_crawl(cfg: CrawlerConfig, fetcher: Optional[PageFetcher] = None) -> SiteMap:
    """
    Запускает асинхронный краулер в контексте и возвращает SiteMap.

    Parameters
    ----------
    cfg : CrawlerConfig
        Конфигурация обхода.
    fetcher : PageFetcher, optional
        Подменяет HTTP-клиент (например, в тестах).
    """
    async with SiteCrawler(cfg, fetcher=fetcher) as crawler:
        return await crawler.crawl()


class Engine:
    """Фасад для CLI и тестов: загрузка конфига и синхронный запуск обхода."""

    @staticmethod
    def load_config(path: Optional[str], **overrides) -> CrawlerConfig:
        """Загружает конфиг из YAML/JSON с перекрытием отдельных полей."""
        return load_config(path, **overrides)

    def __init__(self, config: CrawlerConfig, fetcher: Optional[PageFetcher] = None) -> None:
        """Инициализирует Engine с заданной конфигурацией обхода."""
        self.config = config
        self.fetcher = fetcher

    def start_crawl(self, timeout: Optional[float] = None) -> SiteMap:
        """Запускает обход (с общим таймаутом, если задан) и возвращает дерево страниц."""
        logger.info("Starting crawl…")
        try:
            return asyncio.run(asyncio.wait_for(start_crawl(self.config, self.fetcher), timeout=timeout))
        except asyncio.TimeoutError:
            logger.error("Crawl did not finish within %s seconds", timeout)
            raise
        except Exception as exc:
            logger.error("Crawl failed: %s", exc)
            raise
