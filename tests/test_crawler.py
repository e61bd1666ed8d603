# File: tests/test_crawler.py
# Test-suite for the SiteTree crawl engine
from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from aiohttp import web

from conftest import StubFetcher
from site_tree.config import CrawlerConfig
from site_tree.crawler.classifier import host_matches
from site_tree.crawler.crawler import CrawlStartupError, SiteCrawler
from site_tree.crawler.fetcher import ServerError
from site_tree.crawler.models import Node
from site_tree.crawler.termination import StopReason
from site_tree.report.tree_report import render_tree
from site_tree.utils import extract_host

ROOT = "https://example.com/"

#: number of pages in the fully-connected stub site
MESH_PAGES: int = 40


def mesh_site(n: int = MESH_PAGES, delay: float = 0.001) -> StubFetcher:
    """Every page links to every other page."""
    urls = [ROOT] + [f"https://example.com/p{i}" for i in range(1, n)]
    return StubFetcher({u: list(urls) for u in urls}, delay=delay)


async def run_crawler(config: CrawlerConfig, fetcher=None, **kwargs):
    """Run the crawler under a generous safety timeout."""
    crawler = SiteCrawler(config, fetcher=fetcher, **kwargs)
    async with crawler:
        site_map = await asyncio.wait_for(crawler.crawl(), timeout=15.0)
    return crawler, site_map


# --------------------------------------------------------------------------- #
#                              Stub-site crawls                               #
# --------------------------------------------------------------------------- #


@pytest.mark.asyncio()
async def test_scenario_tree(make_config, scenario_site):
    crawler, site_map = await run_crawler(make_config(), scenario_site)

    root = site_map.root
    assert root.url == ROOT
    assert [c.url for c in root.children] == [
        "https://example.com/a",
        "https://example.com/b",
    ]
    # /b is already claimed when /a is expanded, so it is not re-added
    assert site_map.find("https://example.com/a").children == []
    assert all("other.com" not in u for u in site_map.urls())
    assert sorted(site_map.urls()) == sorted(crawler.registry.visited)
    assert crawler.stop_reason is StopReason.IDLE


@pytest.mark.asyncio()
async def test_fetches_each_url_at_most_once(make_config):
    site = mesh_site()
    crawler, site_map = await run_crawler(make_config(max_workers=25), site)

    assert max(site.page_calls.values()) == 1
    assert len(site.page_calls) == MESH_PAGES
    assert site_map.count() == MESH_PAGES
    assert len(set(site_map.urls())) == site_map.count()


@pytest.mark.asyncio()
async def test_page_budget_respected(make_config):
    site = mesh_site()
    crawler, site_map = await run_crawler(make_config(max_pages=10, max_workers=25), site)

    assert crawler.registry.visited_count <= 10
    assert site_map.count() <= 10
    assert crawler.stop_reason is StopReason.BUDGET
    assert all(n <= 1 for n in site.page_calls.values())
    assert site_map.stop_reason == "budget"


@pytest.mark.asyncio()
async def test_budget_of_one_keeps_only_root(make_config, scenario_site):
    crawler, site_map = await run_crawler(make_config(max_pages=1), scenario_site)

    assert site_map.urls() == [ROOT]
    assert crawler.stop_reason is StopReason.BUDGET


@pytest.mark.asyncio()
async def test_single_page_terminates_after_idle_timeout(make_config):
    site = StubFetcher({ROOT: []})
    config = make_config(idle_timeout=0.3)

    start = time.perf_counter()
    crawler, site_map = await run_crawler(config, site)
    elapsed = time.perf_counter() - start

    assert site_map.urls() == [ROOT]
    assert elapsed < config.idle_timeout + 0.5
    assert crawler.stop_reason is StopReason.IDLE


@pytest.mark.asyncio()
async def test_scope_containment(make_config):
    site = StubFetcher(
        {
            ROOT: [
                "/local",
                "https://www.example.com/www",
                "https://blog.example.com/post",
                "https://notexample.com/",
                "https://evil.com/example.com",
            ],
            "https://example.com/local": [],
            "https://www.example.com/www": [],
            "https://blog.example.com/post": [],
            "https://notexample.com/": [],
        }
    )
    config = make_config()
    _, site_map = await run_crawler(config, site)

    urls = set(site_map.urls())
    assert "https://blog.example.com/post" in urls
    assert "https://www.example.com/www" in urls
    assert "https://notexample.com/" not in urls
    assert "https://evil.com/example.com" not in urls
    for node in site_map.walk():
        assert host_matches(extract_host(node.url), "example.com", config.host_scope)


@pytest.mark.asyncio()
async def test_loose_scope_accepts_substring_hosts(make_config):
    site = StubFetcher({ROOT: ["https://notexample.com/"], "https://notexample.com/": []})
    _, site_map = await run_crawler(make_config(host_scope="loose"), site)

    assert "https://notexample.com/" in site_map.urls()


@pytest.mark.asyncio()
async def test_robots_banned_urls_never_in_tree(make_config):
    site = StubFetcher(
        {
            ROOT: ["/private", "/private/deep", "/public", "/docs/file.pdf"],
            "https://example.com/public": ["/private/other"],
            "https://example.com/private": [],
        },
        robots="User-agent: *\nDisallow: /private\nDisallow: /*.pdf$\nCrawl-delay: 0.01\n",
    )
    crawler, site_map = await run_crawler(make_config(respect_robots=True), site)

    urls = site_map.urls()
    assert "https://example.com/public" in urls
    assert not any(u.startswith("https://example.com/private") for u in urls)
    assert "https://example.com/docs/file.pdf" not in urls
    assert "https://example.com/private" not in site.calls
    assert crawler.limiter.interval == pytest.approx(0.01)


@pytest.mark.asyncio()
async def test_robots_bans_hold_across_scheme_and_www(make_config):
    site = StubFetcher(
        {
            ROOT: [
                "https://www.example.com/private/x",
                "http://example.com/private/y",
                "https://www.example.com/public",
            ],
            "https://www.example.com/private/x": [],
            "http://example.com/private/y": [],
            "https://www.example.com/public": [],
        },
        robots="User-agent: *\nDisallow: /private\n",
    )
    _, site_map = await run_crawler(make_config(respect_robots=True), site)

    assert "https://www.example.com/public" in site_map.urls()
    assert not any("/private" in u for u in site_map.urls())
    assert not any("/private" in u for u in site.page_calls)


@pytest.mark.asyncio()
async def test_robots_ignored_when_disabled(make_config):
    site = StubFetcher(
        {ROOT: ["/private"], "https://example.com/private": []},
        robots="User-agent: *\nDisallow: /private\n",
    )
    _, site_map = await run_crawler(make_config(respect_robots=False), site)

    assert "https://example.com/private" in site_map.urls()
    assert "https://example.com/robots.txt" not in site.calls


@pytest.mark.asyncio()
async def test_missing_robots_means_unrestricted(make_config, scenario_site):
    _, site_map = await run_crawler(make_config(respect_robots=True), scenario_site)

    assert site_map.count() == 3


@pytest.mark.asyncio()
async def test_robots_server_error_is_fatal(make_config, scenario_site):
    scenario_site.errors["https://example.com/robots.txt"] = ServerError(
        "https://example.com/robots.txt", "HTTP 503", 503
    )
    with pytest.raises(CrawlStartupError):
        await run_crawler(make_config(respect_robots=True), scenario_site)
    assert scenario_site.page_calls == {}


@pytest.mark.asyncio()
async def test_banned_start_url_is_fatal(make_config, scenario_site):
    scenario_site.robots = "User-agent: *\nDisallow: /\n"
    with pytest.raises(CrawlStartupError):
        await run_crawler(make_config(respect_robots=True), scenario_site)
    assert scenario_site.page_calls == {}


@pytest.mark.asyncio()
async def test_fetch_errors_only_skip_the_entry(make_config, server_error):
    site = StubFetcher(
        {
            ROOT: ["/broken", "/missing", "/ok"],
            "https://example.com/ok": ["/deeper"],
            "https://example.com/deeper": [],
        },
        errors={"https://example.com/broken": server_error},
    )
    crawler, site_map = await run_crawler(make_config(), site)

    assert "https://example.com/deeper" in site_map.urls()
    # failed pages stay in the tree as leaves
    assert site_map.find("https://example.com/broken").children == []
    assert set(crawler.skipped) == {"https://example.com/broken", "https://example.com/missing"}


@pytest.mark.asyncio()
async def test_parser_failure_skips_page(make_config, scenario_site):
    from site_tree.parser.html_parser import extract_links

    def flaky_parser(body, base_url):
        if base_url.endswith("/a"):
            raise ValueError("unparsable")
        return extract_links(body, base_url)

    crawler, site_map = await run_crawler(make_config(), scenario_site, link_parser=flaky_parser)

    assert site_map.count() == 3
    assert crawler.skipped == ["https://example.com/a"]


@pytest.mark.asyncio()
async def test_malformed_link_skips_only_itself(make_config, scenario_site):
    def parser(body, base_url):
        if base_url == ROOT:
            return ["http://[::1", "https://example.com/a"]
        return []

    _, site_map = await run_crawler(make_config(max_workers=1), scenario_site, link_parser=parser)

    assert site_map.urls() == [ROOT, "https://example.com/a"]
    assert scenario_site.page_calls["https://example.com/a"] == 1


@pytest.mark.asyncio()
async def test_deep_chain_site(make_config):
    depth = 1050
    urls = [ROOT] + [f"https://example.com/p{i}" for i in range(1, depth)]
    site = StubFetcher({u: urls[i + 1 : i + 2] for i, u in enumerate(urls)})
    _, site_map = await run_crawler(make_config(max_workers=4), site)

    assert site_map.count() == depth
    assert site_map.stop_reason == "idle"
    assert render_tree(site_map).splitlines()[0] == f"Number of links found: {depth}"


@pytest.mark.asyncio()
async def test_site_map_frozen_after_completion(make_config, scenario_site):
    _, site_map = await run_crawler(make_config(), scenario_site)

    assert site_map.frozen
    with pytest.raises(RuntimeError):
        site_map.add_child(site_map.root, Node("https://example.com/late"))


@pytest.mark.asyncio()
async def test_separate_runs_share_no_state(make_config, scenario_site):
    _, first = await run_crawler(make_config(), scenario_site)
    _, second = await run_crawler(make_config(), scenario_site)

    assert first.count() == second.count() == 3
    assert scenario_site.calls[ROOT] == 2


@pytest.mark.asyncio()
async def test_crawler_is_single_use(make_config, scenario_site):
    crawler = SiteCrawler(make_config(), fetcher=scenario_site)
    async with crawler:
        await crawler.crawl()
        with pytest.raises(RuntimeError):
            await crawler.crawl()


@pytest.mark.asyncio()
async def test_rate_limit_spaces_fetches(make_config):
    site = StubFetcher({ROOT: ["/1", "/2", "/3", "/4"], **{f"https://example.com/{i}": [] for i in range(1, 5)}})
    config = make_config(crawl_rate=0.05, max_workers=10)

    start = time.perf_counter()
    crawler, site_map = await run_crawler(config, site)
    elapsed = time.perf_counter() - start

    assert site_map.count() == 5
    # five pulses, the first one immediate
    assert elapsed >= 4 * 0.05
    assert crawler.limiter.ticks == 5


@pytest.mark.asyncio()
async def test_slow_fetch_longer_than_idle_timeout_is_kept(make_config):
    site = StubFetcher({ROOT: ["/slow"], "https://example.com/slow": []}, delay=0.4)
    _, site_map = await run_crawler(make_config(idle_timeout=0.2), site)

    assert "https://example.com/slow" in site_map.urls()


# --------------------------------------------------------------------------- #
#                        Real HTTP against a local server                     #
# --------------------------------------------------------------------------- #


async def _serve_app(app: web.Application, port: int) -> AsyncIterator[str]:
    """Start *app* on *port*, yield base URL, ensure cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "localhost", port)
    await site.start()
    try:
        yield f"http://localhost:{port}"
    finally:
        await runner.cleanup()


@pytest_asyncio.fixture
async def test_server(unused_tcp_port: int) -> AsyncIterator[str]:
    app = web.Application()
    async def handle_root(_):
        return web.Response(
            text='<a href="/page1">P1</a><a href="/secret">S</a><a href="/missing">M</a>'
            '<a href="/style.css">CSS</a><a href="http://elsewhere.test/">X</a>',
            content_type="text/html",
        )

    async def handle_page1(_):
        return web.Response(text='<a href="/page2">P2</a><a href="/">Home</a>', content_type="text/html")

    async def handle_page2(_):
        return web.Response(text="<h1>Page2</h1>", content_type="text/html")

    async def handle_secret(_):
        return web.Response(text='<a href="/secret/inner">I</a>', content_type="text/html")

    async def handle_robots(_):
        return web.Response(text="User-agent: *\nDisallow: /secret", content_type="text/plain")

    app.router.add_get("/", handle_root)
    app.router.add_get("/page1", handle_page1)
    app.router.add_get("/page2", handle_page2)
    app.router.add_get("/secret", handle_secret)
    app.router.add_get("/robots.txt", handle_robots)

    async for url in _serve_app(app, unused_tcp_port):
        yield url


@pytest.mark.asyncio()
async def test_http_crawl_builds_tree(test_server: str):
    config = CrawlerConfig(
        start_url=test_server,
        max_workers=4,
        crawl_rate=0,
        idle_timeout=0.5,
        request_timeout=2.0,
        user_agent="TestAgent/1.0",
    )
    crawler, site_map = await run_crawler(config)

    base = test_server
    assert site_map.root.url == f"{base}/"
    assert {c.url for c in site_map.root.children} == {f"{base}/page1", f"{base}/missing"}
    assert site_map.find(f"{base}/page1").children[0].url == f"{base}/page2"
    assert f"{base}/secret" not in site_map.urls()
    assert f"{base}/missing" in crawler.skipped


@pytest.mark.asyncio()
async def test_http_crawl_ignoring_robots(test_server: str):
    config = CrawlerConfig(
        start_url=test_server,
        max_workers=4,
        crawl_rate=0,
        idle_timeout=0.5,
        respect_robots=False,
    )
    _, site_map = await run_crawler(config)

    assert f"{test_server}/secret" in site_map.urls()
    assert f"{test_server}/secret/inner" in site_map.urls()


# --------------------------------------------------------------------------- #
#                               Engine facade                                 #
# --------------------------------------------------------------------------- #


def test_engine_runs_crawl_synchronously(make_config, scenario_site):
    from site_tree.engine import Engine

    site_map = Engine(make_config(), fetcher=scenario_site).start_crawl(timeout=10.0)
    assert site_map.count() == 3
    assert site_map.frozen


def test_engine_propagates_startup_errors(make_config, scenario_site):
    from site_tree.engine import Engine

    scenario_site.robots = "User-agent: *\nDisallow: /\n"
    with pytest.raises(CrawlStartupError):
        Engine(make_config(respect_robots=True), fetcher=scenario_site).start_crawl()
