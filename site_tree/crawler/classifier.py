# site_tree/crawler/classifier.py
"""
Scope and robots decisions for discovered links.
"""
from __future__ import annotations

from site_tree.config import HostScope
from site_tree.crawler.registry import Registry
from site_tree.utils import extract_host, is_crawlable_url


def _strip_www(host: str) -> str:
    return host[4:] if host.startswith("www.") else host


def host_matches(host: str, scope: str, mode: HostScope = "subdomain") -> bool:
    """Whether *host* belongs to the crawl scope *scope*.

    ``loose`` accepts exact matches or either host being a substring of the
    other; it also equates ``notexample.com`` with ``example.com``.
    ``subdomain`` accepts equal hosts or dot-separated subdomains either way,
    ignoring a leading ``www.``. ``exact`` only ignores ``www.``.
    """
    host, scope = host.lower(), scope.lower()
    if not host or not scope:
        return False
    if mode == "loose":
        return host == scope or host in scope or scope in host
    host, scope = _strip_www(host), _strip_www(scope)
    if host == scope:
        return True
    if mode == "exact":
        return False
    return host.endswith("." + scope) or scope.endswith("." + host)


def in_scope(url: str, scope: str, mode: HostScope = "subdomain") -> bool:
    return host_matches(extract_host(url), scope, mode)


def accept(url: str, scope: str, registry: Registry, mode: HostScope = "subdomain") -> bool:
    """True iff *url* is crawlable, on the crawl's host and not banned by robots."""
    if not is_crawlable_url(url):
        return False
    return in_scope(url, scope, mode) and not registry.is_banned(url)


__all__ = ("host_matches", "in_scope", "accept")
