# File: site_tree/utils.py
"""site_tree.utils: URL helpers shared by the crawler and the parsers."""

from __future__ import annotations

import re
from typing import Collection, List, Optional, Sequence
from urllib.parse import urljoin, urlparse, urlunparse

from site_tree.logger import logger

__all__: Sequence[str] = (
    "normalize_url",
    "resolve_url",
    "is_crawlable_url",
    "extract_host",
    "robots_url",
    "remove_duplicates",
)

_BAD_DOCUMENT_RE = re.compile(r"\.jpe?g$|\.css$|\.ico$", re.IGNORECASE)


def normalize_url(url: str) -> str:
    """Canonical form used as the visited-set key.

    Lower-cases scheme and host, drops the fragment and turns an empty path
    into ``/``. Query strings are kept: ``/a?page=2`` is a different page.
    """
    parsed = urlparse(url.strip())
    scheme = parsed.scheme.lower()
    netloc = parsed.netloc.lower()
    path = parsed.path or "/"
    return urlunparse((scheme, netloc, path, parsed.params, parsed.query, ""))


def resolve_url(base_url: str, href: str) -> Optional[str]:
    """Resolve *href* against *base_url*; ``None`` for unusable references."""
    raw = href.strip()
    if not raw or raw.startswith(("mailto:", "javascript:", "tel:", "data:", "#")):
        return None
    try:
        return normalize_url(urljoin(base_url, raw))
    except ValueError:
        # urljoin rejects e.g. malformed IPv6 literals
        logger.debug("Malformed link %r on %s", href, base_url)
        return None


def is_crawlable_url(url: str) -> bool:
    """http(s) URL with a host that does not point at an image or stylesheet."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return False
    return not _BAD_DOCUMENT_RE.search(parsed.path)


def extract_host(url: str) -> str:
    """Lower-cased host name without port; ``""`` if *url* has none."""
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def robots_url(url: str) -> str:
    """Location of ``robots.txt`` for the site serving *url*."""
    parsed = urlparse(url)
    return urlunparse((parsed.scheme, parsed.netloc, "/robots.txt", "", "", ""))


def remove_duplicates(urls: Collection[str]) -> List[str]:
    """Удаляет дубликаты из списка URL, сохраняя порядок."""
    unique = list(dict.fromkeys(urls))
    removed = len(urls) - len(unique)
    if removed:
        logger.debug("Removed %d duplicate URLs", removed)
    return unique
