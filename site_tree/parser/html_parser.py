# === FILE: site_tree/parser/html_parser.py ===
"""HTML link extraction for SiteTree.

The crawler only needs one thing from a page: the absolute URLs it links to.
:func:`extract_links` collects

* ``href`` values of ``<a>`` and ``<area>`` tags, and
* targets of inline ``document.location = "…"`` / ``document.location.href``
  assignments, which some sites use instead of anchors,

resolves them against the page URL, drops fragments and anything that is not
an http(s) page (images, stylesheets, icons, ``mailto:`` …) and returns them
deduplicated in document order. The function is pure: the same markup always
yields the same list.
"""
from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Union

from bs4 import BeautifulSoup
from bs4.element import Tag

from site_tree.crawler.models import PageData
from site_tree.utils import is_crawlable_url, remove_duplicates, resolve_url

__all__: Sequence[str] = ("extract_links", "parse_page")

_LOCATION_RE = re.compile(r"document\.location(?:\.href)?\s?=\s?[\"']([^\"']*)[\"']")


def extract_links(body: str, base_url: str) -> list[str]:
    """Absolute, deduplicated, crawlable links found in *body*."""
    soup = BeautifulSoup(body, "html.parser")

    raw: list[str] = []
    for tag in soup.find_all(["a", "area"], href=True):
        if not isinstance(tag, Tag):
            continue
        href = tag.get("href")
        if isinstance(href, str):
            raw.append(href)

    for script in soup.find_all("script"):
        raw.extend(_LOCATION_RE.findall(script.get_text()))
    for tag in soup.find_all(onclick=True):
        raw.extend(_LOCATION_RE.findall(str(tag.get("onclick"))))

    links: list[str] = []
    for href in raw:
        url = resolve_url(base_url, href)
        if url is not None and is_crawlable_url(url):
            links.append(url)
    return remove_duplicates(links)


def parse_page(page: Union[PageData, str], base_url: str = "") -> list[str]:
    """Same as :func:`extract_links` but accepts a :class:`PageData` as well."""
    if isinstance(page, PageData):
        return extract_links(page.content, page.url)
    return extract_links(str(page), base_url)
