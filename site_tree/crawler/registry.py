# site_tree/crawler/registry.py
"""
Visited and banned URL sets shared by all crawl workers.
"""
from __future__ import annotations

import re
import threading
from typing import Dict, FrozenSet, Iterable, List, Optional, Set
from urllib.parse import urlparse


class Registry:
    """Concurrency-safe visited set plus the robots-banned prefixes.

    ``try_claim`` is the only way into the visited set: membership check,
    budget check and insert happen under one lock, so exactly one caller
    ever wins a given URL and the set never grows past ``max_pages``.
    """

    def __init__(self, max_pages: Optional[int] = None) -> None:
        self.max_pages = max_pages
        self._visited: Set[str] = set()
        self._lock = threading.Lock()
        self._banned: List[str] = []
        self._banned_loaded = False
        self._regex_cache: Dict[str, re.Pattern[str]] = {}

    # -- visited ------------------------------------------------------------

    def try_claim(self, url: str) -> bool:
        """Claim *url* for fetching; False if already visited or the budget is spent."""
        with self._lock:
            if url in self._visited:
                return False
            if self.max_pages is not None and len(self._visited) >= self.max_pages:
                return False
            self._visited.add(url)
            return True

    @property
    def exhausted(self) -> bool:
        with self._lock:
            return self.max_pages is not None and len(self._visited) >= self.max_pages

    @property
    def visited_count(self) -> int:
        with self._lock:
            return len(self._visited)

    @property
    def visited(self) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._visited)

    def is_visited(self, url: str) -> bool:
        with self._lock:
            return url in self._visited

    def __len__(self) -> int:
        return self.visited_count

    # -- banned -------------------------------------------------------------

    def load_banned(self, urls: Iterable[str]) -> None:
        """One-time load of robots-disallowed prefixes, before workers start.

        Prefixes may be absolute URLs or bare paths; only the path (and query)
        is kept, so a ban holds for every scheme and host variant in scope.
        """
        if self._banned_loaded:
            raise RuntimeError("banned set already loaded")
        paths = (_path_of(u) for u in urls if u)
        self._banned = [p for p in dict.fromkeys(paths) if p]
        for prefix in self._banned:
            self._regex_cache[prefix] = _prefix_regex(prefix)
        self._banned_loaded = True

    @property
    def banned(self) -> List[str]:
        return list(self._banned)

    def is_banned(self, url: str) -> bool:
        # read-only after load_banned, no lock needed
        if not self._banned:
            return False
        path = _path_of(url)
        return any(self._regex_cache[p].match(path) for p in self._banned)


def _path_of(url: str) -> str:
    """Path plus query of *url*, ``/`` for an empty path."""
    parsed = urlparse(url)
    path = parsed.path or "/"
    return f"{path}?{parsed.query}" if parsed.query else path


def _prefix_regex(pattern: str) -> re.Pattern[str]:
    """Robots path pattern to regex: ``*`` matches anything, ``$`` anchors the end."""
    anchored = pattern.endswith("$")
    if anchored:
        pattern = pattern[:-1]
    esc = re.escape(pattern).replace(r"\*", ".*")
    return re.compile(f"^{esc}$" if anchored else f"^{esc}")


__all__ = ("Registry",)
