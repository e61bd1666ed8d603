# site_tree/crawler/models.py
"""
Data models for the SiteTree crawler: the page tree and what flows through it.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional


@dataclass(slots=True)
class PageData:
    """Holds the URL and body of a fetched page."""

    url: str
    content: str
    status: int = 200
    content_type: str = "text/html"


@dataclass(slots=True, eq=False)
class Node:
    """One crawled (or pending) page; children are in-scope links found on it."""

    url: str
    children: List[Node] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Nested ``{"url", "children"}`` mapping; built with an explicit stack."""
        out: Dict[str, Any] = {"url": self.url, "children": []}
        stack = [(self, out)]
        while stack:
            node, data = stack.pop()
            for child in node.children:
                child_data: Dict[str, Any] = {"url": child.url, "children": []}
                data["children"].append(child_data)
                stack.append((child, child_data))
        return out


@dataclass(slots=True, frozen=True)
class FrontierEntry:
    """A pending crawl target: the node to fetch and the node that owns it."""

    node: Node
    parent: Optional[Node] = None

    @property
    def url(self) -> str:
        return self.node.url


class SiteMap:
    """Tree of visited pages rooted at the seed URL.

    Workers append children concurrently, so every mutation goes through
    :meth:`add_child`, which holds one map-wide lock for the append only.
    Once the crawl completes the map is frozen, together with the reason the
    crawl stopped, and further appends raise ``RuntimeError``.
    """

    __slots__ = ("root", "stop_reason", "_lock", "_frozen")

    def __init__(self, root: Node) -> None:
        self.root = root
        self.stop_reason: Optional[str] = None
        self._lock = threading.Lock()
        self._frozen = False

    def add_child(self, parent: Node, child: Node) -> None:
        with self._lock:
            if self._frozen:
                raise RuntimeError(f"site map is frozen, cannot add {child.url}")
            parent.children.append(child)

    def freeze(self, stop_reason: Optional[str] = None) -> None:
        with self._lock:
            self._frozen = True
            if stop_reason is not None:
                self.stop_reason = stop_reason

    @property
    def frozen(self) -> bool:
        return self._frozen

    def walk(self) -> Iterator[Node]:
        """Pre-order traversal, root first."""
        stack = [self.root]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def urls(self) -> List[str]:
        return [n.url for n in self.walk()]

    def count(self) -> int:
        """Number of nodes in the tree, root included."""
        return sum(1 for _ in self.walk())

    def find(self, url: str) -> Optional[Node]:
        for node in self.walk():
            if node.url == url:
                return node
        return None

    def to_dict(self) -> Dict[str, Any]:
        return self.root.to_dict()

    def __repr__(self) -> str:
        return f"SiteMap(root={self.root.url!r}, nodes={self.count()})"


def count_nodes(node: Node) -> int:
    count, stack = 0, [node]
    while stack:
        count += 1
        stack.extend(stack.pop().children)
    return count


__all__ = ("PageData", "Node", "FrontierEntry", "SiteMap", "count_nodes")
