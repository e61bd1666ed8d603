# site_tree/report/tree_report.py
"""
Текстовое представление дерева страниц для вывода в терминал.

Пример:
```text
Number of links found: 4

https://example.com/
├── https://example.com/a
│   └── https://example.com/a/x
└── https://example.com/b
```
"""
from __future__ import annotations

from typing import List

from site_tree.crawler.models import Node, SiteMap


def _render_children(root: Node, lines: List[str]) -> None:
    # explicit stack of (node, prefix, is_last): deep sites must not hit the recursion limit
    stack = [(child, "", i == len(root.children) - 1) for i, child in enumerate(root.children)]
    stack.reverse()
    while stack:
        node, prefix, last = stack.pop()
        branch, extension = ("└── ", "    ") if last else ("├── ", "│   ")
        lines.append(f"{prefix}{branch}{node.url}")
        n = len(node.children)
        for i in range(n - 1, -1, -1):
            stack.append((node.children[i], prefix + extension, i == n - 1))


def render_tree(site_map: SiteMap, *, header: bool = True) -> str:
    """Рендерит SiteMap в многострочную строку; вызывать только после завершения обхода."""
    lines: List[str] = []
    if header:
        lines.append(f"Number of links found: {site_map.count()}")
        lines.append("")
    lines.append(site_map.root.url)
    _render_children(site_map.root, lines)
    return "\n".join(lines)
