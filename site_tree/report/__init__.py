# File: site_tree/report/__init__.py
"""site_tree.report: вывод готового дерева страниц (текстовое дерево и JSON)."""

from __future__ import annotations

from site_tree.report.json_report import render_json, site_map_to_dict
from site_tree.report.tree_report import render_tree

__all__ = ["render_json", "render_tree", "site_map_to_dict"]
