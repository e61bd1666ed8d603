# site_tree/report/json_report.py

"""
Генерация JSON-отчёта для проекта SiteTree.

Сериализация дерева SiteMap в файл.
"""
import json
from pathlib import Path
from typing import Any, Dict, Optional

from site_tree.crawler.models import SiteMap


def site_map_to_dict(site_map: SiteMap, stop_reason: Optional[str] = None) -> Dict[str, Any]:
    """Словарь с метаданными обхода и вложенным деревом страниц.

    Причина остановки берётся из замороженного SiteMap, если не передана явно.
    """
    if stop_reason is None:
        stop_reason = site_map.stop_reason
    data: Dict[str, Any] = {
        "start_url": site_map.root.url,
        "node_count": site_map.count(),
        "tree": site_map.to_dict(),
    }
    if stop_reason is not None:
        data["stop_reason"] = stop_reason
    return data


def render_json(
    site_map: SiteMap, output_path: Path | str, *, stop_reason: Optional[str] = None
) -> Path:
    """
    Сохраняет дерево site_map в формате JSON по указанному пути.

    :param site_map: результат обхода
    :param output_path: путь к JSON-файлу
    :param stop_reason: причина завершения обхода (idle / budget); по умолчанию site_map.stop_reason
    :return: Path сохранённого файла

    Пример:
    ```python
    from site_tree.report.json_report import render_json
    report_path = render_json(site_map, 'reports/tree.json')
    print(f"JSON report saved to: {report_path}")
    ```
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    # Запись в файл с отступами и Unicode
    with output.open('w', encoding='utf-8') as f:
        json.dump(site_map_to_dict(site_map, stop_reason), f, ensure_ascii=False, indent=2)

    return output
