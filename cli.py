# cli.py

"""
Точка входа для запуска краулера SiteTree без установки пакета.

Пример запуска:
    python cli.py crawl https://example.com --max-pages 50 --json reports/tree.json
"""
from site_tree.cli import cli

if __name__ == '__main__':
    cli()
