# === FILE: site_tree/cli.py ===
#!/usr/bin/env python3
"""
Точка входа для запуска краулера SiteTree через командную строку.

Команды:
  crawl URL   Обойти сайт начиная с URL и вывести дерево страниц
  config      Показать итоговую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (необязательно)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stderr, если не указан)
  --log-format FORMAT Формат логирования (e.g. "%(asctime)s %(levelname)s %(message)s")

Команда crawl опции:
  --max-pages INT       Лимит страниц (-1 — без лимита)
  --max-workers INT     Число воркеров
  --crawl-rate SEC      Интервал между запросами
  --timeout SEC         Сколько ждать новых ссылок перед завершением
  --http-timeout SEC    Таймаут одного запроса
  --respect-robots / --ignore-robots
  --user-agent STR      Заголовок User-Agent
  --disguise            Представиться Googlebot и игнорировать robots.txt
  --host-scope MODE     loose | subdomain | exact
  --json PATH           Сохранить дерево в JSON-файл
  --crawl-timeout SEC   Общий таймаут обхода

Дополнительно:
  --version, -v       Показать версию SiteTree

Пример:
  site_tree crawl https://example.com --max-pages 100 --json tree.json
"""
import asyncio
import json
import sys
from pathlib import Path

import click
from pydantic import ValidationError

from site_tree import __version__
from site_tree.config import load_config, read_config_file
from site_tree.crawler.crawler import CrawlStartupError
from site_tree.engine import start_crawl
from site_tree.logger import DEFAULT_FORMAT, init_logging
from site_tree.report.json_report import render_json
from site_tree.report.tree_report import render_tree

CONTEXT_SETTINGS = dict(help_option_names=["--help", "-h"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


def _build_config(ctx, **overrides):
    data = dict(ctx.obj['config_data'])
    data.update({k: v for k, v in overrides.items() if v is not None})
    try:
        cfg = load_config(None, **data)
    except ValidationError as e:
        print_error(f'Ошибка в конфигурации: {e}')
    return cfg


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='SiteTree, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON.'
)
@click.option(
    '--log-level', 'log_level',
    default='WARNING', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Уровень логирования'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Путь к файлу логов (stderr, если не указан)'
)
@click.option(
    '--log-format', 'log_format',
    default=DEFAULT_FORMAT,
    help='Строка формата для логов'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """Группа команд SiteTree CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    ctx.ensure_object(dict)
    try:
        ctx.obj['config_data'] = read_config_file(config_path) if config_path else {}
    except (ValueError, TypeError, OSError) as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')


@cli.command('crawl', context_settings=CONTEXT_SETTINGS)
@click.argument('url', required=False)
@click.option('--max-pages', '-l', 'max_pages', type=int, default=None,
              help='Макс. число страниц (-1 — без лимита)')
@click.option('--max-workers', '-w', 'max_workers', type=int, default=None,
              help='Число параллельных воркеров')
@click.option('--crawl-rate', 'crawl_rate', type=float, default=None,
              help='Минимальный интервал между запросами (секунд)')
@click.option('--timeout', 'idle_timeout', type=float, default=None,
              help='Сколько ждать новых ссылок перед завершением (секунд)')
@click.option('--http-timeout', 'request_timeout', type=float, default=None,
              help='Таймаут одного HTTP-запроса (секунд)')
@click.option('--respect-robots/--ignore-robots', 'respect_robots', default=None,
              help='Соблюдать robots.txt')
@click.option('--user-agent', 'user_agent', default=None, help='Заголовок User-Agent')
@click.option('--disguise', is_flag=True,
              help='Представиться Googlebot и игнорировать robots.txt')
@click.option('--host-scope', 'host_scope', default=None,
              type=click.Choice(['loose', 'subdomain', 'exact']),
              help='Правило сравнения хостов')
@click.option('--json', '-j', 'json_output', default=None,
              type=click.Path(writable=True, dir_okay=False, path_type=Path),
              help='Сохранить дерево в JSON-файл')
@click.option('--crawl-timeout', 'crawl_timeout', type=float, default=None,
              help='Таймаут всего обхода (секунд)')
@click.pass_context
def crawl(ctx, url, max_pages, max_workers, crawl_rate, idle_timeout, request_timeout,
          respect_robots, user_agent, disguise, host_scope, json_output, crawl_timeout):
    """Обойти сайт начиная с URL и вывести дерево страниц."""
    if url is None and 'start_url' not in ctx.obj['config_data']:
        print_error('Не указан URL для обхода')
    cfg = _build_config(
        ctx,
        start_url=url,
        max_pages=max_pages,
        max_workers=max_workers,
        crawl_rate=crawl_rate,
        idle_timeout=idle_timeout,
        request_timeout=request_timeout,
        respect_robots=respect_robots,
        user_agent=user_agent,
        host_scope=host_scope,
    )
    if disguise:
        cfg = cfg.disguise()

    try:
        site_map = asyncio.run(asyncio.wait_for(start_crawl(cfg), timeout=crawl_timeout))
    except asyncio.TimeoutError:
        print_error(f'Обход не завершён за {crawl_timeout} секунд')
    except CrawlStartupError as e:
        print_error(f'Не удалось начать обход: {e}')

    click.echo(render_tree(site_map))

    if json_output:
        try:
            saved_json = render_json(site_map, json_output, stop_reason=site_map.stop_reason)
        except OSError as e:
            print_error(f'Ошибка при сохранении JSON: {e}')
        click.echo(f'JSON report: {saved_json}', err=True)


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.argument('url', required=False)
@click.pass_context
def show_config(ctx, url):
    """Показать итоговую конфигурацию в JSON."""
    if url is None and 'start_url' not in ctx.obj['config_data']:
        print_error('Не указан URL для обхода')
    cfg = _build_config(ctx, start_url=url)
    click.echo(json.dumps(cfg.model_dump(mode='json'), indent=2, ensure_ascii=False))


# expose these names at module level for test monkey-patching
cli.start_crawl = start_crawl
cli.render_json = render_json

if __name__ == "__main__":
    cli()
