# === FILE: site_tree/config.py ===
"""
Модуль для загрузки и валидации конфигурации краулера SiteTree.
Используется Pydantic для описания схемы и проверки данных.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, Literal, Optional, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    ValidationError,
    field_validator,
)

DEFAULT_USER_AGENT = "SiteTree"
DECOY_USER_AGENT = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"

HostScope = Literal["loose", "subdomain", "exact"]


class CrawlerConfig(BaseModel):
    """Конфигурация для одного запуска обхода сайта."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    start_url: HttpUrl = Field(..., description="Начальный URL обхода.")
    max_workers: int = Field(10_000, ge=1, description="Число параллельных воркеров.")
    max_pages: Optional[int] = Field(
        None, ge=1, description="Лимит посещённых страниц (None или -1 — без лимита)."
    )
    crawl_rate: float = Field(
        0.001, ge=0, description="Минимальный интервал между запросами к сайту (секунд)."
    )
    idle_timeout: float = Field(
        5.0, gt=0, description="Сколько ждать новых ссылок перед завершением (секунд)."
    )
    request_timeout: float = Field(2.0, gt=0, description="Таймаут на один запрос (секунд).")
    respect_robots: bool = Field(True, description="Соблюдать robots.txt.")
    user_agent: str = Field(DEFAULT_USER_AGENT, min_length=1, description="Заголовок User-Agent.")
    host_scope: HostScope = Field(
        "subdomain", description="Правило сравнения хостов: loose, subdomain или exact."
    )
    retry_times: int = Field(0, ge=0, description="Число повторных попыток при 5xx/429.")

    @field_validator("max_pages", mode="before")
    def _unbounded_sentinel(cls, v: Any) -> Any:
        if v is not None and not isinstance(v, bool):
            try:
                if int(v) == -1:
                    return None
            except (TypeError, ValueError):
                return v
        return v

    @property
    def seed(self) -> str:
        return str(self.start_url)

    @property
    def unbounded(self) -> bool:
        return self.max_pages is None

    def disguise(self) -> CrawlerConfig:
        """Копия конфигурации с User-Agent Googlebot и без соблюдения robots.txt."""
        return self.model_copy(update={"user_agent": DECOY_USER_AGENT, "respect_robots": False})

    def with_overrides(self, **overrides: Any) -> CrawlerConfig:
        """Возвращает новую проверенную конфигурацию; значения None игнорируются."""
        data = self.model_dump(mode="json")
        data.update({k: v for k, v in overrides.items() if v is not None})
        return CrawlerConfig(**data)


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def read_config_file(path: Union[str, Path]) -> dict[str, Any]:
    """Читает YAML или JSON в словарь без валидации схемы."""
    path_obj = Path(path).expanduser().resolve()
    if not path_obj.is_file():
        raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return _read_yaml(path_obj)
    if suffix == ".json":
        return _read_json(path_obj)
    raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")


def load_config(path: Union[str, Path, None] = None, **overrides: Any) -> CrawlerConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект CrawlerConfig.
    Именованные аргументы (кроме None) перекрывают значения из файла.
    При отсутствии файла бросает FileNotFoundError.
    """
    data: dict[str, Any] = read_config_file(path) if path is not None else {}
    data.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return CrawlerConfig(**data)
    except ValidationError:
        raise


__all__ = [
    "CrawlerConfig",
    "HostScope",
    "DEFAULT_USER_AGENT",
    "DECOY_USER_AGENT",
    "load_config",
    "read_config_file",
]
