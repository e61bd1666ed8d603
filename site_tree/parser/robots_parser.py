# File: site_tree/parser/robots_parser.py
"""site_tree.parser.robots_parser: разбор robots.txt в список запрещённых URL-префиксов."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from urllib.parse import urljoin


@dataclass
class RobotsRules:
    """Хранит правила из robots.txt для заданного User-Agent."""

    user_agent: str
    allowed: List[str] = field(default_factory=list)
    disallowed: List[str] = field(default_factory=list)
    crawl_delay: Optional[float] = None


def parse_robots(body: str, base_url: str, user_agent: str = "*") -> RobotsRules:
    """Разбирает текст robots.txt и возвращает RobotsRules.

    Args:
        body: содержимое robots.txt.
        base_url: URL сайта; относительные пути правил превращаются в абсолютные.
        user_agent: наш User-Agent; учитываются группы для него и для ``*``.

    Returns:
        RobotsRules с абсолютными префиксами в allowed/disallowed и crawl_delay.
    """
    rules = RobotsRules(user_agent=user_agent)
    current_agents: List[str] = []
    in_rules = False

    for directive, value in _prepare_lines(body):
        if directive == "user-agent":
            # consecutive User-agent lines share one group
            if in_rules:
                current_agents.clear()
                in_rules = False
            current_agents.append(value)
            continue
        in_rules = True
        _process_directive(directive, value, current_agents, base_url, rules)

    rules.allowed = list(dict.fromkeys(rules.allowed))
    rules.disallowed = list(dict.fromkeys(rules.disallowed))
    return rules


def extract_disallowed(body: str, base_url: str, user_agent: str = "*") -> List[str]:
    """Абсолютные URL-префиксы, запрещённые для *user_agent*."""
    return parse_robots(body, base_url, user_agent).disallowed


def _process_directive(
    directive: str,
    value: str,
    current_agents: List[str],
    base_url: str,
    rules: RobotsRules,
) -> None:
    """Обрабатывает одну директиву из robots.txt и обновляет rules."""
    if not _matches_agent(current_agents, rules.user_agent):
        return
    if directive in ("allow", "disallow"):
        # пустой Disallow разрешает все, пропускаем
        if not value:
            return
        target = rules.allowed if directive == "allow" else rules.disallowed
        target.append(urljoin(base_url, value))
    elif directive == "crawl-delay":
        try:
            delay = float(value)
        except ValueError:
            return
        if delay >= 0:
            rules.crawl_delay = delay


def _prepare_lines(text: str) -> List[Tuple[str, str]]:
    """Очищает текст от комментариев и разделяет на (директива, значение)."""
    lines: List[Tuple[str, str]] = []
    for raw in text.splitlines():
        line = raw.split("#", 1)[0].strip()
        if not line or ":" not in line:
            continue
        key, val = (part.strip() for part in line.split(":", 1))
        lines.append((key.lower(), val))
    return lines


def _matches_agent(agents: List[str], user_agent: str) -> bool:
    """Проверяет, соответствует ли список агентов заданному user_agent."""
    ua = user_agent.lower()
    return any(agent == "*" or agent.lower() in ua for agent in agents)


__all__ = ["RobotsRules", "parse_robots", "extract_disallowed"]
