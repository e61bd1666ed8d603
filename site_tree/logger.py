# site_tree/logger.py
"""Logging setup for **SiteTree**.

Log records go to *stderr*: *stdout* is reserved for the rendered page tree,
so ``site_tree crawl URL > tree.txt`` captures the tree only. A rotating log
file can be added with ``--log-file``.

Modules log through the shared instance::

    from site_tree.logger import logger
    logger.debug("Skipping %s: %s", url, exc)

The CLI calls :func:`init_logging` once its ``--log-level``/``--log-file``/
``--log-format`` options are parsed.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, Union

# -- format and names ------------------------------------------------------

DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOGGER_NAME: Final[str] = "SiteTree"

_LevelT = Union[int, str]


# -- handlers ---------------------------------------------------------------

def _stderr_handler(fmt: str) -> logging.StreamHandler:
    # stdout carries the rendered tree
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def _file_handler(file: Path | str, fmt: str) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        filename=str(file),
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def configure(
    *,
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = DEFAULT_FORMAT,
    replace_handlers: bool = True,
) -> logging.Logger:
    """Set level and handlers of the ``SiteTree`` logger.

    With *replace_handlers* the handlers of a previous call are dropped first,
    so repeated CLI invocations in one process (tests) do not duplicate output.
    """
    lg = logging.getLogger(LOGGER_NAME)
    lg.setLevel(level)

    if replace_handlers:
        lg.handlers.clear()

    lg.addHandler(_stderr_handler(log_format))

    if log_file is not None:
        lg.addHandler(_file_handler(log_file, log_format))

    lg.propagate = False
    return lg


def init_logging(
    level: _LevelT = "WARNING",
    log_file: str | Path | None = None,
    log_format: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """Shortcut used by the CLI: replace handlers and apply *level*."""
    return configure(level=level, log_file=log_file, log_format=log_format, replace_handlers=True)


# shared instance, WARNING until the CLI reconfigures it
logger: logging.Logger = init_logging()

__all__ = ["logger", "configure", "init_logging", "LOGGER_NAME", "DEFAULT_FORMAT"]
