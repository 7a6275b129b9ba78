"""Logging configuration for the ``finance_ingest`` package.

Public helpers:

- ``configure_logging(...)``: attach one ``StreamHandler`` to the package
  root logger (``"finance_ingest"``). Entry points (the CLI, a hosting web
  app) call it once at startup.
- ``get_logger(name)``: return a child logger; until configuration runs the
  package root carries a ``NullHandler`` so library use stays silent.
- ``kv(**fields)``: render ``key=value`` pairs for the single-line
  ``event key=value ...`` messages used across the pipeline.

Library modules never attach handlers themselves.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO, Any

_PKG_LOGGER_NAME = "finance_ingest"
_LEVEL_ENV = "FINANCE_INGEST_LOG_LEVEL"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_handler: logging.Handler | None = None


def _resolve_level(level: int | str | None) -> int:
    if level is None:
        level = os.getenv(_LEVEL_ENV) or logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    resolved = logging.getLevelName(name)
    # getLevelName returns "Level X" for unknown names.
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> logging.Logger:
    """Configure the package root logger; repeated calls only adjust the level.

    ``level`` accepts an ``int`` or a level name. When ``None`` the
    ``FINANCE_INGEST_LOG_LEVEL`` environment variable is consulted, falling
    back to ``INFO``.
    """

    global _handler
    logger = logging.getLogger(_PKG_LOGGER_NAME)
    resolved = _resolve_level(level)
    logger.setLevel(resolved)

    if _handler is not None:
        _handler.setLevel(resolved)
        return logger

    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    _handler = logging.StreamHandler(stream)
    _handler.setLevel(resolved)
    _handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))
    logger.addHandler(_handler)
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)`` with a silent default for the package."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if _handler is None and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


def kv(**fields: Any) -> str:
    """Format ``fields`` as ``k=v`` pairs; strings containing spaces are quoted."""

    parts: list[str] = []
    for key, value in fields.items():
        if isinstance(value, str) and (not value or " " in value):
            value = repr(value)
        parts.append(f"{key}={value}")
    return " ".join(parts)


__all__ = ["configure_logging", "get_logger", "kv"]
