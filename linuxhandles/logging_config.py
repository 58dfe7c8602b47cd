"""Logging setup shared by the library modules and the CLI."""

from __future__ import annotations

import logging
from typing import Optional

from .config import get_settings
from .constants import LOG_DATEFMT, LOG_FORMAT

_configured: str | int | None = None


def configure_logging(
    level: Optional[str | int] = None,
    fmt: Optional[str] = None,
    datefmt: Optional[str] = None,
) -> str | int:
    """Configure root logging once with a consistent format.

    The level defaults to ``LINUXHANDLES_LOG_LEVEL``. Calling again with the
    same level is a no-op; a different level re-applies the format to the
    existing stream handlers.
    """

    global _configured

    if isinstance(level, str):
        level = level.upper()
    if level is None:
        level = get_settings().log_level

    if _configured is not None and _configured == level:
        return level
    _configured = level

    fmt = fmt or LOG_FORMAT
    datefmt = datefmt or LOG_DATEFMT
    formatter = logging.Formatter(fmt=fmt, datefmt=datefmt)

    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level)
        for handler in root.handlers:
            if isinstance(handler, logging.StreamHandler):
                handler.setLevel(level)
                handler.setFormatter(formatter)
        return level

    logging.basicConfig(level=level, format=fmt, datefmt=datefmt)
    return level


def get_logger(name: str) -> logging.Logger:
    """Return a module-scoped logger."""
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger"]
