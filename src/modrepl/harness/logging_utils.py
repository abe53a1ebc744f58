"""Logging helpers for the harness generator and launcher."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(log_level: str | None = None, log_file: str | None = None) -> None:
    """Configure the ``modrepl`` logger.

    Logging stays silent unless a level or a file is requested, either on the
    command line or through ``MODREPL_LOG_LEVEL`` / ``MODREPL_LOG_FILE``. The
    generated harness shares the terminal with the user, so nothing is written
    by default.
    """
    level_name = (log_level or os.getenv("MODREPL_LOG_LEVEL") or "").upper()
    log_file = log_file or os.getenv("MODREPL_LOG_FILE")
    if not level_name and not log_file:
        return
    if not level_name:
        level_name = "WARNING"
    level = logging.getLevelName(level_name)
    if isinstance(level, str):
        raise ValueError(f"Invalid log level: {level_name}")

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(path)
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))

    logger = logging.getLogger("modrepl")
    logger.setLevel(level)
    logger.propagate = False
    logger.handlers = [handler]


def abbreviate(text: str, limit: int = 160) -> str:
    """Flatten generated code onto one line and cut it to ``limit`` characters."""
    flat = text.replace("\n", "\\n")
    if len(flat) > limit:
        flat = flat[:limit] + "..."
    return flat


def preview_names(names: Iterable[str], limit: int = 8) -> str:
    """Comma-joined preview of a symbol list for log lines."""
    names = list(names)
    shown = ", ".join(names[:limit])
    if len(names) > limit:
        shown += f", ... (+{len(names) - limit})"
    return shown
