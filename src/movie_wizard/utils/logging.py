"""
Logging helpers for Movie-Wizard.

Never log API keys, SMTP passwords, or the full text of prompts and contact
messages. Lengths, status codes and attempt numbers are fine.
"""

from __future__ import annotations

import logging
import os

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _level_from_env() -> int:
    raw = os.environ.get("MOVIE_WIZARD_LOG_LEVEL", "INFO").strip().upper()
    level = logging.getLevelName(raw)
    return level if isinstance(level, int) else logging.INFO


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """
    Get a configured logger for the specified module.

    Args:
        name: Module name (typically __name__)
        level: Optional logging level (defaults to MOVIE_WIZARD_LOG_LEVEL, then INFO)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level if level is not None else _level_from_env())

    # Avoid duplicate handlers when modules are reloaded.
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT))
        logger.addHandler(handler)

    return logger
