"""Logging helpers with color output to stderr."""

from __future__ import annotations

import logging
from typing import Optional

from colorlog import ColoredFormatter

LOGGER_NAME = "ocr_clipboard_app"

_LOGGER: Optional[logging.Logger] = None


def get_logger(level: Optional[str] = None) -> logging.Logger:
    """Return a configured logger that writes human-readable logs to stderr.

    ``level`` is applied on every call so the CLI can raise or lower verbosity
    after the logger has been created.
    """
    global _LOGGER
    if _LOGGER is None:
        logger = logging.getLogger(LOGGER_NAME)
        if not logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(
                ColoredFormatter("%(log_color)s[%(levelname)s] %(message)s")
            )
            logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
        _LOGGER = logger
    if level:
        _LOGGER.setLevel(level.upper())
    return _LOGGER
