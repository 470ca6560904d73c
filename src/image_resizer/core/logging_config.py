"""Centralized logging configuration for the image resizer.

One handler is attached to the ``image-resizer`` logger. Module loggers
(``image-resizer.http`` and so on) carry no handler of their own and
propagate to it, so a single level change reaches all of them.
"""

import os
import sys
import logging
from typing import Optional

PROJECT_LOGGER = "image-resizer"

FORMATS = {
    "structured": (
        "%(asctime)s | %(name)s | %(levelname)-8s | "
        "%(filename)s:%(lineno)d | %(funcName)s() | %(message)s"
    ),
    "simple": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}


def _resolve_level(level: Optional[str]) -> int:
    resolved = logging.getLevelName((level or os.getenv("LOG_LEVEL", "INFO")).upper())
    # getLevelName returns a "Level X" string for unknown names
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logger(level: Optional[str] = None, format_type: Optional[str] = None) -> logging.Logger:
    """
    Configure the project logger and return it.

    Safe to call more than once: the level and format are re-applied to the
    existing stdout handler, which is how ``--debug`` switches every module
    logger to DEBUG after startup.

    Args:
        level: Level name; defaults to LOG_LEVEL, then INFO
        format_type: "structured" or "simple"; defaults to LOG_FORMAT, then "structured"
    """
    logger = logging.getLogger(PROJECT_LOGGER)
    logger.setLevel(_resolve_level(level))
    logger.propagate = False

    if not logger.handlers:
        logger.addHandler(logging.StreamHandler(sys.stdout))

    style = (format_type or os.getenv("LOG_FORMAT", "structured")).lower()
    formatter = logging.Formatter(
        FORMATS.get(style, FORMATS["simple"]), datefmt="%Y-%m-%d %H:%M:%S"
    )
    for handler in logger.handlers:
        handler.setFormatter(formatter)
    return logger


def get_logger(name: str = PROJECT_LOGGER) -> logging.Logger:
    """Logger for ``name``, configuring the project logger on first use."""
    if not logging.getLogger(PROJECT_LOGGER).handlers:
        setup_logger()
    return logging.getLogger(name)
