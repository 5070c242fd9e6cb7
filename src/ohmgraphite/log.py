"""Logging to STDERR; every module logs through get_logger(__name__)."""

from __future__ import annotations
import logging
import sys

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
    return logger


def set_level(level: str | int) -> None:
    """Apply a level (e.g. "DEBUG") to every logger created by get_logger."""
    if isinstance(level, str):
        level = level.upper()
    for name in list(logging.root.manager.loggerDict):
        if "ohmgraphite" in name.split("."):
            logging.getLogger(name).setLevel(level)
