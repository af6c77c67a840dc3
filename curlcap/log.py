"""curlcap logging helpers."""

from __future__ import annotations

import logging

DEFAULT_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


def configure_logging(level: str = "WARNING", fmt: str | None = None) -> None:
    """Configure logging to stderr.

    Unknown level names fall back to WARNING so stdout stays clean for
    response output.
    """
    logging.basicConfig(
        level=_LEVELS.get(level.strip().upper(), logging.WARNING),
        format=fmt or DEFAULT_LOG_FORMAT,
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
