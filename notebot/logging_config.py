"""Loguru logging configuration."""

import os
import sys

from loguru import logger


def setup_logging(level: str | None = None) -> None:
    """Route loguru output to stderr at ``level`` (defaults to $LOG_LEVEL or INFO)."""
    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO").upper()

    logger.remove()
    logger.add(
        sys.stderr,
        format="<level>{time:YYYY-MM-DD HH:mm:ss} | {level: <7} | {name}:{function}:{line} | {message}</level>",
        level=level,
        colorize=True,
        backtrace=True,
        diagnose=False,
    )
