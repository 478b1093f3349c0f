"""Loguru setup.

Besides loguru's own level names, ``warn``, ``fatal`` and ``panic`` are
accepted so existing LOG_LEVEL values keep working.
"""

from __future__ import annotations

import sys

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DDTHH:mm:ss.SSSZZ}</green> "
    "<level>{level: <8}</level> {message}"
)

LEVELS = {
    "trace": "TRACE",
    "debug": "DEBUG",
    "info": "INFO",
    "warn": "WARNING",
    "warning": "WARNING",
    "error": "ERROR",
    "fatal": "CRITICAL",
    "panic": "CRITICAL",
    "critical": "CRITICAL",
}


def parse_level(name: str | None) -> str | None:
    """Loguru level for ``name``, or None when it is not recognised."""
    if not name:
        return None
    return LEVELS.get(name.strip().lower())


def configure_logging(level: str | None, sink=None) -> str:
    """Install the single loguru sink (stdout by default); return the level used."""
    resolved = parse_level(level)
    logger.remove()
    logger.add(
        sink if sink is not None else sys.stdout,
        level=resolved or "INFO",
        format=LOG_FORMAT,
        backtrace=False,
    )
    if resolved is None:
        logger.warning("Invalid LOG_LEVEL '{}', defaulting to 'info'", level)
        resolved = "INFO"
    return resolved
