"""Structured logging configuration for the CTA auto-insertion engine."""

from __future__ import annotations

import logging
import sys


def setup_logging(
    level: int | None = None,
    module_name: str = "cta_highlights",
) -> logging.Logger:
    """Configure and return a logger with consistent formatting.

    Args:
        level: Logging level. Defaults to DEBUG when ``auto_insert.debug``
            is enabled in settings, INFO otherwise.
        module_name: Name for the logger instance.

    Returns:
        Configured logger.
    """
    logger = logging.getLogger(module_name)

    if logger.handlers:
        return logger

    if level is None:
        from .config import settings

        level = logging.DEBUG if settings.auto_insert.debug else logging.INFO

    logger.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    # Own handler only; root handlers (CLI basicConfig) would repeat each line
    logger.propagate = False

    return logger
