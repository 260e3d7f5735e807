"""Logging configuration for scripts and notebooks.

Library modules only emit through ``loguru.logger`` and never add sinks.
"""

import sys

from loguru import logger


def configure_logging(level: str = "INFO") -> None:
    """Replace loguru's default sink with a stderr sink at ``level``."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper())
