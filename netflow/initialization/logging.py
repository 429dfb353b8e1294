"""
Logging setup.

Configures loguru: stderr sink plus an optional rotating file sink.
"""

import sys

from loguru import logger


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """
    Configure logger.

    Args:
        level: Minimum log level
        log_file: Optional log file path (rotated daily, kept 7 days)
    """
    logger.remove()
    logger.add(sys.stderr, level=level)

    if log_file:
        logger.add(
            log_file,
            rotation="1 day",
            retention="7 days",
            level=level,
            encoding="utf-8",
        )

    logger.info("Starting netflow monitor...")
