"""
Loguru configuration shared by the API, the watcher and the workers.
"""

import sys
from pathlib import Path

from loguru import logger

from .config import settings


def setup_logging(level: str | None = None, log_file: str | None = None):
    """
    Configure loguru sinks and return the logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR); defaults to LOG_LEVEL
        log_file: Optional rotating log file; defaults to LOG_FILE

    Returns:
        The configured loguru logger
    """
    level = (level or settings.log_level).upper()
    log_file = log_file or settings.log_file

    # Remove default handler
    logger.remove()

    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level> | {extra}",
        level=level,
    )

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            rotation="10 MB",
            retention="30 days",
            level=level,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message} | {extra}",
        )

    logger.info("Logging initialized", level=level, app_env=settings.app_env)
    return logger
