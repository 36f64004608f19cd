"""Loguru sink configuration for applications embedding mail-search."""

import sys
from typing import Optional

from loguru import logger

from .config import Config

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> | <level>{message}</level>"
)


def configure_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """
    Replace loguru's default handler with the mail-search console format.

    Args:
        level: Minimum level for the console sink (defaults to Config.LOG_LEVEL)
        log_file: Optional path for a rotating DEBUG-level file sink
    """
    logger.remove()

    logger.add(
        sys.stderr,
        format=LOG_FORMAT,
        level=(level or Config.LOG_LEVEL).upper(),
        diagnose=Config.LOG_DIAGNOSE,
    )

    if log_file:
        logger.add(
            log_file,
            rotation="10 MB",
            retention="7 days",
            compression="zip",
            level="DEBUG",
        )

    logger.debug("Logging configured (level={}, file={})", level or Config.LOG_LEVEL, log_file)
