import os
import sys

from loguru import logger

from tunnelsync.core.constants import LOG_FILE

# Configure logger
logger.remove()  # Remove default handler

# Add stderr handler only if available (not in windowed exe)
if sys.stderr:
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=os.getenv("TUNNELSYNC_LOG_LEVEL", "INFO"),
    )

# Add file handler
logger.add(
    LOG_FILE,
    rotation="1 MB",
    retention="10 days",
    format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
    level="DEBUG",
)


def configure_cli_logging(level: str = "INFO"):
    """Reset handlers for headless use: stderr at ``level``, file at DEBUG."""
    logger.remove()
    if sys.stderr:
        logger.add(sys.stderr, level=level.upper())
    logger.add(LOG_FILE, level="DEBUG", rotation="10 MB")
