"""Logging configuration for applications embedding the cache layer."""

import logging
import sys

from recordcache.core.config import Settings, get_settings


def setup_logging(settings: Settings | None = None) -> None:
    """Configure process-wide logging.

    Level is DEBUG when settings.debug is True (cache HIT/MISS lines become
    visible), otherwise INFO. Output goes to stdout.
    """
    settings = settings or get_settings()
    log_level = logging.DEBUG if settings.debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def get_logger(name: str) -> logging.Logger:
    """Return a logger for the given module name.

    Args:
        name: Usually __name__ of the calling module.

    Returns:
        Logger instance.
    """
    return logging.getLogger(name)
