"""Logging setup for applications embedding pipeshell.

The library itself only creates module loggers; call ``configure_logging``
once from the application entry point.
"""

from __future__ import annotations

import logging
import sys

from .config import Config, get_config

__all__ = ["LOG_FORMAT", "configure_logging"]

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(config: Config | None = None) -> int:
    """Configure log handlers from ``config``.

    Debug mode logs to ``config.log_file`` at DEBUG; otherwise logs go to
    stderr at INFO. Third-party loggers stay at WARNING.

    Returns:
        The level applied to the pipeshell namespace
    """
    config = config or get_config()

    log_handlers: list[logging.Handler] = []

    if config.log_debug and config.log_file:
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log_handlers.append(file_handler)
        log_level = logging.DEBUG
    else:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log_handlers.append(stderr_handler)
        log_level = logging.INFO

    # Root logger (third-party libraries) stays at WARNING
    logging.basicConfig(
        level=logging.WARNING,
        handlers=log_handlers,
    )
    logging.getLogger("pipeshell").setLevel(log_level)
    return log_level
