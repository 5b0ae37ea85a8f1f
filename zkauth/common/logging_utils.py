"""
Logging setup shared by the CLI and embedding applications.
"""

from __future__ import annotations

import logging
from typing import IO, TYPE_CHECKING

if TYPE_CHECKING:
    from zkauth.common.config import Config

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
PACKAGE_LOGGER = "zkauth"

# HTTP client chatter stays out of the orchestrator's log
QUIET_LOGGERS = ("urllib3", "requests")


def setup_logger(
    logger: logging.Logger, log_level: int, stream: IO[str] | None = None
) -> None:
    """Give ``logger`` one StreamHandler at ``log_level``; repeat calls only adjust the level."""
    logger.setLevel(log_level)
    for handler in logger.handlers:
        handler.setLevel(log_level)
    if logger.handlers:
        return
    handler = logging.StreamHandler(stream)
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)


def configure_logging(config: Config, stream: IO[str] | None = None) -> logging.Logger:
    """Set up the package logger from ``Config.LOG_LEVEL``."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    setup_logger(logger, config.LOG_LEVEL, stream)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(config.LOG_LEVEL, logging.WARNING))
    return logger
