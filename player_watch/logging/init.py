from __future__ import annotations

import logging
import sys

"""Logging initialization with labeled prefixes.

Every line written by the watcher looks like ``LABEL message`` where LABEL is
one of DEBUG|INFO|WARN|ERROR|SUMMARY. Components do not reach for a global
logger: they take one at construction and default to a child of the
application logger (``player_watch.<component>``), which propagates into the
single stdout handler configured here.
"""

__all__ = [
    "APP_LOGGER_NAME",
    "SUMMARY_LEVEL",
    "setup_logging",
    "get_logger",
    "component_logger",
    "set_level",
    "log_summary",
    "reset_logging",
]

APP_LOGGER_NAME = "player_watch"

# Custom SUMMARY level (between INFO=20 and WARNING=30)
SUMMARY_LEVEL = 25

_logger: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    """Formatter that prefixes each message with a short level label."""

    LEVEL_LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
        SUMMARY_LEVEL: "SUMMARY",
    }

    def format(self, record: logging.LogRecord) -> str:
        level_label = self.LEVEL_LABELS.get(record.levelno, record.levelname)
        message = f"{level_label} {record.getMessage()}"
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


def setup_logging(level: int | str = logging.INFO) -> logging.Logger:
    """Configure the application logger (idempotent).

    Args:
        level: Initial level; may be a name such as "DEBUG".

    Returns:
        The ``player_watch`` logger with one stdout handler.
    """
    global _logger

    if _logger is not None:
        return _logger

    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")

    logger = logging.getLogger(APP_LOGGER_NAME)
    logger.setLevel(level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)

    # Prevent propagation to root logger to avoid duplicate output
    logger.propagate = False

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    """Return the configured application logger, configuring it on first use."""
    if _logger is None:
        return setup_logging()
    return _logger


def component_logger(name: str) -> logging.Logger:
    """Child logger for a pipeline component, e.g. ``player_watch.filter``."""
    return logging.getLogger(f"{APP_LOGGER_NAME}.{name}")


def set_level(level: int | str) -> None:
    get_logger().setLevel(level)


def log_summary(message: str) -> None:
    """Log a message at SUMMARY level."""
    get_logger().log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Reset the global logger state. Mainly for testing purposes."""
    global _logger
    logger = logging.getLogger(APP_LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
    _logger = None
