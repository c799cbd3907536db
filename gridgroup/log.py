"""Logging utilities for gridgroup.

The engine degrades to "no change" on inconsistent input and logs instead
of raising, so these helpers never raise themselves.
"""

from __future__ import annotations

import logging
import sys


class _LoggerHolder:
    """Holder for the global logger instance."""

    instance: logging.Logger | None = None


def get_logger() -> logging.Logger:
    """Get the gridgroup logger instance.

    The initial level and format come from ``LogSettings``.

    Returns
    -------
    logging.Logger
        The gridgroup logger configured with a stream handler.
    """
    if _LoggerHolder.instance is None:
        from .config import LogSettings  # pylint: disable=import-outside-toplevel

        log_settings = LogSettings()
        logger = logging.getLogger("gridgroup")
        logger.setLevel(log_settings.level)

        # Only add handler if none exists
        if not logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setLevel(logging.DEBUG)
            handler.setFormatter(logging.Formatter(log_settings.format))
            logger.addHandler(handler)

        _LoggerHolder.instance = logger

    return _LoggerHolder.instance


def debug(msg: str) -> None:
    """Log a debug message.

    Parameters
    ----------
    msg : str
        The message to log.
    """
    get_logger().debug(msg)


def info(msg: str) -> None:
    """Log an info message."""
    get_logger().info(msg)


def warn(msg: str) -> None:
    """Log a warning message. Never raises exceptions."""
    get_logger().warning(msg)


def set_level(level: int | str) -> None:
    """Set the logging level.

    Parameters
    ----------
    level : int or str
        The logging level (e.g., logging.DEBUG, "DEBUG").
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())
    get_logger().setLevel(level)


def enable_debug() -> None:
    """Enable verbose logging of rebuilds, patches and ignored events."""
    set_level(logging.DEBUG)


def log_handler_error(event_type: str, exc: BaseException) -> None:
    """Log an event handler failure with standardized format.

    Parameters
    ----------
    event_type : str
        The event type that triggered the handler.
    exc : BaseException
        The exception that was raised.
    """
    get_logger().exception(f"Handler error for '{event_type}': {exc}")
