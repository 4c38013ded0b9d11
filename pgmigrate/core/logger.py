"""
Centralized logger configuration for pgmigrate.

Provides a unified logging interface that can be customized by the user.
By default, uses Python's standard logging with the 'pgmigrate' namespace.

Usage:
    # Use default logger
    from pgmigrate.core.logger import get_logger
    logger = get_logger(__name__)
    logger.info("Message")

    # Set custom logger (anything with debug/info/warning/error/exception)
    from pgmigrate.core.logger import set_logger
    set_logger(my_logger)
"""

import logging
from typing import Any

# Global logger instance - defaults to standard logging
_custom_logger: Any = None


class NullLogger:
    """A logger that does nothing (for when logging is disabled)."""

    def debug(self, *args, **kwargs): pass
    def info(self, *args, **kwargs): pass
    def warning(self, *args, **kwargs): pass
    def error(self, *args, **kwargs): pass
    def exception(self, *args, **kwargs): pass
    def critical(self, *args, **kwargs): pass
    def log(self, *args, **kwargs): pass


def set_logger(logger: Any) -> None:
    """
    Set a custom logger for all pgmigrate components.

    Args:
        logger: A logger instance. Must support debug/info/warning/error/exception.
                Pass None to go back to standard logging.
    """
    global _custom_logger
    _custom_logger = logger


def get_logger(name: str = "pgmigrate") -> Any:
    """
    Get a logger instance.

    If a custom logger was set via set_logger(), returns that.
    Otherwise, returns a standard Python logger with the given name.
    """
    if _custom_logger is not None:
        return _custom_logger

    logger = logging.getLogger(name)

    # Ensure we have at least a NullHandler to avoid "No handler found" warnings
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return logger


def configure_default_logging(  # pragma: no cover
    level: int | str = logging.INFO,
    format_string: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handler: logging.Handler | None = None,
) -> None:
    """
    Configure basic console logging for pgmigrate.

    Args:
        level: Logging level (default: INFO), as int or level name
        format_string: Log message format, ignored when a handler is given
        handler: Optional pre-built handler (e.g. one with a JSON formatter)
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    if handler is not None:
        logging.basicConfig(level=level, handlers=[handler], force=True)
    else:
        logging.basicConfig(level=level, format=format_string)

    logging.getLogger("pgmigrate").setLevel(level)
