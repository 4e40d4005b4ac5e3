"""
Structured logging on top of the standard logging module.

This module extends Python's standard logging with:
- A custom TRACE log level for detailed debugging
- Structured extra fields rendered as [key:value] after the message
- A "/"-separated logger hierarchy where derived loggers share the root handler

Example:
    lg = create_root_lg("debug", colors=False)
    proc_lg = derive_lg(lg, ["proc", "sleeper"])
    proc_lg.info("line", extra={"n": 1})
"""

import logging
from typing import TextIO

from .config import LogConfig
from .constants import LogConstants
from .exceptions import InvalidLogLevelError, LogError
from .factory import LoggerFactory
from .formatters import LogFormatter
from .logger import Logger

logging.addLevelName(LogConstants.CUSTOM_LEVELS["TRACE"], "TRACE")
LogConstants.LEVEL_NAMES["trace"] = LogConstants.CUSTOM_LEVELS["TRACE"]


def create_root_lg(
    level: str | int | bool = "info",
    location: bool | int = False,
    micros: bool = False,
    colors: bool = True,
    stream: TextIO | None = None,
) -> Logger:
    """
    Create the root logger with the specified configuration.

    Convenience wrapper around LoggerFactory.create_root().
    """
    config = LogConfig.from_params(level, location, micros, colors)
    return LoggerFactory.create_root(config, stream)


def derive_lg(lg: Logger, tags: str | list[str]) -> Logger:
    """Derive a tagged view logger from a parent logger."""
    return LoggerFactory.derive(lg, tags)


__all__ = [
    "Logger",
    "LoggerFactory",
    "LogConfig",
    "LogConstants",
    "LogFormatter",
    "LogError",
    "InvalidLogLevelError",
    "create_root_lg",
    "derive_lg",
]
