"""
Factory for creating and configuring loggers.

Loggers form a "/"-separated hierarchy. Root loggers own a console handler;
derived loggers are lightweight views that delegate to the root's handlers.
"""

import logging
import sys
from typing import Any, TextIO, cast

from .config import LogConfig
from .formatters import LogFormatter
from .logger import Logger


class LoggerFactory:
    """Factory for creating and configuring loggers."""

    @staticmethod
    def create_root(
        config: LogConfig, stream: TextIO | None = None, logger_class: type[Logger] = Logger
    ) -> Logger:
        """
        Create the root logger ("/") with the specified configuration.

        Example:
            >>> config = LogConfig.from_params(level="info", colors=False)
            >>> lg = LoggerFactory.create_root(config)
            >>> lg.info("supervisor started")
            [12:34:56,789] [I] supervisor started              [1234] [/]
        """
        return LoggerFactory.create("/", config, stream, logger_class)

    @staticmethod
    def create(
        name: str,
        config: LogConfig,
        stream: TextIO | None = None,
        logger_class: type[Logger] = Logger,
        extra: dict[str, Any] | None = None,
    ) -> Logger:
        """
        Create a logger with its own console handler.

        Returns the existing logger when one is already registered under name.

        Args:
            name: Logger name
            config: Logger configuration
            stream: Output stream (defaults to sys.stderr)
            logger_class: Logger class to use
            extra: Pre-populated extra fields to include in all log records
        """
        existing = LoggerFactory._check_existing_logger(name)
        if existing is not None:
            return existing

        lg = logger_class(name, config, extra)
        handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
        if config.level is not False:
            handler.setLevel(config.level)
        handler.setFormatter(LogFormatter(config))
        lg.addHandler(handler)
        lg.propagate = False
        lg.parent = logging.root

        logging.root.manager.loggerDict[name] = lg
        return lg

    @staticmethod
    def _check_existing_logger(name: str) -> Logger | None:
        existing = logging.root.manager.loggerDict.get(name)
        if isinstance(existing, Logger):
            return existing
        return None

    @staticmethod
    def derive(
        parent: Logger, tags: str | list[str], extra: dict[str, Any] | None = None
    ) -> Logger:
        """
        Derive a "view" logger that delegates to the root's handlers.

        Examples:
            >>> LoggerFactory.derive(root, "sleeper").name
            '/sleeper'
            >>> LoggerFactory.derive(root, ["sleeper", "timeout"]).name
            '/sleeper/timeout'

        Args:
            parent: Parent logger instance
            tags: Single tag string or list of tags forming the hierarchy
            extra: Extra fields added on top of the parent's pre-populated ones
        """
        if isinstance(tags, str):
            tags = [tags]

        prefix = parent.name if parent.name == "/" else parent.name + "/"
        name = prefix + "/".join(tags)

        existing = LoggerFactory._check_existing_logger(name)
        if existing is not None:
            return existing

        merged = dict(parent._extra)
        if extra:
            merged.update(extra)

        lg = parent.__class__(name, parent.config, merged)
        if parent.config.level is not False:
            lg.setLevel(logging.NOTSET)
        lg._root_logger = parent._root_logger or parent
        lg.parent = parent
        lg.propagate = False

        logging.root.manager.loggerDict[name] = lg
        lg.trace("derived logger", extra={"root": lg._root_logger.name})
        return cast(Logger, lg)
