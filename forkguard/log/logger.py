"""
Logger class for the logging system.

Extends the standard logger with a TRACE level, pre-populated extra fields and
handler sharing for derived "view" loggers.
"""

import logging
import sys
from typing import Any

from .config import LogConfig
from .constants import LogConstants

# Record attribute carrying the merged extra fields for the formatter
EXTRA_ATTR = "_forkguard_extra"


class Logger(logging.Logger):
    """
    Enhanced logger with structured extra fields.

    Extends the standard Python logger with:
    - A custom trace() level below DEBUG
    - Pre-populated extra fields merged into every record
    - Handler delegation to a root logger for derived loggers
    """

    def __init__(
        self,
        name: str,
        config: LogConfig | None = None,
        extra: dict[str, Any] | None = None,
    ):
        """
        Initialize the enhanced logger.

        Args:
            name: Logger name
            config: Logger configuration (defaults to info level)
            extra: Pre-populated extra fields to include in all log records
        """
        if config is None:
            config = LogConfig.from_params("info")

        if config.level is False:
            super().__init__(name, logging.CRITICAL + 1)
            self._logging_disabled = True
        else:
            super().__init__(name, config.level)
            self._logging_disabled = False

        self._config = config
        self._extra = dict(extra or {})
        self._root_logger: Logger | None = None

    @property
    def config(self) -> LogConfig:
        """Get logger configuration."""
        return self._config

    @property
    def logging_disabled(self) -> bool:
        """Check if logging is disabled."""
        return self._logging_disabled

    def get_level(self) -> int | bool:
        """Get configured log level."""
        return self._config.level

    def makeRecord(  # type: ignore[override]
        self,
        name: str,
        level: int,
        fn: str,
        lno: int,
        msg: object,
        args: Any,
        exc_info: Any,
        func: str | None = None,
        extra: dict[str, Any] | None = None,
        sinfo: str | None = None,
    ) -> logging.LogRecord:
        """Create log record, merging pre-populated and per-call extra fields."""
        merged = dict(self._extra)
        if extra:
            merged.update(extra)
        record = super().makeRecord(
            name, level, fn, lno, msg, args, exc_info, func=func, sinfo=sinfo
        )
        setattr(record, EXTRA_ATTR, merged)
        return record

    def trace(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """
        Log a TRACE level message.

        Args:
            msg: Log message
            *args: Message format arguments
            **kwargs: Additional keyword arguments including 'extra' for structured data
        """
        trace_level = LogConstants.CUSTOM_LEVELS["TRACE"]
        if self.isEnabledFor(trace_level):
            self._log(trace_level, msg, args, **kwargs)

    def _log(self, level: int, msg: object, args: Any, **kwargs: Any) -> None:  # type: ignore[override]
        if self._logging_disabled:
            return

        try:
            super()._log(level, msg, args, **kwargs)
        except (TypeError, ValueError) as e:
            sys.stderr.write(
                f"LOG_FORMAT_ERROR [{self.name}]: {e.__class__.__name__}: {e} "
                f"| msg={msg!r} args={args!r}\n"
            )

    def findCaller(
        self, stack_info: bool = False, stacklevel: int = 1
    ) -> tuple[str, int, str, str | None]:
        """Report the first frame outside the logging module and this file."""
        f = logging.currentframe()
        while f is not None:
            fname = f.f_code.co_filename
            if fname == logging.__file__ or fname == __file__:
                f = f.f_back
            else:
                break

        if f is None:
            return "(unknown file)", 0, "(unknown function)", None
        return f.f_code.co_filename, f.f_lineno, f.f_code.co_name, None

    def callHandlers(self, record: logging.LogRecord) -> None:
        """
        Pass a record to all relevant handlers.

        Derived loggers have no handlers of their own and use the root's.
        """
        if self._root_logger is None:
            super().callHandlers(record)
            return

        for handler in self._root_logger.handlers:
            if record.levelno >= handler.level:
                handler.handle(record)
