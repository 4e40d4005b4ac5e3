"""
Log formatter rendering structured extra fields.

Output format:
    [12:34:56,789] [I] process exited               [code:0] [1234] [/sleeper]
"""

import logging
from typing import Any

from .. import time as fgtime
from .config import LogConfig
from .constants import LogConstants
from .logger import EXTRA_ATTR


def _render_value(key: str, value: Any) -> str:
    if key == "exception" and isinstance(value, BaseException):
        return f"{value.__class__.__name__}: {value}"
    if key == "after" and isinstance(value, float):
        return fgtime.delta_str(value)
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)


class LogFormatter(logging.Formatter):
    """
    Formatter aligning extra fields into a column after the message.

    Extra fields (from Logger's merged extra dict) are rendered as
    [key:value] pairs sorted by key, followed by the process id and the
    logger name. With location enabled the caller's file:line is appended.
    """

    def __init__(self, config: LogConfig) -> None:
        super().__init__(LogConstants.DEFAULT_FORMAT)
        self._config = config

    @property
    def config(self) -> LogConfig:
        return self._config

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        ct = self.converter(record.created)
        base = f"{ct.tm_hour:02d}:{ct.tm_min:02d}:{ct.tm_sec:02d}"
        if self._config.micros:
            return f"{base}.{int(record.created * 1_000_000) % 1_000_000:06d}"
        return f"{base},{int(record.msecs):03d}"

    def format(self, record: logging.LogRecord) -> str:
        first, sep, rest = super().format(record).partition("\n")
        pad = " " * max(1, LogConstants.DEFAULT_RULE_WIDTH - len(first))
        tail = self._format_fields(record)

        if self._config.colors:
            col = LogConstants.LEVEL_COLORS.get(record.levelno, "")
            first = col + first + LogConstants.RESET
            tail = LogConstants.GRAY + tail + LogConstants.RESET

        return first + pad + tail + sep + rest

    def _format_fields(self, record: logging.LogRecord) -> str:
        extra = getattr(record, EXTRA_ATTR, None) or {}
        parts = [f"[{key}:{_render_value(key, extra[key])}]" for key in sorted(extra)]
        parts.append(f"[{record.process}]")
        parts.append(f"[{record.name}]")
        if self._config.location:
            parts.append(f"[{record.filename}:{record.lineno}]")
        return " ".join(parts)
