"""
Configuration class for the logging system.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .constants import LogConstants
from .exceptions import InvalidLogLevelError


@dataclass(frozen=True)
class LogConfig:
    """
    Immutable logger configuration.

    Attributes:
        level: Numeric log level, or False to disable logging
        location: Show the caller's file:line after the message when non-zero
        micros: Show microsecond precision in timestamps
        colors: Emit ANSI colors
    """

    level: int | bool = logging.INFO
    location: int = 0
    micros: bool = False
    colors: bool = True

    @staticmethod
    def resolve_level(level: str | int | bool) -> int | bool:
        """Resolve level parameter to int or False."""
        if isinstance(level, bool):
            return logging.INFO if level else False
        if isinstance(level, int):
            return level
        if not isinstance(level, str):
            raise InvalidLogLevelError(level)
        if level.isnumeric():
            return int(level)
        name = level.lower()
        if name in LogConstants.LEVEL_NAMES:
            return LogConstants.LEVEL_NAMES[name]
        raise InvalidLogLevelError(level)

    @classmethod
    def from_params(
        cls,
        level: str | int | bool,
        location: bool | int = 0,
        micros: bool = False,
        colors: bool = True,
    ) -> LogConfig:
        """
        Create LogConfig from individual parameters.

        Args:
            level: Log level (string name, numeric value, or False to disable logging)
            location: Location display (bool or int)
            micros: Whether to show microsecond precision
            colors: Whether to enable colored output

        Returns:
            LogConfig instance
        """
        return cls(
            level=cls.resolve_level(level),
            location=1 if location is True else int(location),
            micros=micros,
            colors=colors,
        )

    @classmethod
    def from_config(cls, config_dict: dict[str, Any], section: str = "logging") -> LogConfig:
        """
        Create LogConfig from a configuration dictionary.

        Args:
            config_dict: Configuration dictionary (e.g. loaded from YAML)
            section: Dotted path of the section to read (default: "logging")

        Returns:
            LogConfig instance; missing sections yield the defaults
        """
        current: Any = config_dict
        for part in section.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                current = {}
                break

        return cls.from_params(
            level=current.get("level", "info"),
            location=current.get("location", 0),
            micros=current.get("micros", False),
            colors=current.get("colors", True),
        )
