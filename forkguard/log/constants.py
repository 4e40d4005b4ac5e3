"""
Constants for the logging system.

Format strings, default values and custom log level definitions.
"""

import logging


class LogConstants:
    """Constants for the logging system."""

    DEFAULT_FORMAT: str = "[%(asctime)s] [%(levelname).1s] %(message)s"

    # Column the extra fields are aligned to
    DEFAULT_RULE_WIDTH: int = 70

    # Custom log levels
    CUSTOM_LEVELS: dict[str, int] = {"TRACE": 5}

    # Log level names for resolution (extended with custom levels on import)
    LEVEL_NAMES: dict[str, int | bool] = {
        "critical": logging.CRITICAL,
        "error": logging.ERROR,
        "warning": logging.WARNING,
        "info": logging.INFO,
        "debug": logging.DEBUG,
        "false": False,  # Special value to disable all logging
    }

    # ANSI escape sequences
    RESET: str = "\x1b[0m"
    LEVEL_COLORS: dict[int, str] = {
        logging.CRITICAL: "\x1b[35;1m",
        logging.ERROR: "\x1b[31m",
        logging.WARNING: "\x1b[33m",
        logging.INFO: "\x1b[32m",
        logging.DEBUG: "\x1b[36m",
        5: "\x1b[38;5;244m",
    }
    GRAY: str = "\x1b[38;5;241m"
