"""
Configuration loading for supervised processes.

Settings come from a YAML file (or a dict), with environment variable
overrides applied on top.

File format:
    process:
      name: build
      command: ["make", "-j4"]     # a string is split shell-style
      env: {CC: clang}
      cwd: /src
    timeout:
      millis: 60000                # -1 for no timeout
      code: 124
    output:
      recent_lines: 64
      log: true
    logging:
      level: info

Environment Variable Override Format:
    FORKGUARD_<SECTION>_<KEY>=value

Examples:
    FORKGUARD_TIMEOUT_MILLIS=5000
    FORKGUARD_LOGGING_LEVEL=debug
"""

from __future__ import annotations

import dataclasses
import os
import shlex
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from .exceptions import ConfigError
from .log import LogConfig, LogError, LoggerFactory
from .process import ForkedProcessService
from .process.output import DEFAULT_RECENT_LINES

if TYPE_CHECKING:
    from .log import Logger

ENV_PREFIX = "FORKGUARD_"

# Maximum configuration file size
MAX_CONFIG_SIZE_BYTES = 1024 * 1024

# Scalar settings that may be overridden from the environment
_OVERRIDABLE = (
    ("process", "name"),
    ("process", "command"),
    ("process", "cwd"),
    ("timeout", "millis"),
    ("timeout", "code"),
    ("output", "recent_lines"),
    ("output", "log"),
    ("logging", "level"),
    ("logging", "location"),
    ("logging", "micros"),
    ("logging", "colors"),
)


def _section(data: Mapping[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, Mapping):
        raise ConfigError("Section must be a mapping", section=name)
    return dict(value)


def _apply_env_overrides(
    data: dict[str, Any], environ: Mapping[str, str], prefix: str
) -> dict[str, Any]:
    """Overlay FORKGUARD_<SECTION>_<KEY> variables onto the config dict."""
    merged = {
        key: dict(value) if isinstance(value, Mapping) else value
        for key, value in data.items()
    }
    for section, key in _OVERRIDABLE:
        var = f"{prefix}{section}_{key}".upper()
        if var not in environ:
            continue
        raw = environ[var]
        try:
            value = yaml.safe_load(raw) if raw else raw
        except yaml.YAMLError:
            value = raw
        if key == "command" and not isinstance(value, list):
            value = raw
        target = merged.setdefault(section, {})
        if not isinstance(target, dict):
            raise ConfigError("Section must be a mapping", section=section)
        target[key] = value
    return merged


def _parse_command(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return shlex.split(value)
    if isinstance(value, list):
        return [str(part) for part in value]
    raise ConfigError("Command must be a string or a list", command=value)


def _parse_int(value: Any, setting: str) -> int:
    if isinstance(value, bool):
        raise ConfigError("Setting must be an integer", setting=setting, value=value)
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError("Setting must be an integer", setting=setting, value=value) from e


@dataclass
class SupervisorConfig:
    """
    Settings for one supervised process.

    Attributes:
        name: Service name used in logs and failure messages
        command: Executable followed by its arguments
        env: Variables added to the inherited environment
        cwd: Working directory (None keeps the current one)
        timeout_ms: Execution timeout in milliseconds, -1 for none
        timeout_code: Exit code reported when the timeout fires
        recent_lines: Number of recent output lines retained
        log_output: Whether process output is logged
        logging: Logger configuration
    """

    name: str = "process"
    command: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    cwd: str | None = None
    timeout_ms: int = -1
    timeout_code: int = 1
    recent_lines: int = DEFAULT_RECENT_LINES
    log_output: bool = True
    logging: LogConfig = field(default_factory=LogConfig)

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        environ: Mapping[str, str] | None = None,
        env_prefix: str = ENV_PREFIX,
    ) -> SupervisorConfig:
        """
        Build a config from a dictionary shaped like the YAML file.

        Args:
            data: Configuration dictionary
            environ: Environment for overrides (defaults to os.environ)
            env_prefix: Prefix of override variables

        Raises:
            ConfigError: If a setting has the wrong shape or value
        """
        merged = _apply_env_overrides(
            dict(data), os.environ if environ is None else environ, env_prefix
        )
        process = _section(merged, "process")
        timeout = _section(merged, "timeout")
        output = _section(merged, "output")

        env = process.get("env") or {}
        if not isinstance(env, Mapping):
            raise ConfigError("Environment must be a mapping", env=env)

        try:
            log_config = LogConfig.from_config(merged, "logging")
        except LogError as e:
            raise ConfigError("Invalid logging section", error=e) from e

        config = cls(
            name=str(process.get("name", "process")),
            command=_parse_command(process.get("command")),
            env={str(k): str(v) for k, v in env.items()},
            cwd=process.get("cwd"),
            timeout_ms=_parse_int(timeout.get("millis", -1), "timeout.millis"),
            timeout_code=_parse_int(timeout.get("code", 1), "timeout.code"),
            recent_lines=_parse_int(
                output.get("recent_lines", DEFAULT_RECENT_LINES), "output.recent_lines"
            ),
            log_output=bool(output.get("log", True)),
            logging=log_config,
        )
        config.validate(require_command=False)
        return config

    @classmethod
    def from_yaml(
        cls,
        path: str | os.PathLike[str],
        environ: Mapping[str, str] | None = None,
        env_prefix: str = ENV_PREFIX,
    ) -> SupervisorConfig:
        """
        Load a config from a YAML file.

        Raises:
            ConfigError: If the file is missing, too large or not valid YAML
        """
        fname = Path(path)
        if not fname.is_file():
            raise ConfigError("Configuration file not found", path=str(fname))
        size = fname.stat().st_size
        if size > MAX_CONFIG_SIZE_BYTES:
            raise ConfigError(
                "Configuration file too large", path=str(fname), size=size
            )

        with open(fname) as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError("Invalid YAML", path=str(fname), error=e) from e

        if not isinstance(data, Mapping):
            raise ConfigError("Configuration root must be a mapping", path=str(fname))
        return cls.from_dict(data, environ, env_prefix)

    def with_overrides(self, **overrides: Any) -> SupervisorConfig:
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return dataclasses.replace(self, **changes)

    def validate(self, require_command: bool = True) -> None:
        """
        Check the settings.

        Raises:
            ConfigError: On an empty command (when required), a zero timeout
                or a non-positive line limit
        """
        if require_command and not self.command:
            raise ConfigError("No command to run", name=self.name)
        if self.timeout_ms == 0:
            raise ConfigError("Timeout must be positive or -1", timeout_ms=self.timeout_ms)
        if self.recent_lines < 1:
            raise ConfigError(
                "Recent line limit must be positive", recent_lines=self.recent_lines
            )


def build_service(config: SupervisorConfig, lg: Logger) -> ForkedProcessService:
    """
    Create a configured supervisor from settings.

    Args:
        config: Validated settings
        lg: Logger for the service

    Returns:
        A ForkedProcessService ready to start
    """
    config.validate()
    service = ForkedProcessService(config.name, lg, cwd=config.cwd)
    service.set_timeout(config.timeout_ms, config.timeout_code)
    service.set_recent_line_limit(config.recent_lines)
    if config.log_output:
        service.set_process_log(LoggerFactory.derive(lg, "out"))
    else:
        service.set_process_log(None)
    service.configure(config.env, config.command)
    return service
