"""
Unified exception hierarchy for forkguard.

All errors raised by the package inherit from ForkguardError, so callers can
catch every framework error with a single except clause.
"""

from typing import Any


class ForkguardError(Exception):
    """
    Base exception for all forkguard errors.

    Example:
        try:
            service.start()
        except ForkguardError as e:
            lg.error("supervisor failed", extra={"exception": e})
    """

    def __init__(self, message: str, **context: Any) -> None:
        """
        Initialize the exception with a message and optional context.

        Args:
            message: Human-readable error message
            **context: Additional context information (stored in self.context)
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """String representation with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class ConfigError(ForkguardError):
    """
    Configuration-related errors.

    Examples:
        - Config file not found
        - Invalid YAML syntax
        - Missing command
        - Invalid timeout value
    """

    pass


class ServiceStateError(ForkguardError):
    """
    Raised when a lifecycle operation is invalid for the current state.

    Also used to wrap exceptions raised by a service start hook.
    """

    @classmethod
    def convert(cls, exc: BaseException) -> "ServiceStateError":
        """Return exc unchanged if it already is a ServiceStateError, else wrap it."""
        if isinstance(exc, ServiceStateError):
            return exc
        err = cls(str(exc) or exc.__class__.__name__)
        err.__cause__ = exc
        return err


class NotConfiguredError(ServiceStateError):
    """Raised when a process is started before it has been configured."""

    def __init__(self, name: str) -> None:
        super().__init__("Process not yet configured", service=name)


class AlreadyConfiguredError(ServiceStateError):
    """Raised when a process is configured a second time."""

    def __init__(self, name: str) -> None:
        super().__init__("Process already configured", service=name)


class ServiceLaunchError(ForkguardError):
    """
    A launched process failed; carries the exit code to surface to callers.

    Attributes:
        code: Exit code describing the failure
    """

    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code

    def __str__(self) -> str:
        return self.message


class ProcessExitFailure(ServiceLaunchError):
    """The forked process exited with a non-zero code."""

    pass


class TimeoutFailure(ServiceLaunchError):
    """The forked process did not finish within its execution timeout."""

    pass
