"""
Failure records and the once-per-run failure reporter.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from ..exceptions import ProcessExitFailure, ServiceLaunchError, TimeoutFailure

if TYPE_CHECKING:
    from ..log import Logger


class FailureKind(Enum):
    """Which path produced a failure."""

    EXIT = "exit"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class FailureRecord:
    """
    Why a run failed.

    Attributes:
        code: Exit code of the process, or the configured timeout code
        message: Human-readable description
        kind: Path that produced the record
    """

    code: int
    message: str
    kind: FailureKind = FailureKind.EXIT

    @classmethod
    def for_exit(cls, name: str, code: int) -> FailureRecord:
        return cls(code, f"{name} failed with code {code}", FailureKind.EXIT)

    @classmethod
    def for_timeout(cls, name: str, timeout_ms: int, code: int) -> FailureRecord:
        return cls(
            code,
            f"{name}: timeout after {timeout_ms} millis: exit code ={code}",
            FailureKind.TIMEOUT,
        )

    def to_exception(self) -> ServiceLaunchError:
        """Convert to the exception delivered through the fault channel."""
        if self.kind is FailureKind.TIMEOUT:
            return TimeoutFailure(self.code, self.message)
        return ProcessExitFailure(self.code, self.message)


FailureSink = Callable[[ServiceLaunchError], object]


class FailureReporter:
    """
    Hands a run's FailureRecord to the host's fault hook exactly once.

    The first record passed to report() is kept and delivered; later records
    are dropped and logged at trace level.
    """

    def __init__(self, lg: Logger, sink: FailureSink) -> None:
        self._lg = lg
        self._sink = sink
        self._lock = threading.Lock()
        self._record: FailureRecord | None = None

    @property
    def record(self) -> FailureRecord | None:
        return self._record

    def report(self, record: FailureRecord) -> bool:
        """
        Record and deliver a failure.

        Returns:
            True if the record was delivered, False if one was already reported.
        """
        with self._lock:
            if self._record is not None:
                self._lg.trace(
                    "failure already reported",
                    extra={"code": record.code, "kind": record.kind.value},
                )
                return False
            self._record = record

        exc = record.to_exception()
        self._lg.debug(
            "noting failure",
            extra={"code": record.code, "kind": record.kind.value, "exception": exc},
        )
        self._sink(exc)
        return True
