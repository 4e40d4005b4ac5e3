"""
Service wrapper for an external program that is launched and will terminate.

The service is notified when the process terminates; it then stops itself
and converts a non-zero exit code into a failure. An optional execution
timeout escalates a process that runs too long into a failure as well.

Usage:
    The process is defined either through the constructor or through
    configure(); exactly one of the two must be used, before start().

    svc = ForkedProcessService("build", lg, env={"CC": "clang"}, command=["make"])
    svc.set_timeout(60_000, 124)
    svc.add_fault_listener(on_fault)
    svc.start()
    svc.wait_for_service_to_stop()

Completion race:
    The exit callback, the timeout watcher and stop() all try to set one
    CompletionLatch. Only the exit callback and the watcher report failures,
    and only when they win the latch, so a run produces at most one
    FailureRecord. The launcher receives at most one termination request per
    run, from the timeout path or from stop(), whichever comes first.
"""

from __future__ import annotations

import os
import threading
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..exceptions import AlreadyConfiguredError, NotConfiguredError
from ..log import LoggerFactory
from ..service import Service, ServiceState
from .failure import FailureRecord, FailureReporter
from .latch import CompletionLatch
from .launcher import Launcher, LauncherFactory, LongLivedProcess
from .watcher import TimeoutWatcher

if TYPE_CHECKING:
    from ..log import Logger

# Upper bound on how long stop() waits for a firing timeout watcher
WATCHER_JOIN_TIMEOUT = 10.0

_UNSET: Any = object()


class ProcessState(Enum):
    """Where a supervised process is in its lifecycle."""

    NOT_CONFIGURED = "not_configured"
    CONFIGURED = "configured"
    STARTED = "started"
    COMPLETED_OK = "completed_ok"
    COMPLETED_FAILED = "completed_failed"
    TIMED_OUT = "timed_out"
    STOPPED = "stopped"


@dataclass(frozen=True)
class TimeoutConfig:
    """Execution deadline; timeout_ms of -1 (or any non-positive value) means unbounded."""

    timeout_ms: int = -1
    code: int = 1

    @property
    def bounded(self) -> bool:
        return self.timeout_ms > 0


@dataclass(frozen=True)
class ExitStatus:
    """Exit codes captured when the process exited."""

    raw: int
    corrected: int


class ForkedProcessService(Service):
    """
    Supervises a single forked process on behalf of the service lifecycle.

    Implements the launcher's lifecycle listener; the launcher calls
    on_process_started() and on_process_exited() from its own thread.
    """

    def __init__(
        self,
        name: str,
        lg: Logger,
        env: Mapping[str, str] | None = None,
        command: Sequence[str] | None = None,
        cwd: str | os.PathLike[str] | None = None,
        launcher_factory: LauncherFactory | None = None,
    ) -> None:
        """
        Create the service, optionally defining the process right away.

        Args:
            name: Service name, also used in failure messages
            lg: Logger for the service
            env: Environment variables added to the inherited environment
            command: Command to run; when given, configure() is called now
            cwd: Working directory of the default launcher
            launcher_factory: Builds the launcher as factory(name, lg, command)
        """
        super().__init__(name, lg)
        self._cwd = cwd
        self._launcher_factory = launcher_factory or self._default_launcher
        self._lock = threading.Lock()
        self._latch = CompletionLatch()
        self._reporter = FailureReporter(lg, self.note_failure)
        self._process: Launcher | None = None
        self._started = False
        self._termination_requested = False
        self._timeout = TimeoutConfig()
        self._run_timeout: TimeoutConfig | None = None
        self._watcher: TimeoutWatcher | None = None
        self._outcome: ProcessState | None = None
        self._exit_status: ExitStatus | None = None
        self._process_log: Logger | None = _UNSET
        self._recent_line_limit: int | None = None

        if command is not None:
            self.configure(env or {}, command)

    def _default_launcher(
        self, name: str, lg: Logger, command: Sequence[str]
    ) -> Launcher:
        return LongLivedProcess(name, lg, command, cwd=self._cwd)

    # -- setup ---------------------------------------------------------------

    def configure(self, env: Mapping[str, str], command: Sequence[str]) -> None:
        """
        Define the process to execute when the service is started.

        Args:
            env: Environment variables added to the inherited environment
            command: Command and arguments; the first element is the executable

        Raises:
            AlreadyConfiguredError: If the process was already defined
        """
        with self._lock:
            if self._process is not None:
                raise AlreadyConfiguredError(self.name)

            process = self._launcher_factory(self.name, self.lg, list(command))
            process.set_lifecycle_listener(self)
            process.put_env(dict(env))
            if self._process_log is not _UNSET:
                process.set_output_log(self._process_log)
            if self._recent_line_limit is not None:
                process.set_recent_line_limit(self._recent_line_limit)
            self._process = process

        self.lg.trace("process configured", extra={"command": list(command)})

    def set_process_log(self, lg: Logger | None) -> None:
        """Set the logger for process output; None disables output logging."""
        self._process_log = lg
        if self._process is not None:
            self._process.set_output_log(lg)

    def set_recent_line_limit(self, limit: int) -> None:
        """Set how many recent output lines are retained."""
        self._recent_line_limit = limit
        if self._process is not None:
            self._process.set_recent_line_limit(limit)

    def set_timeout(self, timeout_ms: int, code: int = 1) -> None:
        """
        Set the time by which the process must have finished.

        Takes effect for a run only if set before start().

        Args:
            timeout_ms: Timeout in milliseconds, or -1 for forever
            code: Exit code reported when the timeout fires
        """
        self._timeout = TimeoutConfig(timeout_ms, code)

    # -- lifecycle hooks -----------------------------------------------------

    def on_service_start(self) -> None:
        if self._process is None:
            raise NotConfiguredError(self.name)
        self._run_timeout = self._timeout
        # spawn the process; updates arrive via callbacks
        self._process.start()

    def on_service_stop(self) -> None:
        # wakes a waiting watcher; a no-op once the run has completed
        self._latch.try_set_completed()
        watcher = self._watcher
        if watcher is not None:
            # a watcher that won the race finishes terminating and reporting first
            watcher.join(WATCHER_JOIN_TIMEOUT)
        self._stop_forked_process()

    def _stop_forked_process(self) -> None:
        # at most one termination request per run, whichever path gets here first
        with self._lock:
            process = self._process
            if process is None or self._termination_requested:
                return
            if not process.is_running():
                return
            self._termination_requested = True
        process.stop()

    # -- launcher callbacks --------------------------------------------------

    def on_process_started(self, process: Launcher) -> None:
        """Notification from the launcher that the process is running."""
        try:
            with self._lock:
                self._started = True
                timeout = self._run_timeout or self._timeout
                self.lg.debug("process has started")
                if not timeout.bounded:
                    return
                self._watcher = TimeoutWatcher(
                    LoggerFactory.derive(self.lg, "timeout"),
                    self._latch,
                    timeout.timeout_ms,
                    self._on_timeout,
                    name=self.name,
                )
                self._watcher.start()
        except Exception as e:
            self.lg.error("failed to handle process start", extra={"exception": e})
            self.note_failure(e)

    def on_process_exited(self, process: Launcher, uncorrected: int, code: int) -> None:
        """Notification from the launcher that the process has exited."""
        record: FailureRecord | None = None
        try:
            with self._lock:
                self._exit_status = ExitStatus(uncorrected, code)
                won = self._latch.try_set_completed()
                self.lg.debug(
                    "process has exited", extra={"code": code, "raw": uncorrected}
                )
                if won:
                    if code != 0:
                        self._outcome = ProcessState.COMPLETED_FAILED
                        record = FailureRecord.for_exit(self.name, code)
                    else:
                        self._outcome = ProcessState.COMPLETED_OK
            if record is not None:
                self._reporter.report(record)
        except Exception as e:
            self.lg.error("failed to handle process exit", extra={"exception": e})
            self.note_failure(e)
        finally:
            # outside the critical section: stop() may re-enter callbacks
            self.stop()

    def _on_timeout(self, elapsed: float) -> None:
        timeout = self._run_timeout or self._timeout
        with self._lock:
            self._outcome = ProcessState.TIMED_OUT
        self.lg.info(
            "process timeout: reporting error code",
            extra={"code": timeout.code, "after": elapsed},
        )
        if self.is_in_state(ServiceState.STARTED):
            self._stop_forked_process()
        self._reporter.report(
            FailureRecord.for_timeout(self.name, timeout.timeout_ms, timeout.code)
        )

    # -- accessors -----------------------------------------------------------

    @property
    def timeout(self) -> TimeoutConfig:
        return self._timeout

    @property
    def failure(self) -> FailureRecord | None:
        """The single failure of this run, or None."""
        return self._reporter.record

    @property
    def outcome(self) -> ProcessState | None:
        """COMPLETED_OK, COMPLETED_FAILED or TIMED_OUT once decided."""
        return self._outcome

    @property
    def exit_status(self) -> ExitStatus | None:
        return self._exit_status

    @property
    def process(self) -> Launcher | None:
        return self._process

    @property
    def process_state(self) -> ProcessState:
        if self.is_in_state(ServiceState.STOPPED):
            return ProcessState.STOPPED
        if self._outcome is not None:
            return self._outcome
        if self._started:
            return ProcessState.STARTED
        if self._process is not None:
            return ProcessState.CONFIGURED
        return ProcessState.NOT_CONFIGURED

    def is_started(self) -> bool:
        return self._started

    def is_terminated(self) -> bool:
        return self._latch.completed

    def is_running(self) -> bool:
        """True between the process starting and its completion."""
        return self._started and not self._latch.completed

    def get_exit_code(self) -> int | None:
        """Raw exit code of the process, or None if unknown."""
        if self._process is None:
            return None
        return self._process.get_exit_code()

    def get_exit_code_sign_corrected(self) -> int:
        """Sign-corrected exit code of the process, or -1 if unknown."""
        if self._process is None:
            return -1
        code = self._process.get_exit_code_sign_corrected()
        return -1 if code is None else code

    def get_recent_output(self, final_output: bool = False, duration_ms: int = 0) -> list[str]:
        """
        Get the recent output from the process, or [] if not defined.

        Args:
            final_output: Wait for the final output of the process
            duration_ms: Time in milliseconds to wait for the recent output to
                become non-empty (or final, with final_output)

        Returns:
            A possibly empty list
        """
        if self._process is None:
            return []
        return self._process.get_recent_output(final_output, duration_ms)
