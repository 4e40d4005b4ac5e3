"""
Process launching: the launcher contract and the default subprocess launcher.

A launcher spawns one OS process, streams its output and reports lifecycle
events to a listener from its own notification thread:

    on_process_started(process)                 once the process is spawned
    on_process_exited(process, raw, corrected)  after the output is drained

on_process_started always precedes on_process_exited.
"""

from __future__ import annotations

import os
import subprocess
import threading
from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Protocol

from .. import time as fgtime
from ..exceptions import ServiceStateError
from .output import DEFAULT_RECENT_LINES, RecentOutputBuffer

if TYPE_CHECKING:
    from ..log import Logger

# Seconds to wait after SIGTERM before sending SIGKILL
DEFAULT_STOP_GRACE = 2.0


def sign_correct(code: int) -> int:
    """
    Map a raw exit code into the conventional non-negative range.

    A process killed by signal N reports -N; shells report that as 128 + N.
    """
    return 128 - code if code < 0 else code


class ProcessLifecycleListener(Protocol):
    """Receiver of launcher lifecycle notifications."""

    def on_process_started(self, process: Launcher) -> None: ...

    def on_process_exited(self, process: Launcher, uncorrected: int, code: int) -> None: ...


class Launcher(Protocol):
    """Contract the supervisor relies on to run a process."""

    @property
    def name(self) -> str: ...

    def set_lifecycle_listener(self, listener: ProcessLifecycleListener) -> None: ...

    def put_env(self, env: Mapping[str, str]) -> None: ...

    def set_output_log(self, lg: Logger | None) -> None: ...

    def set_recent_line_limit(self, limit: int) -> None: ...

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def is_running(self) -> bool: ...

    def get_exit_code(self) -> int | None: ...

    def get_exit_code_sign_corrected(self) -> int | None: ...

    def get_recent_output(
        self, final_output: bool = False, duration_ms: int = 0
    ) -> list[str]: ...


LauncherFactory = Callable[[str, "Logger", Sequence[str]], Launcher]


class LongLivedProcess:
    """
    Launcher backed by subprocess.Popen.

    stdout and stderr are merged and read line by line on a daemon thread,
    which also delivers the lifecycle notifications. Each line is kept in a
    RecentOutputBuffer and, unless disabled, logged to the output logger.

    Example:
        proc = LongLivedProcess("build", lg, ["make", "-j4"])
        proc.put_env({"CC": "clang"})
        proc.set_lifecycle_listener(listener)
        proc.start()
    """

    def __init__(
        self,
        name: str,
        lg: Logger,
        command: Sequence[str],
        cwd: str | os.PathLike[str] | None = None,
        stop_grace: float = DEFAULT_STOP_GRACE,
    ) -> None:
        if not command:
            raise ValueError("command must not be empty")
        self._name = name
        self._lg = lg
        self._command = list(command)
        self._cwd = cwd
        self._stop_grace = stop_grace
        self._env: dict[str, str] = {}
        self._listener: ProcessLifecycleListener | None = None
        self._output_log: Logger | None = lg
        self._output = RecentOutputBuffer(DEFAULT_RECENT_LINES)

        self._lock = threading.Lock()
        self._process: subprocess.Popen[str] | None = None
        self._thread: threading.Thread | None = None
        self._finished = threading.Event()
        self._exit_code: int | None = None
        self._exit_code_corrected: int | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def command(self) -> list[str]:
        return list(self._command)

    @property
    def env(self) -> dict[str, str]:
        return dict(self._env)

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    def set_lifecycle_listener(self, listener: ProcessLifecycleListener) -> None:
        self._listener = listener

    def put_env(self, env: Mapping[str, str]) -> None:
        """Add variables on top of the inherited environment."""
        self._env.update(env)

    def set_output_log(self, lg: Logger | None) -> None:
        """Set the logger process output goes to; None stops logging output."""
        self._output_log = lg

    def set_recent_line_limit(self, limit: int) -> None:
        self._output.set_limit(limit)

    def start(self) -> None:
        """
        Spawn the process and its notification thread.

        Raises:
            ServiceStateError: If already started
            OSError: If the executable cannot be launched
        """
        with self._lock:
            if self._process is not None:
                raise ServiceStateError("Process already started", process=self._name)

            env = dict(os.environ)
            env.update(self._env)
            self._lg.debug(
                "starting process",
                extra={"command": self._command, "cwd": self._cwd or os.getcwd()},
            )
            self._process = subprocess.Popen(
                self._command,
                env=env,
                cwd=self._cwd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                bufsize=1,
            )
            self._thread = threading.Thread(
                target=self._run, name=f"{self._name}-process", daemon=True
            )
            self._thread.start()

    def _run(self) -> None:
        process = self._process
        if process is None or process.stdout is None:
            return

        start_t = fgtime.start()
        self._notify_started()
        try:
            for line in process.stdout:
                self._on_line(line.rstrip("\r\n"))
        except (OSError, ValueError) as e:
            self._lg.warning("error reading process output", extra={"exception": e})
        finally:
            process.stdout.close()

        raw = process.wait()
        corrected = sign_correct(raw)
        self._exit_code = raw
        self._exit_code_corrected = corrected
        self._finished.set()
        self._output.finish()

        self._lg.debug(
            "process exited",
            extra={"pid": process.pid, "code": raw, "after": fgtime.since(start_t)},
        )
        self._notify_exited(raw, corrected)

    def _on_line(self, line: str) -> None:
        self._output.append(line)
        if self._output_log is not None:
            self._output_log.info(line)

    def _notify_started(self) -> None:
        if self._listener is None:
            return
        try:
            self._listener.on_process_started(self)
        except Exception as e:
            self._lg.error("process start callback failed", extra={"exception": e})

    def _notify_exited(self, raw: int, corrected: int) -> None:
        if self._listener is None:
            return
        try:
            self._listener.on_process_exited(self, raw, corrected)
        except Exception as e:
            self._lg.error("process exit callback failed", extra={"exception": e})

    def is_running(self) -> bool:
        """True between spawning and the exit code being collected."""
        return self._process is not None and not self._finished.is_set()

    def stop(self) -> None:
        """
        Terminate the process if it is still running.

        Sends SIGTERM, waits up to the grace period, then SIGKILL. Does not wait
        for the notification thread, so it is safe to call from a callback.
        """
        process = self._process
        if process is None or not self.is_running():
            return

        self._lg.debug("stopping process", extra={"pid": process.pid})
        try:
            process.terminate()
            try:
                process.wait(timeout=self._stop_grace)
            except subprocess.TimeoutExpired:
                self._lg.warning(
                    "process ignored SIGTERM, killing",
                    extra={"pid": process.pid, "grace": self._stop_grace},
                )
                process.kill()
        except ProcessLookupError:
            self._lg.trace("process already exited", extra={"pid": process.pid})

    def get_exit_code(self) -> int | None:
        """Raw exit code, or None while unknown."""
        return self._exit_code

    def get_exit_code_sign_corrected(self) -> int | None:
        """Sign-corrected exit code, or None while unknown."""
        return self._exit_code_corrected

    def get_recent_output(
        self, final_output: bool = False, duration_ms: int = 0
    ) -> list[str]:
        """
        Get the recent output lines.

        Args:
            final_output: Wait for the final output of the process
            duration_ms: Maximum time to wait for output to become non-empty
                (or final, with final_output)

        Returns:
            A possibly empty list
        """
        return self._output.snapshot(final_output, duration_ms / 1000.0)

    def __repr__(self) -> str:
        return f"LongLivedProcess(name={self._name!r}, command={self._command!r})"
