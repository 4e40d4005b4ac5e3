"""
Launcher fixtures for testing.

FakeLauncher implements the launcher contract without spawning anything.
Tests drive it explicitly: start() delivers on_process_started, exit()
delivers on_process_exited, and stop() records termination requests.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping, Sequence
from typing import Any

import pytest

from forkguard.process import sign_correct


class FakeLauncher:
    """
    Scriptable stand-in for LongLivedProcess.

    Attributes:
        exit_on_stop: When True, stop() makes the process "die" from SIGTERM
            on a separate thread, like a real launcher's notification thread.
        start_error: Exception raised from start() when set.
    """

    def __init__(self, name: str, lg: Any, command: Sequence[str]) -> None:
        self._name = name
        self.lg = lg
        self.command = list(command)
        self.env: dict[str, str] = {}
        self.listener: Any = None
        self.output_log: Any = "unset"
        self.recent_line_limit: int | None = None
        self.lines: list[str] = []
        self.exit_on_stop = True
        self.start_error: Exception | None = None
        self.start_calls = 0
        self.stop_calls = 0
        self.running = False
        self.exit_code: int | None = None
        self.exit_code_corrected: int | None = None
        self.exit_threads: list[threading.Thread] = []
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    def set_lifecycle_listener(self, listener: Any) -> None:
        self.listener = listener

    def put_env(self, env: Mapping[str, str]) -> None:
        self.env.update(env)

    def set_output_log(self, lg: Any) -> None:
        self.output_log = lg

    def set_recent_line_limit(self, limit: int) -> None:
        self.recent_line_limit = limit

    def start(self) -> None:
        self.start_calls += 1
        if self.start_error is not None:
            raise self.start_error
        self.running = True
        self.listener.on_process_started(self)

    def exit(self, raw: int, corrected: int | None = None) -> None:
        """Deliver the exit notification on the calling thread."""
        with self._lock:
            if not self.running:
                return
            self.running = False
        self.exit_code = raw
        self.exit_code_corrected = sign_correct(raw) if corrected is None else corrected
        self.listener.on_process_exited(self, raw, self.exit_code_corrected)

    def exit_async(self, raw: int, corrected: int | None = None) -> threading.Thread:
        """Deliver the exit notification from a new thread."""
        thread = threading.Thread(target=self.exit, args=(raw, corrected), daemon=True)
        self.exit_threads.append(thread)
        thread.start()
        return thread

    def stop(self) -> None:
        self.stop_calls += 1
        if self.exit_on_stop and self.running:
            self.exit_async(-15)

    def is_running(self) -> bool:
        return self.running

    def get_exit_code(self) -> int | None:
        return self.exit_code

    def get_exit_code_sign_corrected(self) -> int | None:
        return self.exit_code_corrected

    def get_recent_output(self, final_output: bool = False, duration_ms: int = 0) -> list[str]:
        return list(self.lines)

    def join_exits(self, timeout: float = 2.0) -> None:
        for thread in list(self.exit_threads):
            thread.join(timeout)


class FakeLauncherFactory:
    """Launcher factory remembering every launcher it built."""

    def __init__(self) -> None:
        self.created: list[FakeLauncher] = []

    def __call__(self, name: str, lg: Any, command: Sequence[str]) -> FakeLauncher:
        launcher = FakeLauncher(name, lg, command)
        self.created.append(launcher)
        return launcher

    @property
    def last(self) -> FakeLauncher:
        return self.created[-1]


@pytest.fixture
def launcher_factory() -> FakeLauncherFactory:
    """Provide a factory producing FakeLauncher instances."""
    return FakeLauncherFactory()
