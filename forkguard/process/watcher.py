"""
Background deadline watcher for a forked process.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import TYPE_CHECKING

from .. import time as fgtime
from .latch import CompletionLatch

if TYPE_CHECKING:
    from ..log import Logger


class TimeoutWatcher:
    """
    Fire-once task that declares a timeout if the process outlives its deadline.

    The watcher waits on the CompletionLatch for at most timeout_ms. On waking,
    whether signalled or because the deadline passed, it tries to set the latch:

    - losing means the process exited (or the service was stopped) first, and
      the watcher exits without any further action;
    - winning means the deadline expired: on_timeout is invoked once with the
      elapsed seconds.

    Stopping the owning service sets the latch, which wakes the watcher at once
    rather than leaving it to sleep out the deadline.

    Example:
        watcher = TimeoutWatcher(lg, latch, 5000, on_timeout, name="build")
        watcher.start()
    """

    def __init__(
        self,
        lg: Logger,
        latch: CompletionLatch,
        timeout_ms: int,
        on_timeout: Callable[[float], None],
        name: str = "process",
    ) -> None:
        if timeout_ms <= 0:
            raise ValueError(f"timeout must be positive: {timeout_ms}")
        self._lg = lg
        self._latch = latch
        self._timeout_ms = timeout_ms
        self._on_timeout = on_timeout
        self._fired = False
        self._thread = threading.Thread(
            target=self.run, name=f"{name}-timeout", daemon=True
        )

    @property
    def timeout_ms(self) -> int:
        return self._timeout_ms

    @property
    def fired(self) -> bool:
        """True once the watcher has declared a timeout."""
        return self._fired

    def start(self) -> None:
        """Schedule the watcher on its own daemon thread."""
        self._thread.start()

    def join(self, timeout: float | None = None) -> bool:
        """
        Wait for the watcher thread to finish.

        Returns:
            True if the watcher finished (or was never started).
        """
        if self._thread.ident is None:
            return True
        if threading.current_thread() is self._thread:
            return False
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def run(self) -> None:
        """Wait for completion or the deadline, then settle the race."""
        start_t = fgtime.start()
        self._latch.wait_until_completed_or(self._timeout_ms / 1000.0)

        if not self._latch.try_set_completed():
            self._lg.trace(
                "process finished before timeout",
                extra={"after": fgtime.since(start_t)},
            )
            return

        self._fired = True
        elapsed = fgtime.since(start_t)
        self._lg.info(
            "process timeout",
            extra={"timeout_ms": self._timeout_ms, "after": elapsed},
        )
        try:
            self._on_timeout(elapsed)
        except Exception as e:
            self._lg.error("timeout handler failed", extra={"exception": e})
