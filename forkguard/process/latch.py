"""
Single-fire completion flag shared by the exit path and the timeout path.
"""

import threading


class CompletionLatch:
    """
    A "process has finished" flag that can be set exactly once.

    The flag starts false and becomes true on the first successful
    try_set_completed(). Setting it wakes every thread blocked in
    wait_until_completed_or() immediately.

    Authorized writers:
        - the exit callback (process exited on its own)
        - the timeout watcher (deadline expired first)
        - a service stop (cancellation; never reports a failure)

    Exactly one caller ever receives True from try_set_completed(). The
    winner alone may declare the outcome of the run.

    Example:
        latch = CompletionLatch()
        if latch.try_set_completed():
            report_outcome()
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._completed = False

    @property
    def completed(self) -> bool:
        """Current value of the flag; never blocks on a writer."""
        return self._completed

    def try_set_completed(self) -> bool:
        """
        Atomically set the flag.

        Returns:
            True for the single caller that changed the flag, False for
            every later caller.
        """
        with self._cond:
            if self._completed:
                return False
            self._completed = True
            self._cond.notify_all()
            return True

    def wait_until_completed_or(self, timeout: float | None) -> bool:
        """
        Block until the flag is set or the timeout elapses, whichever is first.

        Does not modify the flag.

        Args:
            timeout: Maximum seconds to wait; None waits indefinitely

        Returns:
            The value of the flag on return.
        """
        with self._cond:
            return self._cond.wait_for(lambda: self._completed, timeout)

    def __repr__(self) -> str:
        return f"CompletionLatch(completed={self._completed})"
