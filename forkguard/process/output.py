"""
Bounded buffer of the most recent output lines of a process.
"""

import threading
from collections import deque

DEFAULT_RECENT_LINES = 64


class RecentOutputBuffer:
    """
    Thread-safe ring of the last N output lines.

    Readers may take a non-blocking snapshot, or wait (bounded) for output to
    appear or for the writer to mark the output as final.
    """

    def __init__(self, limit: int = DEFAULT_RECENT_LINES) -> None:
        if limit < 1:
            raise ValueError(f"line limit must be positive: {limit}")
        self._cond = threading.Condition()
        self._lines: deque[str] = deque(maxlen=limit)
        self._finished = False

    @property
    def limit(self) -> int:
        return self._lines.maxlen or 0

    @property
    def finished(self) -> bool:
        return self._finished

    def set_limit(self, limit: int) -> None:
        """Change the line limit, keeping the most recent lines."""
        if limit < 1:
            raise ValueError(f"line limit must be positive: {limit}")
        with self._cond:
            self._lines = deque(self._lines, maxlen=limit)

    def append(self, line: str) -> None:
        with self._cond:
            self._lines.append(line)
            self._cond.notify_all()

    def finish(self) -> None:
        """Mark the output as complete; no more lines will be appended."""
        with self._cond:
            self._finished = True
            self._cond.notify_all()

    def snapshot(self, final_output: bool = False, timeout: float = 0) -> list[str]:
        """
        Copy the buffered lines.

        Args:
            final_output: Wait for the output to be finished rather than non-empty
            timeout: Maximum seconds to wait; 0 returns immediately

        Returns:
            A possibly empty list, oldest line first.
        """
        with self._cond:
            if timeout > 0:
                if final_output:
                    self._cond.wait_for(lambda: self._finished, timeout)
                else:
                    self._cond.wait_for(
                        lambda: len(self._lines) > 0 or self._finished, timeout
                    )
            return list(self._lines)
