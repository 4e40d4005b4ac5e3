"""
Time utilities for timing and duration formatting.

All timing functions use the monotonic clock so measurements stay consistent
even when the system time changes.

Example Usage:
    start_t = start()
    # ... do work ...
    lg.info("done", extra={"after": since(start_t)})
    lg.info(f"operation took {since_str(start_t)}")
"""

import time


def start() -> float:
    """
    Get the current monotonic time for timing measurements.

    Returns:
        float: Current monotonic time in seconds
    """
    return time.monotonic()


def since(start_t: float) -> float:
    """
    Calculate elapsed time since a start time.

    Args:
        start_t: Start time from start()

    Returns:
        float: Elapsed time in seconds
    """
    return time.monotonic() - start_t


def delta_str(secs: float) -> str:
    """
    Format a duration in seconds as a compact human-readable string.

    Format rules:
        - Below one millisecond: microseconds ("250μs")
        - Below one second: integer milliseconds ("12ms")
        - Below one minute: seconds, 3 decimals only when non-zero ("1s", "1.250s")
        - Otherwise: hours/minutes/seconds without padding ("1m10s", "2h0m5s")

    Args:
        secs: Duration in seconds (negative values are clamped to zero)

    Returns:
        str: Formatted duration
    """
    secs = max(0.0, secs)
    if secs < 0.001:
        return f"{int(round(secs * 1_000_000))}μs"
    if secs < 1:
        return f"{int(secs * 1000)}ms"
    if secs < 60:
        whole = int(secs)
        if secs - whole >= 0.0005:
            return f"{secs:.3f}s"
        return f"{whole}s"

    total = int(secs)
    hours, rem = divmod(total, 3600)
    minutes, seconds = divmod(rem, 60)
    if hours:
        return f"{hours}h{minutes}m{seconds}s"
    return f"{minutes}m{seconds}s"


def since_str(start_t: float) -> str:
    """
    Calculate elapsed time since a start time and format it with delta_str().

    Args:
        start_t: Start time from start()

    Returns:
        str: Formatted elapsed time
    """
    return delta_str(since(start_t))
