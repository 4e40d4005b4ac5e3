"""
Forked process supervision.

Launches a single external process, watches for its exit and an optional
execution deadline, and turns the outcome into at most one failure.
"""

from .failure import FailureKind, FailureRecord, FailureReporter
from .latch import CompletionLatch
from .launcher import (
    Launcher,
    LauncherFactory,
    LongLivedProcess,
    ProcessLifecycleListener,
    sign_correct,
)
from .output import RecentOutputBuffer
from .supervisor import ExitStatus, ForkedProcessService, ProcessState, TimeoutConfig
from .watcher import TimeoutWatcher

__all__ = [
    "CompletionLatch",
    "ExitStatus",
    "FailureKind",
    "FailureRecord",
    "FailureReporter",
    "ForkedProcessService",
    "Launcher",
    "LauncherFactory",
    "LongLivedProcess",
    "ProcessLifecycleListener",
    "ProcessState",
    "RecentOutputBuffer",
    "TimeoutConfig",
    "TimeoutWatcher",
    "sign_correct",
]
