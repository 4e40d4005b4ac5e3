"""
forkguard - supervise a forked process.

Starts an external process as a lifecycle-managed service, watches for its
exit and an optional execution timeout, and reports the outcome as at most
one failure through the service's fault channel.

Example:
    from forkguard import ForkedProcessService, create_root_lg

    lg = create_root_lg("info")
    svc = ForkedProcessService("build", lg, command=["make"])
    svc.set_timeout(60_000, 124)
    svc.start()
    svc.wait_for_service_to_stop()
    if svc.failure:
        print(svc.failure.message)
"""

from .config import SupervisorConfig, build_service
from .exceptions import (
    AlreadyConfiguredError,
    ConfigError,
    ForkguardError,
    NotConfiguredError,
    ProcessExitFailure,
    ServiceLaunchError,
    ServiceStateError,
    TimeoutFailure,
)
from .log import Logger, LogConfig, LoggerFactory, create_root_lg, derive_lg
from .process import (
    CompletionLatch,
    FailureKind,
    FailureRecord,
    FailureReporter,
    ForkedProcessService,
    Launcher,
    LongLivedProcess,
    ProcessState,
    TimeoutWatcher,
)
from .service import Service, ServiceState
from .version import __version__

__all__ = [
    "__version__",
    # Supervision
    "ForkedProcessService",
    "CompletionLatch",
    "TimeoutWatcher",
    "FailureRecord",
    "FailureKind",
    "FailureReporter",
    "Launcher",
    "LongLivedProcess",
    "ProcessState",
    # Service lifecycle
    "Service",
    "ServiceState",
    # Configuration
    "SupervisorConfig",
    "build_service",
    # Logging
    "Logger",
    "LogConfig",
    "LoggerFactory",
    "create_root_lg",
    "derive_lg",
    # Exceptions
    "ForkguardError",
    "ConfigError",
    "ServiceStateError",
    "NotConfiguredError",
    "AlreadyConfiguredError",
    "ServiceLaunchError",
    "ProcessExitFailure",
    "TimeoutFailure",
]
