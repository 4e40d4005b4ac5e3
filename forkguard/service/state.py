"""
Service lifecycle states.
"""

from enum import Enum


class ServiceState(Enum):
    """States of the generic service lifecycle.

    A service moves INITIALIZED -> STARTED -> STOPPED, or directly from
    INITIALIZED to STOPPED when it is stopped before being started.
    STOPPED is terminal.
    """

    INITIALIZED = "initialized"
    STARTED = "started"
    STOPPED = "stopped"
