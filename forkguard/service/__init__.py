"""
Lifecycle-managed services.

Provides the generic start/stop state machine and fault channel that
supervised components plug into.
"""

from .service import FaultListener, Service, StateListener
from .state import ServiceState

__all__ = ["FaultListener", "Service", "ServiceState", "StateListener"]
