"""
Generic service lifecycle.

This module provides the host side of a lifecycle-managed service: an explicit
state machine, start/stop hooks for subclasses, a first-failure-wins fault
channel and a way to block until the service has stopped.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import TYPE_CHECKING

from ..exceptions import ServiceStateError
from .state import ServiceState

if TYPE_CHECKING:
    from ..log import Logger

FaultListener = Callable[["Service", BaseException], None]
StateListener = Callable[["Service", ServiceState], None]


class Service:
    """
    Base class for lifecycle-managed services.

    Subclasses implement on_service_start() and on_service_stop(). Callers use
    start() and stop(), which drive the state machine and invoke the hooks.

    Example:
        class Heartbeat(Service):
            def on_service_start(self) -> None:
                self._thread.start()

            def on_service_stop(self) -> None:
                self._stopping.set()

        svc = Heartbeat("heartbeat", lg)
        svc.add_fault_listener(lambda s, e: lg.error("failed", extra={"exception": e}))
        svc.start()
        svc.wait_for_service_to_stop(5.0)
    """

    def __init__(self, name: str, lg: Logger) -> None:
        self._name = name
        self._lg = lg
        self._state = ServiceState.INITIALIZED
        self._state_lock = threading.RLock()
        self._terminated = threading.Event()
        self._failure_lock = threading.Lock()
        self._failure_cause: BaseException | None = None
        self._fault_listeners: list[FaultListener] = []
        self._state_listeners: list[StateListener] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def lg(self) -> Logger:
        return self._lg

    @property
    def state(self) -> ServiceState:
        return self._state

    @property
    def failure_cause(self) -> BaseException | None:
        """The first failure noted for this service, or None."""
        return self._failure_cause

    def is_in_state(self, state: ServiceState) -> bool:
        return self._state is state

    def add_fault_listener(self, listener: FaultListener) -> None:
        """Register a callback invoked once with the first noted failure."""
        self._fault_listeners.append(listener)

    def add_state_listener(self, listener: StateListener) -> None:
        """Register a callback invoked after every state change."""
        self._state_listeners.append(listener)

    def on_service_start(self) -> None:
        """Hook invoked by start(); raise to fail the start."""
        pass

    def on_service_stop(self) -> None:
        """Hook invoked once by the first stop()."""
        pass

    def start(self) -> None:
        """
        Start the service.

        Raises:
            ServiceStateError: If the service is not INITIALIZED, or the start
                hook failed (the original exception is chained). A failed start
                notes the failure and stops the service.
        """
        with self._state_lock:
            if self._state is not ServiceState.INITIALIZED:
                raise ServiceStateError(
                    "Cannot start service", service=self._name, state=self._state.value
                )
            self._set_state(ServiceState.STARTED)
            try:
                self.on_service_start()
            except Exception as e:
                self._lg.debug("service start failed", extra={"exception": e})
                self.note_failure(e)
                self.stop()
                raise ServiceStateError.convert(e)

    def stop(self) -> None:
        """
        Stop the service.

        Idempotent: only the first call changes state and runs the stop hook.
        Later calls return at once, even while the first one is still in its
        hook; wait_for_service_to_stop() blocks until the hook has finished.
        Errors raised by the hook are logged and noted, never propagated.
        """
        with self._state_lock:
            if self._state is ServiceState.STOPPED:
                return
            self._set_state(ServiceState.STOPPED)

        # unlocked: the hook may wait on threads that call stop() themselves
        try:
            self.on_service_stop()
        except Exception as e:
            self._lg.warning("service stop failed", extra={"exception": e})
            self.note_failure(e)
        finally:
            self._terminated.set()

    def note_failure(self, exc: BaseException) -> bool:
        """
        Record a failure; only the first one is kept and reported.

        Returns:
            True if this failure was recorded, False if one already was.
        """
        with self._failure_lock:
            if self._failure_cause is not None:
                self._lg.trace(
                    "ignoring subsequent failure", extra={"exception": exc}
                )
                return False
            self._failure_cause = exc

        self._lg.debug("noted failure", extra={"exception": exc})
        for listener in list(self._fault_listeners):
            try:
                listener(self, exc)
            except Exception as e:
                self._lg.warning("fault listener failed", extra={"exception": e})
        return True

    def wait_for_service_to_stop(self, timeout: float | None = None) -> bool:
        """
        Block until the service has stopped.

        Args:
            timeout: Maximum seconds to wait (None waits forever)

        Returns:
            True if the service stopped, False on timeout.
        """
        return self._terminated.wait(timeout)

    def _set_state(self, state: ServiceState) -> None:
        previous = self._state
        self._state = state
        self._lg.debug(
            "service state changed",
            extra={"from": previous.value, "to": state.value},
        )
        for listener in list(self._state_listeners):
            try:
                listener(self, state)
            except Exception as e:
                self._lg.warning("state listener failed", extra={"exception": e})

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self._name!r}, state={self._state.value})"
