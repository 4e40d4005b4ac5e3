"""
Property-based tests for the completion race.

Whatever the exit code, and however the exit callback, the timeout watcher
and a host stop interleave, a run settles the latch once and reports at most
one failure.
"""

import threading
import time

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from forkguard.log import LogConfig, Logger
from forkguard.process import CompletionLatch, FailureKind, ForkedProcessService
from tests.fixtures.launcher import FakeLauncherFactory

TIMEOUT_CODE = 124


def quiet_logger() -> Logger:
    return Logger("/property", LogConfig.from_params(False))


def make_service(timeout_ms: int = -1, stop_on_fault: bool = False):
    factory = FakeLauncherFactory()
    svc = ForkedProcessService("prop", quiet_logger(), launcher_factory=factory)
    svc.configure({}, ["sleep", "10"])
    svc.set_timeout(timeout_ms, TIMEOUT_CODE)
    faults = []
    svc.add_fault_listener(lambda s, exc: faults.append(exc))
    if stop_on_fault:
        svc.add_fault_listener(lambda s, exc: s.stop())
    return svc, factory.last, faults


def settle(svc, launcher):
    assert svc.wait_for_service_to_stop(5)
    launcher.join_exits(5)
    if svc._watcher is not None:
        assert svc._watcher.join(5)


@pytest.mark.property
@pytest.mark.unit
class TestExitCodeProperties:
    """Exit code to failure mapping."""

    @given(code=st.integers(min_value=-(2**31), max_value=2**31 - 1))
    @settings(max_examples=100, deadline=None)
    def test_one_failure_per_non_zero_code(self, code: int) -> None:
        """Non-zero codes yield exactly one record with that code; zero yields none."""
        svc, launcher, faults = make_service()
        svc.start()

        launcher.exit(code, corrected=code)
        settle(svc, launcher)

        if code == 0:
            assert faults == []
            assert svc.failure is None
        else:
            assert len(faults) == 1
            assert faults[0].code == code
            assert svc.failure.code == code
            assert svc.failure.kind is FailureKind.EXIT

    @given(raw=st.integers(min_value=-64, max_value=-1))
    @settings(max_examples=30, deadline=None)
    def test_signal_codes_are_corrected(self, raw: int) -> None:
        """Signal deaths are reported as 128 + signal."""
        svc, launcher, faults = make_service()
        svc.start()

        launcher.exit(raw)
        settle(svc, launcher)

        assert svc.failure.code == 128 - raw
        assert svc.get_exit_code_sign_corrected() == 128 - raw


@pytest.mark.property
@pytest.mark.unit
class TestLatchProperties:
    """Single-winner latch under contention."""

    @given(writers=st.integers(min_value=2, max_value=16))
    @settings(max_examples=25, deadline=None)
    def test_single_winner(self, writers: int) -> None:
        """Exactly one concurrent writer wins."""
        latch = CompletionLatch()
        barrier = threading.Barrier(writers)
        wins = []

        def write():
            barrier.wait()
            wins.append(latch.try_set_completed())

        threads = [threading.Thread(target=write) for _ in range(writers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(5)

        assert wins.count(True) == 1
        assert latch.completed is True


@pytest.mark.property
@pytest.mark.unit
class TestRaceProperties:
    """Interleavings of exit, timeout and stop."""

    @given(
        code=st.integers(min_value=1, max_value=255),
        exit_delay=st.floats(min_value=0, max_value=0.01),
        stop_on_fault=st.booleans(),
    )
    @settings(max_examples=40, deadline=None)
    def test_exit_versus_timeout(self, code: int, exit_delay: float, stop_on_fault: bool) -> None:
        """Exactly one failure: the exit code or the timeout code, never both."""
        svc, launcher, faults = make_service(timeout_ms=5, stop_on_fault=stop_on_fault)
        svc.start()

        time.sleep(exit_delay)
        launcher.exit(code)
        settle(svc, launcher)

        assert len(faults) == 1
        if svc.failure.kind is FailureKind.TIMEOUT:
            assert svc.failure.code == TIMEOUT_CODE
        else:
            assert svc.failure.code == code
        assert launcher.stop_calls <= 1
        assert svc.is_terminated() is True

    @given(
        code=st.integers(min_value=0, max_value=255),
        exit_delay=st.floats(min_value=0, max_value=0.01),
        stop_delay=st.floats(min_value=0, max_value=0.01),
        stop_on_fault=st.booleans(),
    )
    @settings(max_examples=40, deadline=None)
    def test_exit_timeout_and_stop(
        self, code: int, exit_delay: float, stop_delay: float, stop_on_fault: bool
    ) -> None:
        """With a concurrent host stop there is at most one failure and one termination."""
        svc, launcher, faults = make_service(timeout_ms=5, stop_on_fault=stop_on_fault)
        start = time.monotonic()
        svc.start()

        def delayed(delay, fn):
            time.sleep(delay)
            fn()

        threads = [
            threading.Thread(target=delayed, args=(exit_delay, lambda: launcher.exit(code))),
            threading.Thread(target=delayed, args=(stop_delay, svc.stop)),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(5)
        settle(svc, launcher)

        assert len(faults) <= 1
        if svc.failure is not None:
            assert svc.failure.code in (code, TIMEOUT_CODE)
        assert svc.is_terminated() is True
        assert launcher.stop_calls <= 1
        assert time.monotonic() - start < 2
