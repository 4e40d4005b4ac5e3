"""
Tests for the subprocess launcher.

Tests key features including:
- Lifecycle notifications and exit codes
- Environment injection and working directory
- Output capture, logging and the recent line limit
- Termination with SIGTERM and escalation to SIGKILL
"""

import sys
import threading

import pytest

from forkguard.exceptions import ServiceStateError
from forkguard.process import LongLivedProcess, sign_correct

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")


def py(code: str) -> list[str]:
    return [sys.executable, "-c", code]


class RecordingListener:
    """Collects launcher notifications."""

    def __init__(self):
        self.events = []
        self.exited = threading.Event()

    def on_process_started(self, process):
        self.events.append(("started",))

    def on_process_exited(self, process, uncorrected, code):
        self.events.append(("exited", uncorrected, code))
        self.exited.set()


def launch(lg, command, listener=None, **kwargs):
    proc = LongLivedProcess("test", lg, command, **kwargs)
    listener = listener or RecordingListener()
    proc.set_lifecycle_listener(listener)
    return proc, listener


# =============================================================================
# Test sign correction
# =============================================================================


@pytest.mark.unit
class TestSignCorrect:
    """Test exit code sign correction."""

    @pytest.mark.parametrize(
        "raw,expected",
        [(0, 0), (1, 1), (255, 255), (-9, 137), (-15, 143), (-1, 129)],
    )
    def test_sign_correct(self, raw, expected):
        """Negative codes map to 128 + signal."""
        assert sign_correct(raw) == expected


# =============================================================================
# Test construction and setup
# =============================================================================


@pytest.mark.unit
class TestLongLivedProcessSetup:
    """Test setup without spawning."""

    def test_empty_command(self, lg):
        """A launcher needs a command."""
        with pytest.raises(ValueError):
            LongLivedProcess("test", lg, [])

    def test_initial_state(self, lg):
        """Nothing is known before start()."""
        proc = LongLivedProcess("test", lg, ["true"])

        assert proc.name == "test"
        assert proc.command == ["true"]
        assert proc.pid is None
        assert proc.is_running() is False
        assert proc.get_exit_code() is None
        assert proc.get_exit_code_sign_corrected() is None
        assert proc.get_recent_output() == []

    def test_put_env_accumulates(self, lg):
        """Injected variables are merged."""
        proc = LongLivedProcess("test", lg, ["true"])
        proc.put_env({"A": "1"})
        proc.put_env({"B": "2"})

        assert proc.env == {"A": "1", "B": "2"}

    def test_reader_without_process(self, lg):
        """The reader loop does nothing when no process was spawned."""
        proc, listener = launch(lg, ["true"])

        proc._run()

        assert listener.events == []
        assert proc.get_exit_code() is None

    def test_stop_before_start(self, lg):
        """Stopping a launcher that never started is a no-op."""
        proc = LongLivedProcess("test", lg, ["true"])
        proc.stop()
        assert proc.is_running() is False


# =============================================================================
# Test running processes
# =============================================================================


@pytest.mark.integration
class TestLongLivedProcessRun:
    """Test with real child processes."""

    def test_exit_code_and_notifications(self, lg):
        """Started precedes exited, which carries both codes."""
        proc, listener = launch(lg, py("import sys; sys.exit(3)"))

        proc.start()
        assert listener.exited.wait(10)

        assert listener.events == [("started",), ("exited", 3, 3)]
        assert proc.get_exit_code() == 3
        assert proc.get_exit_code_sign_corrected() == 3
        assert proc.is_running() is False
        assert proc.pid is not None

    def test_start_twice(self, lg):
        """A launcher runs its process once."""
        proc, listener = launch(lg, py("pass"))
        proc.start()
        try:
            with pytest.raises(ServiceStateError):
                proc.start()
        finally:
            assert listener.exited.wait(10)

    def test_missing_executable(self, lg):
        """Spawn errors propagate from start()."""
        proc, listener = launch(lg, ["/nonexistent/forkguard-test-binary"])

        with pytest.raises(FileNotFoundError):
            proc.start()
        assert listener.events == []

    def test_env_injected(self, lg):
        """Injected variables reach the child."""
        proc, listener = launch(lg, py("import os; print(os.environ['FG_TEST_VAR'])"))
        proc.put_env({"FG_TEST_VAR": "injected"})

        proc.start()
        assert listener.exited.wait(10)
        assert proc.get_recent_output() == ["injected"]

    def test_cwd(self, lg, temp_dir):
        """The child runs in the requested directory."""
        proc, listener = launch(lg, py("import os; print(os.getcwd())"), cwd=temp_dir)

        proc.start()
        assert listener.exited.wait(10)
        assert proc.get_recent_output()[0].endswith(temp_dir.name)

    def test_output_logged(self, lg, log_stream):
        """Output lines go to the output logger."""
        proc, listener = launch(lg, py("print('mark' + 'er-one')"))

        proc.start()
        assert listener.exited.wait(10)
        assert "marker-one" in log_stream.getvalue()

    def test_output_logging_disabled(self, lg, log_stream):
        """With no output logger, lines are only buffered."""
        proc, listener = launch(lg, py("print('mark' + 'er-two')"))
        proc.set_output_log(None)

        proc.start()
        assert listener.exited.wait(10)
        assert "marker-two" not in log_stream.getvalue()
        assert proc.get_recent_output() == ["marker-two"]

    def test_stderr_merged(self, lg):
        """stderr is captured along with stdout."""
        proc, listener = launch(lg, py("import sys; sys.stderr.write('oops\\n')"))

        proc.start()
        assert listener.exited.wait(10)
        assert proc.get_recent_output() == ["oops"]

    def test_recent_line_limit(self, lg):
        """Only the most recent lines are retained."""
        proc, listener = launch(lg, py("for i in range(10): print(i)"))
        proc.set_recent_line_limit(3)
        proc.set_output_log(None)

        proc.start()
        assert listener.exited.wait(10)
        assert proc.get_recent_output() == ["7", "8", "9"]

    def test_final_output_wait(self, lg):
        """Waiting for final output returns everything once drained."""
        proc, listener = launch(
            lg, py("import time; print('a', flush=True); time.sleep(0.2); print('b')")
        )
        proc.start()

        assert proc.get_recent_output(final_output=True, duration_ms=10_000) == ["a", "b"]

    def test_listener_error_contained(self, lg, log_stream):
        """A failing listener does not break output handling."""

        class Failing(RecordingListener):
            def on_process_started(self, process):
                raise RuntimeError("listener broke")

        proc, listener = launch(lg, py("pass"), listener=Failing())
        proc.start()

        assert listener.exited.wait(10)
        assert "process start callback failed" in log_stream.getvalue()


# =============================================================================
# Test termination
# =============================================================================


@pytest.mark.integration
@posix_only
class TestLongLivedProcessStop:
    """Test stopping running processes."""

    def test_stop_terminates(self, lg):
        """SIGTERM ends a sleeping process; the code is sign-corrected."""
        proc, listener = launch(lg, py("import time; time.sleep(30)"))
        proc.start()
        assert proc.is_running() is True

        proc.stop()
        assert listener.exited.wait(10)

        assert proc.get_exit_code() == -15
        assert proc.get_exit_code_sign_corrected() == 143
        assert listener.events[-1] == ("exited", -15, 143)
        assert proc.is_running() is False

    @pytest.mark.slow
    def test_stop_escalates_to_kill(self, lg):
        """A process ignoring SIGTERM is killed after the grace period."""
        code = (
            "import signal, time\n"
            "signal.signal(signal.SIGTERM, signal.SIG_IGN)\n"
            "print('ready', flush=True)\n"
            "time.sleep(30)\n"
        )
        proc, listener = launch(lg, py(code), stop_grace=0.2)
        proc.start()
        assert proc.get_recent_output(duration_ms=10_000) == ["ready"]

        proc.stop()
        assert listener.exited.wait(10)

        assert proc.get_exit_code() == -9
        assert proc.get_exit_code_sign_corrected() == 137

    def test_stop_after_exit_is_noop(self, lg):
        """Stopping a finished process does nothing."""
        proc, listener = launch(lg, py("pass"))
        proc.start()
        assert listener.exited.wait(10)

        proc.stop()
        assert proc.get_exit_code() == 0
