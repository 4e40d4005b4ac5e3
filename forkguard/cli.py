"""
Command line entry point.

Usage:
    forkguard run -- python -m http.server
    forkguard run --timeout-ms 5000 --timeout-code 124 -e MODE=ci -- make test
    forkguard run -c etc/build.yaml
    forkguard --version
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import time as fgtime
from .config import SupervisorConfig, build_service
from .exceptions import ConfigError, ForkguardError, ServiceStateError
from .log import LogConfig, LogError, LoggerFactory
from .process import ForkedProcessService
from .version import version_string

# Exit codes for failures that happen before the process runs
EXIT_USAGE = 2
EXIT_NOT_EXECUTABLE = 126
EXIT_NOT_FOUND = 127
EXIT_INTERRUPTED = 130

# How long to wait for the final output when printing a failed run
FINAL_OUTPUT_WAIT_MS = 1000


def _parse_env(values: Sequence[str]) -> dict[str, str]:
    env: dict[str, str] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise ConfigError("Environment entries must be KEY=VALUE", entry=item)
        env[key] = value
    return env


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="forkguard",
        description="Run a process under supervision with an optional timeout",
    )
    parser.add_argument("--version", action="version", version=version_string())
    sub = parser.add_subparsers(dest="cmd", required=True)

    run = sub.add_parser("run", help="run one supervised process")
    run.add_argument("-c", "--config", help="YAML configuration file")
    run.add_argument("--name", help="service name")
    run.add_argument("--timeout-ms", type=int, help="execution timeout, -1 for none")
    run.add_argument("--timeout-code", type=int, help="exit code reported on timeout")
    run.add_argument(
        "-e",
        "--env",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="environment variable for the process (repeatable)",
    )
    run.add_argument("--recent-lines", type=int, help="recent output lines to keep")
    run.add_argument("--log-level", help="log level (trace, debug, info, ...)")
    run.add_argument("--no-color", action="store_true", help="disable colored logs")
    run.add_argument("command", nargs=argparse.REMAINDER, help="command to run")
    return parser


def _load_config(args: argparse.Namespace) -> SupervisorConfig:
    config = (
        SupervisorConfig.from_yaml(args.config) if args.config else SupervisorConfig.from_dict({})
    )
    config = config.with_overrides(
        name=args.name,
        timeout_ms=args.timeout_ms,
        timeout_code=args.timeout_code,
        recent_lines=args.recent_lines,
    )

    command = list(args.command)
    if command and command[0] == "--":
        command = command[1:]
    if command:
        config.command = command
    config.env = {**config.env, **_parse_env(args.env)}

    if args.log_level or args.no_color:
        try:
            config.logging = LogConfig.from_params(
                args.log_level or config.logging.level,
                location=config.logging.location,
                micros=config.logging.micros,
                colors=config.logging.colors and not args.no_color,
            )
        except LogError as e:
            raise ConfigError("Invalid log level", level=args.log_level) from e

    config.validate()
    return config


def _start_error_code(exc: BaseException) -> int:
    cause = exc.__cause__ or exc
    if isinstance(cause, FileNotFoundError):
        return EXIT_NOT_FOUND
    if isinstance(cause, PermissionError):
        return EXIT_NOT_EXECUTABLE
    return 1


def _print_summary(console: Console, service: ForkedProcessService, start_t: float) -> None:
    table = Table(title=f"forkguard: {service.name}", show_header=False)
    table.add_column("key", style="bold blue")
    table.add_column("value")

    outcome = service.outcome
    table.add_row("outcome", outcome.value if outcome else service.process_state.value)
    exit_code = service.get_exit_code()
    table.add_row("exit code", "-" if exit_code is None else str(exit_code))
    table.add_row("exit code (corrected)", str(service.get_exit_code_sign_corrected()))
    table.add_row("duration", fgtime.since_str(start_t))

    failure = service.failure
    if failure is not None:
        table.add_row("failure", f"[red bold]{failure.message}[/red bold]")
    console.print(table)

    if failure is not None:
        lines = service.get_recent_output(final_output=True, duration_ms=FINAL_OUTPUT_WAIT_MS)
        if lines:
            console.print(Panel("\n".join(lines), title="recent output", style="dim"))


def _run(args: argparse.Namespace, console: Console) -> int:
    config = _load_config(args)
    root = LoggerFactory.create_root(config.logging)
    lg = LoggerFactory.derive(root, config.name)
    service = build_service(config, lg)

    start_t = fgtime.start()
    try:
        service.start()
        while not service.wait_for_service_to_stop(0.5):
            pass
    except KeyboardInterrupt:
        lg.info("interrupted, stopping")
        service.stop()
        _print_summary(console, service, start_t)
        return EXIT_INTERRUPTED
    except ServiceStateError as e:
        console.print(f"[red bold]failed to start:[/red bold] {e}")
        return _start_error_code(e)

    _print_summary(console, service, start_t)
    failure = service.failure
    return failure.code if failure is not None else 0


def main(argv: Sequence[str] | None = None, console: Console | None = None) -> int:
    """Main entry point for the forkguard CLI."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    console = console or Console()

    try:
        if args.cmd == "run":
            return _run(args, console)
    except ConfigError as e:
        console.print(f"[red bold]configuration error:[/red bold] {e}")
        return EXIT_USAGE
    except ForkguardError as e:
        console.print(f"[red bold]error:[/red bold] {e}")
        return 1

    parser.print_help(sys.stderr)
    return EXIT_USAGE


if __name__ == "__main__":
    sys.exit(main())
