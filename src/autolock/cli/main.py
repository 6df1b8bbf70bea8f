"""Command-line entry point for running programs under an action lock."""

from __future__ import annotations

import argparse
import json
import logging
import subprocess
import sys
from collections.abc import Sequence

from autolock.core.config import LockConfig, LogConfig
from autolock.core.constants import (
    EXIT_CONFIG_ERROR,
    EXIT_FAILURE,
    EXIT_LOCKED,
    EXIT_OK,
    VALID_LOG_LEVELS,
)
from autolock.core.exceptions import AlreadyLockedError, ConfigurationError
from autolock.core.locks.manager import list_locks, lock_dir_for, remove_stale_lock
from autolock.core.logging import setup_logging
from autolock.core.version import __version__
from autolock.interceptor import ActionInterceptor

EXIT_COMMAND_NOT_FOUND = 127

logger = logging.getLogger(__name__)


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--runtime-dir",
        metavar="DIR",
        help="Directory whose lock/ subdirectory holds lock files (env: AUTOLOCK_RUNTIME_DIR)",
    )
    parser.add_argument(
        "--env-file",
        metavar="PATH",
        help="Read AUTOLOCK_* settings from this .env file instead of searching for one",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=VALID_LOG_LEVELS,
        help="Logging level (env: LOG_LEVEL, default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default="text",
        help="Log output format (default: text)",
    )
    parser.add_argument("--log-file", metavar="PATH", help="Also write logs to this rotating file")


def parse_arguments(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments"""
    parser = argparse.ArgumentParser(
        prog="autolock",
        description="Run command-line actions under a per-action advisory lock",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run a cron job; exits 75 if the previous run is still going
  autolock run billing nightly -- /usr/local/bin/billing --nightly

  # Wait for the lock instead of giving up
  autolock run --mode exclusive billing nightly -- ./billing.sh

  # Show who holds which lock
  autolock status --runtime-dir /var/run/myapp

  # Remove lock files left behind by crashed runs
  autolock clean --runtime-dir /var/run/myapp
""",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="subcommand", required=True)

    run_parser = subparsers.add_parser("run", help="Run a program as a guarded action")
    _add_common_options(run_parser)
    run_parser.add_argument(
        "--mode",
        help="Lock mode: number or flags such as 'exclusive|nonblocking' (env: AUTOLOCK_MODE)",
    )
    run_parser.add_argument(
        "--include",
        action="append",
        metavar="ACTIONS",
        help="Comma separated actions that are always locked (repeatable)",
    )
    run_parser.add_argument(
        "--exclude",
        action="append",
        metavar="ACTIONS",
        help="Comma separated actions that are not locked unless included (repeatable)",
    )
    run_parser.add_argument("command", help="Command name (first part of the lock file name)")
    run_parser.add_argument("action", help="Action name (second part of the lock file name)")
    run_parser.add_argument("program", nargs=argparse.REMAINDER, help="Program and arguments, after '--'")

    status_parser = subparsers.add_parser("status", help="List lock files and their holders")
    _add_common_options(status_parser)
    status_parser.add_argument("--json", action="store_true", help="Print JSON instead of a table")

    clean_parser = subparsers.add_parser("clean", help="Delete lock files no process holds")
    _add_common_options(clean_parser)

    args = parser.parse_args(argv)
    if args.subcommand == "run":
        if args.program and args.program[0] == "--":
            args.program = args.program[1:]
        if not args.program:
            parser.error("run: a program to execute is required after '--'")
    return args


def _load_config(args: argparse.Namespace) -> LockConfig:
    base = LockConfig.from_env(dotenv_path=args.env_file) if args.env_file else LockConfig.from_env()
    return LockConfig.from_args(args, base=base)


def run_command(args: argparse.Namespace, config: LockConfig) -> int:
    interceptor = ActionInterceptor(args.command, config=config)
    try:
        outcome = interceptor.run(args.action, subprocess.call, args.program)
    except OSError as e:
        logger.error("Cannot execute %s: %s", args.program[0], e)
        return EXIT_COMMAND_NOT_FOUND

    if not outcome.executed:
        if isinstance(outcome.rejection, AlreadyLockedError):
            return EXIT_LOCKED
        return EXIT_FAILURE
    returncode = outcome.result
    # Killed by a signal: report it the way shells do
    return returncode if returncode >= 0 else 128 - returncode


def status_command(args: argparse.Namespace, config: LockConfig) -> int:
    statuses = list_locks(config.runtime_dir)
    if args.json:
        print(json.dumps([status.to_dict() for status in statuses], indent=2))
        return EXIT_OK

    if not statuses:
        print(f"No lock files in {lock_dir_for(config.runtime_dir)}")
        return EXIT_OK

    print(f"{'LOCK':<40} {'PID':>8} {'RUNNING':>8} {'HELD':>6}")
    for status in statuses:
        pid = str(status.holder_pid) if status.holder_pid is not None else "-"
        print(
            f"{status.lock_path.name:<40} {pid:>8} "
            f"{'yes' if status.pid_running else 'no':>8} {'yes' if status.held else 'no':>6}"
        )
    return EXIT_OK


def clean_command(args: argparse.Namespace, config: LockConfig) -> int:
    removed = 0
    for status in list_locks(config.runtime_dir):
        if status.held:
            continue
        if remove_stale_lock(status.lock_path):
            print(f"Removed {status.lock_path}")
            removed += 1
    print(f"{removed} stale lock file(s) removed")
    return EXIT_OK


_COMMANDS = {
    "run": run_command,
    "status": status_command,
    "clean": clean_command,
}


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_arguments(argv)
    setup_logging(LogConfig.from_args(args))

    try:
        config = _load_config(args)
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        return EXIT_CONFIG_ERROR

    return _COMMANDS[args.subcommand](args, config)


if __name__ == "__main__":
    sys.exit(main())
