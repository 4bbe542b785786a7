"""CLI dispatcher with flag-only mode detection.

This module handles routing between the subcommand-based CLI and the
legacy flag-only invocation, kept for existing cron jobs:
    lxd-backup-ng -zpool lxd -bucket my-backups
"""

import argparse
import sys
from typing import Callable

from ..storage import BACKENDS
from .common import add_verbosity_args, create_global_parser

# Known subcommands
SUBCOMMANDS = frozenset({"run", "status", "config"})

# Flags that start a flag-only invocation
RUN_FLAGS = frozenset({"-zpool", "--zpool", "-bucket", "--bucket"})


def is_flag_mode(argv: list[str]) -> bool:
    """Detect if arguments are a flag-only ``run`` invocation.

    Args:
        argv: Command line arguments (without program name)

    Returns:
        True if the arguments should be handled by the run command
    """
    if not argv or argv[0] in SUBCOMMANDS:
        return False

    for arg in argv:
        if arg in SUBCOMMANDS:
            return False
        if arg.split("=", 1)[0] in RUN_FLAGS:
            return True

    return False


def add_run_args(parser: argparse.ArgumentParser) -> None:
    """Add the arguments of the run command."""
    parser.add_argument(
        "-zpool",
        "--zpool",
        metavar="POOL",
        help="The zpool that is being used to store LXD snapshots",
    )
    parser.add_argument(
        "-bucket",
        "--bucket",
        metavar="BUCKET",
        help="The storage bucket to send the snapshots to",
    )
    parser.add_argument(
        "--backend",
        choices=BACKENDS,
        help="Object storage backend (overrides config)",
    )
    parser.add_argument(
        "--parallel-snapshots",
        type=int,
        metavar="N",
        help="Max concurrent snapshot tasks (overrides config)",
    )
    parser.add_argument(
        "--parallel-transfers",
        type=int,
        metavar="N",
        help="Max concurrent transfer tasks (overrides config)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be done without making changes",
    )


def create_subcommand_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="lxd-backup-ng",
        description="Snapshot LXD containers and stream them to object storage",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    add_verbosity_args(parser)

    parser.add_argument(
        "-V",
        "--version",
        action="store_true",
        help="Show version and exit",
    )

    parser.add_argument(
        "-c",
        "--config",
        metavar="FILE",
        help="Path to configuration file",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="Available commands (use 'command --help' for details)",
    )
    parent = create_global_parser()

    # run command
    run_parser = subparsers.add_parser(
        "run",
        parents=[parent],
        help="Back up every container once",
        description="Snapshot all containers, upload the snapshots and delete them locally",
    )
    add_run_args(run_parser)

    # status command
    status_parser = subparsers.add_parser(
        "status",
        parents=[parent],
        help="Show transaction statistics",
        description="Summarize the transaction log and list recent records",
    )
    status_parser.add_argument(
        "-n",
        "--limit",
        type=int,
        default=10,
        metavar="N",
        help="Number of records to show (default: 10)",
    )
    status_parser.add_argument(
        "--log",
        metavar="FILE",
        help="Transaction log to read (overrides config)",
    )

    # config command with subcommands
    config_parser = subparsers.add_parser(
        "config",
        parents=[parent],
        help="Configuration management",
        description="Validate or initialize configuration",
    )
    config_subs = config_parser.add_subparsers(dest="config_action")

    config_subs.add_parser(
        "validate",
        help="Validate configuration file",
    )

    init_parser = config_subs.add_parser(
        "init",
        help="Generate example configuration",
    )
    init_parser.add_argument(
        "-o",
        "--output",
        metavar="FILE",
        help="Output file (default: stdout)",
    )

    return parser


def run_subcommand(args: argparse.Namespace) -> int:
    """Run the specified subcommand.

    Args:
        args: Parsed arguments

    Returns:
        Exit code
    """
    from .. import __version__

    if args.version:
        print(f"lxd-backup-ng {__version__}")
        return 0

    if not args.command:
        print("No command specified. Use --help for usage information.")
        return 1

    # Route to appropriate command handler
    handlers: dict[str, Callable] = {
        "run": cmd_run,
        "status": cmd_status,
        "config": cmd_config,
    }

    handler = handlers.get(args.command)
    if handler:
        return handler(args)
    else:
        print(f"Unknown command: {args.command}")
        return 1


def cmd_run(args: argparse.Namespace) -> int:
    """Execute run command."""
    from .run import execute_run

    return execute_run(args)


def cmd_status(args: argparse.Namespace) -> int:
    """Execute status command."""
    from .status import execute_status

    return execute_status(args)


def cmd_config(args: argparse.Namespace) -> int:
    """Execute config command."""
    from .config_cmd import execute_config

    return execute_config(args)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for lxd-backup-ng CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    if argv is None:
        argv = sys.argv[1:]

    # Flag-only invocation is the run command
    if is_flag_mode(argv):
        argv = ["run", *argv]

    parser = create_subcommand_parser()
    args = parser.parse_args(argv)

    return run_subcommand(args)
