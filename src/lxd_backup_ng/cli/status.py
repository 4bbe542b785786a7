"""Status command: Show transaction statistics."""

import argparse
import logging

from ..__logger__ import create_logger
from ..config import ConfigError
from ..transaction import get_transaction_stats, read_transaction_log
from .common import get_log_level, load_optional_config

logger = logging.getLogger(__name__)

ACTION_GROUPS = ("snapshots", "transfers", "deletes")


def execute_status(args: argparse.Namespace) -> int:
    """Execute the status command.

    Shows per action counts and the most recent records of the
    transaction log.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code
    """
    log_level = get_log_level(args)
    create_logger(level=log_level)

    try:
        config, _ = load_optional_config(args)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return 1

    log_path = getattr(args, "log", None) or config.global_config.transaction_log
    if not log_path:
        print("No transaction log configured.")
        print("Set 'transaction_log' in the [global] section or pass --log FILE.")
        return 1

    stats = get_transaction_stats(log_path)
    records = read_transaction_log(log_path, limit=getattr(args, "limit", 10))

    print("lxd-backup-ng Status")
    print("=" * 60)
    print(f"Transaction log: {log_path}")
    print(f"Last run: {stats['last_run'] or 'never'}")
    print("")

    for group in ACTION_GROUPS:
        counts = stats[group]
        print(f"  {group}: {counts['completed']} completed, {counts['failed']} failed")
    print(f"  uploaded: {stats['total_bytes_transferred']} bytes")
    print("")

    if records:
        print("Recent records:")
        for record in records:
            line = (
                f"  {record.get('timestamp', '?')} {record.get('action', '?')} "
                f"{record.get('status', '?')}"
            )
            target = record.get("object_key") or record.get("container")
            if target:
                line += f" {target}"
            if record.get("error"):
                line += f" ({record['error']})"
            print(line)
        print("")

    failed = sum(stats[group]["failed"] for group in ACTION_GROUPS)
    print("=" * 60)
    if failed == 0:
        print("Overall: No failures recorded")
        return 0
    print(f"Overall: {failed} failed action(s) recorded")
    return 1
