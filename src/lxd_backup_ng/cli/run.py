"""Run command: Back up every container once."""

import argparse
import dataclasses
import logging
import signal
import time

from .. import __util__, provider, storage
from ..__logger__ import create_logger
from ..config import Config, ConfigError, validate_config
from ..core import BackupPipeline, RunIdentity, SnapshotExporter
from .common import get_log_level, load_optional_config, setup_logging

logger = logging.getLogger(__name__)

USAGE = "Both zpool and bucket arguments must be specified"


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Return a copy of ``config`` with command line values applied."""
    global_config = dataclasses.replace(config.global_config)
    storage_config = dataclasses.replace(config.storage)

    if getattr(args, "zpool", None):
        global_config.zpool = args.zpool
    if getattr(args, "bucket", None):
        storage_config.bucket = args.bucket
    if getattr(args, "backend", None):
        storage_config.backend = args.backend
    if getattr(args, "parallel_snapshots", None) is not None:
        global_config.parallel_snapshots = args.parallel_snapshots
    if getattr(args, "parallel_transfers", None) is not None:
        global_config.parallel_transfers = args.parallel_transfers

    return Config(global_config=global_config, storage=storage_config)


def execute_run(args: argparse.Namespace) -> int:
    """Execute the run command.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code (0 when every container was backed up and reclaimed)
    """
    try:
        config, _ = load_optional_config(args)
    except ConfigError as e:
        create_logger(level=get_log_level(args))
        logger.error("Configuration error: %s", e)
        return 1

    config = apply_overrides(config, args)

    # Validate
    if not config.is_complete():
        print(USAGE)
        return 1
    global_config = config.global_config
    if global_config.parallel_snapshots < 1 or global_config.parallel_transfers < 1:
        print("Parallelism settings must be at least 1")
        return 1

    setup_logging(args, config)
    for warning in validate_config(config):
        logger.warning("Config: %s", warning)

    identity = RunIdentity.create(
        timestamp_format=config.global_config.timestamp_format,
        prefix=config.global_config.snapshot_prefix,
    )
    exporter = SnapshotExporter(
        config.global_config.zpool, command=config.global_config.zfs_command
    )

    try:
        snapshot_provider = provider.choose_provider(config.global_config.lxc_command)

        if getattr(args, "dry_run", False):
            return _dry_run(config, snapshot_provider, identity, exporter)

        store = storage.choose_store(
            config.storage.backend,
            config.storage.bucket,
            config.storage.backend_options(),
        )
        pipeline = BackupPipeline(
            snapshot_provider,
            store,
            exporter,
            identity,
            parallel_snapshots=config.global_config.parallel_snapshots,
            parallel_transfers=config.global_config.parallel_transfers,
        )
    except __util__.AbortError as e:
        logger.error("Aborting: %s", e)
        return 1

    logger.info(__util__.log_heading(f"Started at {time.ctime()}"))
    logger.info(
        "Pool: %s, bucket: %s (%s), parallel snapshots: %d, parallel transfers: %d",
        config.global_config.zpool,
        config.storage.bucket,
        config.storage.backend,
        config.global_config.parallel_snapshots,
        config.global_config.parallel_transfers,
    )

    previous = signal.signal(signal.SIGTERM, lambda signum, frame: pipeline.cancel())
    try:
        report = pipeline.run()
    except __util__.AbortError as e:
        logger.error("Aborting: %s", e)
        return 1
    finally:
        signal.signal(signal.SIGTERM, previous)

    return 1 if report.failures else 0


def _dry_run(config: Config, snapshot_provider, identity, exporter) -> int:
    """Show what would be done without making changes."""
    try:
        containers = snapshot_provider.list_containers()
    except __util__.ProviderError as e:
        logger.error("Error while listing containers: %s", e)
        return 1

    print("Dry run mode - showing what would be done:")
    print("")
    print(f"Snapshot name: {identity.snapshot_name}")
    print(f"Storage: {config.storage.backend} {config.storage.bucket}")
    print("")

    if not containers:
        print("No containers found")
        return 0

    for container in containers:
        descriptor = identity.describe(container.name)
        status = f" ({container.status})" if container.status else ""
        print(f"Container: {container.name}{status}")
        print(f"  Export: {' '.join(exporter.build_command(descriptor))}")
        print(f"  Object: {descriptor.object_key}")
        print("")

    return 0
