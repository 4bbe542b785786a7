"""TOML configuration loading and validation.

Handles config file discovery, parsing, and validation with helpful error messages.
"""

import tomllib
from pathlib import Path
from typing import Any

from ..storage import BACKENDS
from .schema import Config, GlobalConfig, StorageConfig


class ConfigError(Exception):
    """Configuration loading or validation error."""

    pass


# Config file search paths in priority order
CONFIG_PATHS = [
    Path.home() / ".config" / "lxd-backup-ng" / "config.toml",
    Path("/etc/lxd-backup-ng/config.toml"),
]


def find_config_file(explicit_path: str | None = None) -> Path | None:
    """Find configuration file.

    Args:
        explicit_path: Explicitly specified config path (highest priority)

    Returns:
        Path to config file, or None if not found
    """
    if explicit_path:
        path = Path(explicit_path)
        if path.exists():
            return path
        raise ConfigError(f"Config file not found: {explicit_path}")

    for path in CONFIG_PATHS:
        if path.exists():
            return path

    return None


def _positive_int(data: dict[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(f"'{key}' must be a positive integer, got {value!r}")
    return value


def _parse_storage(data: dict[str, Any]) -> StorageConfig:
    """Parse storage configuration from dict."""
    backend = data.get("backend", "s3")
    if backend not in BACKENDS:
        raise ConfigError(
            f"Unknown storage backend '{backend}' (expected one of {', '.join(BACKENDS)})"
        )

    part_size_mb = _positive_int(data, "part_size_mb", 8)
    if part_size_mb < 5:
        raise ConfigError("'part_size_mb' must be at least 5")

    return StorageConfig(
        backend=backend,
        bucket=data.get("bucket", ""),
        region=data.get("region"),
        endpoint_url=data.get("endpoint_url"),
        profile=data.get("profile"),
        part_size_mb=part_size_mb,
    )


def _parse_global(data: dict[str, Any]) -> GlobalConfig:
    """Parse global configuration from dict."""
    return GlobalConfig(
        zpool=data.get("zpool", ""),
        lxc_command=data.get("lxc_command", "lxc"),
        zfs_command=data.get("zfs_command", "/sbin/zfs"),
        snapshot_prefix=data.get("snapshot_prefix", "backup-"),
        timestamp_format=data.get("timestamp_format", "%Y%m%d-%H%M%S"),
        parallel_snapshots=_positive_int(data, "parallel_snapshots", 4),
        parallel_transfers=_positive_int(data, "parallel_transfers", 2),
        log_file=data.get("log_file"),
        transaction_log=data.get("transaction_log"),
        quiet=data.get("quiet", False),
        verbose=data.get("verbose", False),
    )


def validate_config(config: Config) -> list[str]:
    """Validate configuration and return list of warnings."""
    warnings = []
    global_config = config.global_config

    if not global_config.zpool:
        warnings.append("No zpool configured, it must be given with --zpool")

    if not config.storage.bucket:
        warnings.append("No bucket configured, it must be given with --bucket")

    if "/" in global_config.snapshot_prefix:
        warnings.append("Snapshot prefix contains '/', object keys will be nested")

    if "%S" not in global_config.timestamp_format:
        warnings.append(
            "Timestamp format has no seconds field, runs started in the same "
            "minute only differ by their seed"
        )

    if config.storage.backend != "s3" and (
        config.storage.region or config.storage.endpoint_url or config.storage.profile
    ):
        warnings.append(
            f"S3 settings are ignored by the '{config.storage.backend}' backend"
        )

    return warnings


def load_config(path: Path | str) -> tuple[Config, list[str]]:
    """Load and validate configuration from TOML file.

    Args:
        path: Path to configuration file

    Returns:
        Tuple of (Config object, list of warnings)

    Raises:
        ConfigError: If config is invalid or cannot be parsed
    """
    path = Path(path)

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML syntax: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read config file: {e}")

    config = Config(
        global_config=_parse_global(data.get("global", {})),
        storage=_parse_storage(data.get("storage", {})),
    )

    # Validate and collect warnings
    warnings = validate_config(config)

    return config, warnings


def generate_example_config() -> str:
    """Generate example configuration file content."""
    return """# lxd-backup-ng configuration
# See documentation for full options

[global]
zpool = "lxd"
lxc_command = "lxc"
zfs_command = "/sbin/zfs"
snapshot_prefix = "backup-"
timestamp_format = "%Y%m%d-%H%M%S"
# log_file = "/var/log/lxd-backup-ng.log"
# transaction_log = "/var/lib/lxd-backup-ng/transactions.jsonl"

# Parallelism settings
parallel_snapshots = 4
parallel_transfers = 2

[storage]
backend = "s3"          # "s3" or "local"
bucket = "lxd-backups"  # bucket name, or a directory for "local"
# region = "eu-west-1"
# endpoint_url = "https://s3.example.com"
# profile = "backup"
part_size_mb = 8
"""
