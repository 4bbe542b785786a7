"""Configuration schema definitions using dataclasses.

Defines the structure for TOML configuration with sensible defaults.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class StorageConfig:
    """Object storage configuration.

    Attributes:
        backend: Storage backend, "s3" or "local"
        bucket: Bucket name, or the root directory for the local backend
        region: S3 region (None for the SDK default)
        endpoint_url: Endpoint of an S3 compatible service
        profile: Named credentials profile
        part_size_mb: Multipart upload part size in MiB
    """

    backend: str = "s3"
    bucket: str = ""
    region: Optional[str] = None
    endpoint_url: Optional[str] = None
    profile: Optional[str] = None
    part_size_mb: int = 8

    def backend_options(self) -> dict:
        """Keyword arguments for the selected backend."""
        if self.backend != "s3":
            return {}
        return {
            "region": self.region,
            "endpoint_url": self.endpoint_url,
            "profile": self.profile,
            "part_size": self.part_size_mb * 1024 * 1024,
        }


@dataclass
class GlobalConfig:
    """Global configuration settings.

    Attributes:
        zpool: ZFS pool holding the LXD container datasets
        lxc_command: LXD client used to list, snapshot and delete
        zfs_command: Binary used to export snapshots
        snapshot_prefix: Prefix of every snapshot name
        timestamp_format: Format string for the run timestamp
        parallel_snapshots: Max concurrent snapshot tasks
        parallel_transfers: Max concurrent transfer tasks
        log_file: Path to log file (None for no file logging)
        transaction_log: Path to the JSON-lines transaction log
        quiet: Suppress non-essential output
        verbose: Enable verbose output
    """

    zpool: str = ""
    lxc_command: str = "lxc"
    zfs_command: str = "/sbin/zfs"
    snapshot_prefix: str = "backup-"
    timestamp_format: str = "%Y%m%d-%H%M%S"
    parallel_snapshots: int = 4
    parallel_transfers: int = 2
    log_file: Optional[str] = None
    transaction_log: Optional[str] = None
    quiet: bool = False
    verbose: bool = False


@dataclass
class Config:
    """Root configuration object.

    Attributes:
        global_config: Global settings
        storage: Object storage settings
    """

    global_config: GlobalConfig = field(default_factory=GlobalConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)

    def is_complete(self) -> bool:
        """Whether both the pool and the bucket are known."""
        return bool(self.global_config.zpool and self.storage.bucket)
