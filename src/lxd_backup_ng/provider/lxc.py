# pyright: standard

"""lxd-backup-ng: lxd_backup_ng/provider/lxc.py
Snapshot containers through the LXD command line client.
"""

import json
import logging

from lxd_backup_ng import __util__

from .common import ContainerInfo, SnapshotProvider

logger = logging.getLogger(__name__)


class LxcProvider(SnapshotProvider):
    """Create and delete LXD snapshots with ``lxc``."""

    def _build_list_command(self):
        return [self.config["command"], "list", "--format", "json"]

    def _parse_containers(self, output) -> list[ContainerInfo]:
        try:
            entries = json.loads(output or "[]")
        except ValueError as e:
            raise __util__.ProviderError(f"Unreadable container list: {e}") from e
        if not isinstance(entries, list):
            raise __util__.ProviderError("Unexpected container list format")

        containers = []
        for entry in entries:
            name = entry.get("name") if isinstance(entry, dict) else None
            if not name:
                logger.warning("Skipping container entry without a name: %r", entry)
                continue
            # Virtual machine datasets live outside <pool>/containers/.
            instance_type = entry.get("type", "container")
            if instance_type != "container":
                logger.debug("Skipping %s instance %s", instance_type, name)
                continue
            containers.append(ContainerInfo(name=name, status=entry.get("status", "")))
        return containers

    def _build_snapshot_command(self, container_name, snapshot_name):
        return [self.config["command"], "snapshot", container_name, snapshot_name]

    def _build_delete_command(self, key):
        return [self.config["command"], "delete", key]
