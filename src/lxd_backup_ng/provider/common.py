# pyright: standard

"""lxd-backup-ng: lxd_backup_ng/provider/common.py
Common functionality among snapshot providers.
"""

import logging
import subprocess
from dataclasses import dataclass

from lxd_backup_ng import __util__

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContainerInfo:
    """A backup target known to the provider."""

    name: str
    status: str = ""


class Operation:
    """Handle of a submitted provider request.

    The request runs as a child process; waiting for the operation joins it.
    """

    def __init__(self, description, process) -> None:
        self.description = description
        self.process = process

    def __repr__(self) -> str:
        return f"<Operation {self.description}>"


class SnapshotProvider:
    """Generic structure of a snapshot provider driven by a command line client."""

    def __init__(self, config=None, **kwargs) -> None:
        """
        Initialize the provider with a configuration dictionary.

        Args:
            config (dict): Configuration dictionary containing provider settings.
            kwargs: Additional settings overriding ``config``.
        """
        config = config or {}
        self.config = {}
        self.config["command"] = config.get("command", "lxc")
        self.config["env"] = config.get("env")

        for key, value in kwargs.items():
            self.config[key] = value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.config['command']})"

    def list_containers(self) -> list[ContainerInfo]:
        """Return every container the provider knows about."""
        cmd = self._build_list_command()
        try:
            output = self._exec_command(
                cmd, stderr=subprocess.PIPE, text=True
            )
        except subprocess.CalledProcessError as e:
            raise __util__.ProviderError(
                f"Listing containers failed with code {e.returncode}: "
                f"{(e.stderr or '').strip()}"
            ) from e
        except OSError as e:
            raise __util__.ProviderError(f"Cannot run {cmd[0]}: {e}") from e
        containers = self._parse_containers(output)
        logger.debug("Found %d container(s): %s", len(containers), containers)
        return containers

    def create_snapshot(self, container_name, snapshot_name) -> Operation:
        """Submit creation of ``snapshot_name`` for ``container_name``."""
        cmd = self._build_snapshot_command(container_name, snapshot_name)
        return self._submit(f"snapshot {container_name}/{snapshot_name}", cmd)

    def delete_snapshot(self, key) -> Operation:
        """Submit deletion of the snapshot addressed as ``container/snapshot``."""
        if "/" not in key:
            raise __util__.ProviderError(f"Not a snapshot key: {key!r}")
        cmd = self._build_delete_command(key)
        return self._submit(f"delete {key}", cmd)

    def wait_for_success(self, operation: Operation) -> None:
        """Block until ``operation`` resolves; raise ``ProviderError`` on failure."""
        _, stderr = operation.process.communicate()
        returncode = operation.process.returncode
        if returncode != 0:
            message = (stderr or b"").decode("utf-8", errors="replace").strip()
            raise __util__.ProviderError(
                f"{operation.description} failed with code {returncode}: {message}"
            )
        logger.debug("%s finished", operation.description)

    # The following methods must be implemented by providers.

    def _build_list_command(self):
        raise NotImplementedError

    def _parse_containers(self, output) -> list[ContainerInfo]:
        raise NotImplementedError

    def _build_snapshot_command(self, container_name, snapshot_name):
        raise NotImplementedError

    def _build_delete_command(self, key):
        raise NotImplementedError

    def _submit(self, description, cmd) -> Operation:
        try:
            process = self._exec_command(
                cmd,
                method="Popen",
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise __util__.ProviderError(f"Cannot submit {description}: {e}") from e
        logger.debug("Submitted %s (pid %s)", description, process.pid)
        return Operation(description, process)

    def _exec_command(self, cmd, **kwargs):
        if self.config["env"] is not None:
            kwargs.setdefault("env", self.config["env"])
        return __util__.exec_subprocess(cmd, **kwargs)
