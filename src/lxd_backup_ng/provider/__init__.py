# pyright: standard

"""lxd-backup-ng: lxd_backup_ng/provider/__init__.py."""

import logging
import shutil

from .. import __util__
from .common import ContainerInfo, Operation, SnapshotProvider
from .lxc import LxcProvider

logger = logging.getLogger(__name__)

__all__ = [
    "ContainerInfo",
    "LxcProvider",
    "Operation",
    "SnapshotProvider",
    "choose_provider",
]


def choose_provider(command="lxc", env=None) -> SnapshotProvider:
    """
    Build the snapshot provider for the given client command.

    Args:
        command (str): Name or path of the ``lxc`` client.
        env (dict): Environment for provider commands, inherited when None.

    Returns:
        SnapshotProvider: A ready to use provider.

    Raises:
        AbortError: If the client command cannot be found.
    """
    if shutil.which(command) is None:
        logger.error("Snapshot client %r not found", command)
        raise __util__.AbortError(f"Snapshot client not found: {command}")
    provider = LxcProvider(config={"command": command, "env": env})
    logger.debug("Provider created: %r", provider)
    return provider
