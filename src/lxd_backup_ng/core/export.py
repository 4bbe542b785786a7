"""Snapshot export through ``zfs send``.

The export process writes the raw snapshot stream to stdout, which is pumped
into a writer in fixed size chunks. Stderr is collected in memory by a
helper thread so a chatty process cannot block on a full pipe.
"""

import io
import logging
import os
import shlex
import subprocess
import threading
from typing import Optional

from .. import __util__
from .identity import SnapshotDescriptor

logger = logging.getLogger(__name__)

DEFAULT_EXPORT_COMMAND = "/sbin/zfs"
CHUNK_SIZE = 256 * 1024


class SnapshotExporter:
    """Run the export command for snapshots of one storage pool.

    Args:
        zpool: Storage pool holding the container datasets
        command: Path of the ``zfs`` binary
        env: Environment for the process, the current one when None
    """

    def __init__(
        self,
        zpool: str,
        command: str = DEFAULT_EXPORT_COMMAND,
        env: Optional[dict] = None,
    ) -> None:
        self.zpool = zpool.rstrip("/")
        self.command = command
        self.env = env

    def dataset_path(self, descriptor: SnapshotDescriptor) -> str:
        return (
            f"{self.zpool}/containers/{descriptor.container_name}"
            f"@snapshot-{descriptor.snapshot_name}"
        )

    def build_command(self, descriptor: SnapshotDescriptor) -> list[str]:
        return [self.command, "send", self.dataset_path(descriptor)]

    def export(self, descriptor: SnapshotDescriptor, writer) -> int:
        """Stream the snapshot into ``writer``; return the number of bytes read.

        Raises:
            ExportError: The process did not start, exited non-zero, or its
                output could not be written.
        """
        cmd = self.build_command(descriptor)
        cmd_text = shlex.join(cmd)
        env = self.env if self.env is not None else os.environ.copy()
        try:
            process = __util__.exec_subprocess(
                cmd,
                method="Popen",
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=env,
            )
        except OSError as e:
            raise __util__.ExportError(f"Cannot run `{cmd_text}`: {e}") from e

        stderr = io.BytesIO()
        drain = threading.Thread(
            target=_drain,
            args=(process.stderr, stderr),
            name=f"stderr-{descriptor.container_name}",
            daemon=True,
        )
        drain.start()

        total = 0
        write_error = None
        try:
            while True:
                chunk = process.stdout.read(CHUNK_SIZE)
                if not chunk:
                    break
                writer.write(chunk)
                total += len(chunk)
        except Exception as e:
            write_error = e
            process.kill()
        finally:
            process.stdout.close()
            returncode = process.wait()
            drain.join()

        message = stderr.getvalue().decode("utf-8", errors="replace").strip()
        if write_error is not None:
            raise __util__.ExportError(
                f"Error while streaming `{cmd_text}`: {write_error}",
                returncode=returncode,
                stderr=message,
            ) from write_error
        if returncode != 0:
            raise __util__.ExportError(
                f"`{cmd_text}` exited with code {returncode}",
                returncode=returncode,
                stderr=message,
            )
        logger.debug("`%s` produced %d bytes", cmd_text, total)
        return total


def _drain(pipe, buffer) -> None:
    try:
        for chunk in iter(lambda: pipe.read(CHUNK_SIZE), b""):
            buffer.write(chunk)
    finally:
        pipe.close()
