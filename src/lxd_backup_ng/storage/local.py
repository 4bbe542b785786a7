# pyright: standard

"""lxd-backup-ng: lxd_backup_ng/storage/local.py
Object store kept in a local directory tree.
"""

import logging
import os
import uuid
from pathlib import Path

from lxd_backup_ng import __util__

from .common import ObjectStore, WriteSink

logger = logging.getLogger(__name__)


class LocalWriteSink(WriteSink):
    """Write to a partial file and rename it into place on commit."""

    def __init__(self, key, path: Path) -> None:
        super().__init__(key)
        self.path = path
        self.partial_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.partial")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self.partial_path, "xb")
        except OSError as e:
            raise __util__.StorageError(f"Cannot open {self.partial_path}: {e}") from e

    def _write(self, data) -> None:
        try:
            self._file.write(data)
        except OSError as e:
            raise __util__.StorageError(f"Cannot write {self.partial_path}: {e}") from e

    def _commit(self) -> None:
        try:
            self._file.flush()
            os.fsync(self._file.fileno())
            self._file.close()
            # link() refuses an existing target, unlike rename().
            os.link(self.partial_path, self.path)
        except FileExistsError as e:
            raise __util__.StorageError(f"Object already exists: {self.key}") from e
        except OSError as e:
            raise __util__.StorageError(f"Cannot commit {self.path}: {e}") from e
        finally:
            self._discard()

    def _abort(self) -> None:
        self._discard()

    def _discard(self) -> None:
        self._file.close()
        self.partial_path.unlink(missing_ok=True)


class LocalObjectStore(ObjectStore):
    """Objects stored as files below the directory named by ``bucket``."""

    def __init__(self, bucket, **kwargs) -> None:
        super().__init__(bucket, **kwargs)
        self.root = Path(bucket).expanduser().resolve()

    def open_write_sink(self, key) -> LocalWriteSink:
        path = (self.root / key).resolve()
        if self.root not in path.parents:
            raise __util__.StorageError(f"Key escapes storage root: {key!r}")
        logger.debug("Opening local sink %s", path)
        return LocalWriteSink(key, path)
