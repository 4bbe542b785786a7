# pyright: standard

"""lxd-backup-ng: lxd_backup_ng/storage/common.py
Common functionality among object stores.
"""

import logging

from lxd_backup_ng import __util__

logger = logging.getLogger(__name__)


class WriteSink:
    """Write stream for one remote object.

    Bytes written are not visible as an object until ``close`` succeeds.
    ``abort`` discards everything written so far.
    """

    def __init__(self, key) -> None:
        self.key = key
        self.bytes_written = 0
        self._finished = False

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.key}>"

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        if self._finished:
            raise __util__.StorageError(f"write to finished sink {self.key}")
        self._write(data)
        self.bytes_written += len(data)
        return len(data)

    def close(self) -> None:
        """Commit the object."""
        if self._finished:
            return
        self._finished = True
        self._commit()
        logger.debug("Committed %s (%d bytes)", self.key, self.bytes_written)

    def abort(self) -> None:
        """Discard the object; never raises."""
        if self._finished:
            return
        self._finished = True
        try:
            self._abort()
        except Exception as e:
            logger.warning("Could not discard partial object %s: %s", self.key, e)

    # The following methods must be implemented by sinks.

    def _write(self, data) -> None:
        raise NotImplementedError

    def _commit(self) -> None:
        raise NotImplementedError

    def _abort(self) -> None:
        raise NotImplementedError


class ObjectStore:
    """Generic structure of an object store addressed by bucket and key."""

    def __init__(self, bucket, **kwargs) -> None:
        self.bucket = bucket
        self.config = dict(kwargs)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.bucket})"

    def open_write_sink(self, key) -> WriteSink:
        """Return a sink that creates object ``key`` when closed."""
        raise NotImplementedError
