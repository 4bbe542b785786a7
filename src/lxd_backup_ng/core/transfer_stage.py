"""Transfer stage: upload a snapshot, then reclaim it locally.

For each descriptor the steps run strictly in order and any failure ends the
item without touching the snapshot:

1. export the snapshot into the compressor, which writes into the sink
2. close the compressor to flush the trailing codes
3. close the sink to commit the remote object
4. delete the local snapshot

A snapshot is only ever deleted after its object has been committed.
"""

import logging
import threading
import time
from typing import Optional

from .. import __util__
from ..provider import SnapshotProvider
from ..storage import ObjectStore
from ..transaction import TransactionContext
from .export import SnapshotExporter
from .identity import SnapshotDescriptor
from .lzw import LzwWriter
from .results import ItemResult, Outcome

logger = logging.getLogger(__name__)


class TransferStage:
    """Move one snapshot at a time to object storage.

    ``transfer`` is safe to call concurrently for different descriptors.
    """

    def __init__(
        self,
        provider: SnapshotProvider,
        store: ObjectStore,
        exporter: SnapshotExporter,
        cancel: Optional[threading.Event] = None,
    ) -> None:
        self.provider = provider
        self.store = store
        self.exporter = exporter
        self.cancel = cancel or threading.Event()

    def transfer(self, descriptor: SnapshotDescriptor) -> ItemResult:
        with TransactionContext(
            "transfer",
            container=descriptor.container_name,
            snapshot=descriptor.snapshot_name,
            object_key=descriptor.object_key,
        ) as tx:
            result = self._upload(descriptor)
            tx.set_size(result.bytes_written)
            tx.add_detail("bytes_read", result.bytes_read)
            if result.outcome is not Outcome.COMPLETED:
                tx.fail(result.error or result.outcome.value)

        if result.outcome is not Outcome.COMPLETED:
            return result

        try:
            return self._cleanup(descriptor, result)
        except Exception as e:
            logger.error(
                "Unexpected error while deleting snapshot %s: %s", descriptor, e
            )
            return ItemResult.for_descriptor(
                descriptor,
                Outcome.CLEANUP_FAILED,
                error=str(e) or type(e).__name__,
                bytes_read=result.bytes_read,
                bytes_written=result.bytes_written,
            )

    def _upload(self, descriptor: SnapshotDescriptor) -> ItemResult:
        """Steps 1-3; COMPLETED here means the object is committed."""
        key = descriptor.object_key

        if self.cancel.is_set():
            return ItemResult.for_descriptor(
                descriptor, Outcome.CANCELLED, error="cancelled before export"
            )

        try:
            sink = self.store.open_write_sink(key)
        except __util__.StorageError as e:
            logger.error("Error opening upload for snapshot %s: %s", key, e)
            return ItemResult.for_descriptor(
                descriptor, Outcome.COMMIT_FAILED, error=str(e)
            )

        try:
            return self._stream(descriptor, sink)
        except Exception as e:
            logger.error("Unexpected error while uploading snapshot %s: %s", key, e)
            sink.abort()
            return ItemResult.for_descriptor(
                descriptor,
                Outcome.EXPORT_FAILED,
                error=str(e) or type(e).__name__,
                bytes_written=sink.bytes_written,
            )

    def _stream(self, descriptor: SnapshotDescriptor, sink) -> ItemResult:
        key = descriptor.object_key
        compressor = LzwWriter(sink)
        start = time.monotonic()

        try:
            bytes_read = self.exporter.export(descriptor, compressor)
        except __util__.ExportError as e:
            logger.error("%s", e)
            if e.stderr:
                logger.error("%s", e.stderr)
            sink.abort()
            error = f"{e}: {e.stderr}" if e.stderr else str(e)
            return ItemResult.for_descriptor(
                descriptor,
                Outcome.EXPORT_FAILED,
                error=error,
                bytes_written=sink.bytes_written,
            )
        logger.info("Export successful for %s", descriptor.container_name)

        try:
            compressor.close()
        except __util__.CompressionError as e:
            logger.error(
                "Error finalizing snapshot compression for snapshot %s: %s", key, e
            )
            sink.abort()
            return ItemResult.for_descriptor(
                descriptor,
                Outcome.COMPRESS_FAILED,
                error=str(e),
                bytes_read=bytes_read,
                bytes_written=sink.bytes_written,
            )

        try:
            sink.close()
        except __util__.StorageError as e:
            logger.error(
                "Error finalizing cloud storage upload for snapshot %s: %s", key, e
            )
            return ItemResult.for_descriptor(
                descriptor,
                Outcome.COMMIT_FAILED,
                error=str(e),
                bytes_read=bytes_read,
                bytes_written=sink.bytes_written,
            )

        elapsed = time.monotonic() - start
        logger.info(
            "Uploaded %s to %r (%d bytes, %d compressed, %s)",
            key,
            self.store,
            bytes_read,
            sink.bytes_written,
            __util__.format_duration(elapsed),
        )
        return ItemResult.for_descriptor(
            descriptor,
            Outcome.COMPLETED,
            bytes_read=bytes_read,
            bytes_written=sink.bytes_written,
        )

    def _cleanup(self, descriptor: SnapshotDescriptor, uploaded: ItemResult) -> ItemResult:
        """Step 4: delete the local snapshot of a committed upload."""
        key = descriptor.object_key

        def finish(outcome, error=None):
            return ItemResult.for_descriptor(
                descriptor,
                outcome,
                error=error,
                bytes_read=uploaded.bytes_read,
                bytes_written=uploaded.bytes_written,
            )

        if self.cancel.is_set():
            logger.warning("Not deleting snapshot %s: run cancelled", key)
            return finish(Outcome.CLEANUP_FAILED, "cancelled before delete")

        with TransactionContext(
            "delete", container=descriptor.container_name, snapshot=descriptor.snapshot_name
        ) as tx:
            try:
                operation = self.provider.delete_snapshot(key)
            except __util__.ProviderError as e:
                logger.error(
                    "Error while initiating delete operation for snapshot %s: %s", key, e
                )
                tx.fail(str(e))
                return finish(Outcome.CLEANUP_FAILED, str(e))

            try:
                self.provider.wait_for_success(operation)
            except __util__.ProviderError as e:
                logger.error("Waiting for delete for snapshot %s failed: %s", key, e)
                tx.fail(str(e))
                return finish(Outcome.CLEANUP_FAILED, str(e))

        logger.info("Deleted local snapshot %s", key)
        return finish(Outcome.COMPLETED)
