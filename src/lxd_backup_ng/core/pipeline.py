"""Pipeline coordinator: wire the snapshot and transfer stages together.

The snapshot stage runs in the background and closes the handoff channel
once all of its tasks are done. Meanwhile the coordinator drains the channel
and submits a transfer task for every descriptor as soon as it arrives, so
early snapshots can be uploaded before later ones exist.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Optional

from .. import __util__
from ..provider import SnapshotProvider
from ..storage import ObjectStore
from ..transaction import log_transaction
from .channel import HandoffChannel
from .export import SnapshotExporter
from .identity import RunIdentity, SnapshotDescriptor
from .results import ItemResult, Outcome, RunReport
from .snapshot_stage import SnapshotStage
from .transfer_stage import TransferStage

logger = logging.getLogger(__name__)


class BackupPipeline:
    """One backup pass over every container of a provider.

    Args:
        provider: Snapshot provider used by both stages
        store: Object store receiving the compressed snapshots
        exporter: Export runner for the storage pool
        identity: Identity of this run, shared by every task
        parallel_snapshots: Worker pool size of the snapshot stage
        parallel_transfers: Worker pool size of the transfer stage
    """

    def __init__(
        self,
        provider: SnapshotProvider,
        store: ObjectStore,
        exporter: SnapshotExporter,
        identity: RunIdentity,
        parallel_snapshots: int = 4,
        parallel_transfers: int = 2,
    ) -> None:
        if parallel_snapshots < 1 or parallel_transfers < 1:
            raise ValueError("worker pool sizes must be at least 1")
        self.provider = provider
        self.store = store
        self.exporter = exporter
        self.identity = identity
        self.parallel_snapshots = parallel_snapshots
        self.parallel_transfers = parallel_transfers
        self._cancel = threading.Event()

    def cancel(self) -> None:
        """Ask every task to stop at its next checkpoint."""
        if not self._cancel.is_set():
            logger.warning("Cancellation requested, finishing in-flight steps")
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def run(self) -> RunReport:
        """Run both stages to completion.

        Raises:
            AbortError: If the containers cannot be enumerated. No stage has
                started in that case.
        """
        try:
            containers = self.provider.list_containers()
        except __util__.ProviderError as e:
            logger.error("Error while listing containers: %s", e)
            raise __util__.AbortError(f"Cannot list containers: {e}") from e

        report = RunReport(identity=self.identity)
        logger.info(
            "Backing up %d container(s) as snapshot %s",
            len(containers),
            self.identity.snapshot_name,
        )
        log_transaction(
            action="run",
            status="started",
            snapshot=self.identity.snapshot_name,
            details={"containers": len(containers)},
        )
        start = time.monotonic()

        channel: HandoffChannel[SnapshotDescriptor] = HandoffChannel()
        snapshot_stage = SnapshotStage(
            self.provider,
            self.identity,
            channel,
            max_workers=self.parallel_snapshots,
            cancel=self._cancel,
        )
        transfer_stage = TransferStage(
            self.provider, self.store, self.exporter, cancel=self._cancel
        )

        with ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="snapshot-stage"
        ) as stage_runner, ThreadPoolExecutor(
            max_workers=self.parallel_transfers, thread_name_prefix="transfer"
        ) as transfers:
            snapshot_future = stage_runner.submit(snapshot_stage.run, containers)

            futures = {}
            for descriptor in channel:
                logger.debug("Queueing transfer of %s", descriptor)
                futures[transfers.submit(transfer_stage.transfer, descriptor)] = (
                    descriptor
                )

            for future in as_completed(futures):
                descriptor = futures[future]
                try:
                    report.transfer_results.append(future.result())
                except Exception as e:
                    logger.error("Transfer of snapshot %s failed: %s", descriptor, e)
                    report.transfer_results.append(
                        ItemResult.for_descriptor(
                            descriptor, Outcome.EXPORT_FAILED, error=str(e)
                        )
                    )

            report.snapshot_results = snapshot_future.result()

        elapsed = time.monotonic() - start
        self._log_summary(report, elapsed)
        log_transaction(
            action="run",
            status="failed" if report.failures else "completed",
            snapshot=self.identity.snapshot_name,
            size_bytes=report.bytes_written,
            duration_seconds=elapsed,
            details={
                "completed": len(report.completed),
                "failed": len(report.failures),
            },
        )
        return report

    def _log_summary(self, report: RunReport, elapsed: float) -> None:
        logger.info(__util__.log_heading(f"Finished in {__util__.format_duration(elapsed)}"))
        for result in report.failures:
            logger.warning(
                "%s: %s (%s)",
                result.descriptor,
                result.outcome.value,
                result.error or "no details",
            )
        logger.info(
            "%d snapshot(s) taken, %d uploaded and reclaimed, %d failure(s)",
            len(report.published),
            len(report.completed),
            len(report.failures),
        )
