"""Snapshot stage: snapshot every container and publish the confirmed ones."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Optional

from .. import __util__
from ..provider import ContainerInfo, SnapshotProvider
from ..transaction import TransactionContext
from .channel import HandoffChannel
from .identity import RunIdentity, SnapshotDescriptor
from .results import ItemResult, Outcome

logger = logging.getLogger(__name__)


class SnapshotStage:
    """Fan out one snapshot task per container.

    Every confirmed snapshot is sent on ``channel`` as a ``SnapshotDescriptor``.
    The channel is closed once all tasks have returned, whatever their
    outcome.
    """

    def __init__(
        self,
        provider: SnapshotProvider,
        identity: RunIdentity,
        channel: HandoffChannel,
        max_workers: int = 4,
        cancel: Optional[threading.Event] = None,
    ) -> None:
        self.provider = provider
        self.identity = identity
        self.channel = channel
        self.max_workers = max_workers
        self.cancel = cancel or threading.Event()

    def run(self, containers: list[ContainerInfo]) -> list[ItemResult]:
        results = []
        try:
            with ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix="snapshot"
            ) as executor:
                futures = {
                    executor.submit(self.snapshot_container, container): container
                    for container in containers
                }
                for future in as_completed(futures):
                    container = futures[future]
                    try:
                        results.append(future.result())
                    except Exception as e:
                        logger.error(
                            "Snapshotting failed for container %s: %s",
                            container.name,
                            e,
                        )
                        results.append(
                            ItemResult.for_descriptor(
                                self.identity.describe(container.name),
                                Outcome.SNAPSHOT_FAILED,
                                error=str(e),
                            )
                        )
        finally:
            self.channel.close()
        logger.debug("Snapshot stage finished: %d task(s)", len(results))
        return results

    def snapshot_container(self, container: ContainerInfo) -> ItemResult:
        """Create, confirm and publish the snapshot of one container."""
        descriptor = self.identity.describe(container.name)

        with TransactionContext(
            "snapshot",
            container=descriptor.container_name,
            snapshot=descriptor.snapshot_name,
        ) as tx:
            result = self._snapshot(descriptor)
            if not result.ok:
                tx.fail(result.error or result.outcome.value)

        if result.ok:
            self.channel.send(descriptor)
        return result

    def _snapshot(self, descriptor: SnapshotDescriptor) -> ItemResult:
        name = descriptor.container_name

        if self.cancel.is_set():
            return ItemResult.for_descriptor(
                descriptor, Outcome.CANCELLED, error="cancelled before snapshot"
            )

        try:
            operation = self.provider.create_snapshot(name, descriptor.snapshot_name)
        except __util__.ProviderError as e:
            logger.error("Snapshotting failed for container %s: %s", name, e)
            return ItemResult.for_descriptor(
                descriptor, Outcome.SNAPSHOT_FAILED, error=str(e)
            )

        try:
            self.provider.wait_for_success(operation)
        except __util__.ProviderError as e:
            logger.error("Waiting for snapshot for container %s failed: %s", name, e)
            return ItemResult.for_descriptor(
                descriptor, Outcome.SNAPSHOT_FAILED, error=str(e)
            )

        logger.info("Created snapshot %s", descriptor)
        if self.cancel.is_set():
            return ItemResult.for_descriptor(
                descriptor, Outcome.CANCELLED, error="cancelled before transfer"
            )
        return ItemResult.for_descriptor(descriptor, Outcome.SNAPSHOTTED)
