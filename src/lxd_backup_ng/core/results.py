"""Per-item results and the run report."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .identity import RunIdentity, SnapshotDescriptor


class Outcome(Enum):
    """Terminal state of one snapshot or transfer task."""

    SNAPSHOTTED = "snapshotted"
    SNAPSHOT_FAILED = "snapshot_failed"
    EXPORT_FAILED = "export_failed"
    COMPRESS_FAILED = "compress_failed"
    COMMIT_FAILED = "commit_failed"
    CLEANUP_FAILED = "cleanup_failed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def ok(self) -> bool:
        return self in (Outcome.SNAPSHOTTED, Outcome.COMPLETED)

    @property
    def uploaded(self) -> bool:
        """Whether the remote object was committed."""
        return self in (Outcome.COMPLETED, Outcome.CLEANUP_FAILED)


@dataclass
class ItemResult:
    """Result of a single task.

    Attributes:
        container_name: Container the task worked on
        snapshot_name: Run-scoped snapshot name
        outcome: Terminal state reached by the task
        error: Failure description, None on success
        bytes_read: Uncompressed bytes read from the export stream
        bytes_written: Compressed bytes handed to object storage
    """

    container_name: str
    snapshot_name: str
    outcome: Outcome
    error: Optional[str] = None
    bytes_read: int = 0
    bytes_written: int = 0

    @classmethod
    def for_descriptor(
        cls, descriptor: SnapshotDescriptor, outcome: Outcome, **kwargs
    ) -> "ItemResult":
        return cls(descriptor.container_name, descriptor.snapshot_name, outcome, **kwargs)

    @property
    def ok(self) -> bool:
        return self.outcome.ok

    @property
    def descriptor(self) -> SnapshotDescriptor:
        return SnapshotDescriptor(self.container_name, self.snapshot_name)


@dataclass
class RunReport:
    """Everything that happened during one run, collected after both barriers."""

    identity: RunIdentity
    snapshot_results: list[ItemResult] = field(default_factory=list)
    transfer_results: list[ItemResult] = field(default_factory=list)

    @property
    def published(self) -> list[SnapshotDescriptor]:
        """Descriptors handed to the transfer stage."""
        return [
            r.descriptor
            for r in self.snapshot_results
            if r.outcome is Outcome.SNAPSHOTTED
        ]

    @property
    def completed(self) -> list[ItemResult]:
        return [r for r in self.transfer_results if r.outcome is Outcome.COMPLETED]

    @property
    def failures(self) -> list[ItemResult]:
        results = self.snapshot_results + self.transfer_results
        return [r for r in results if not r.ok]

    @property
    def bytes_written(self) -> int:
        return sum(r.bytes_written for r in self.transfer_results)

    def outcome_of(self, container_name: str) -> Optional[Outcome]:
        """Final outcome for a container, transfer outcome taking precedence."""
        for results in (self.transfer_results, self.snapshot_results):
            for result in results:
                if result.container_name == container_name:
                    return result.outcome
        return None
