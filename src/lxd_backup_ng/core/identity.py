"""Run-scoped naming: RunIdentity and SnapshotDescriptor.

Every snapshot taken during one run shares a single name derived from the
run's start time and a random seed, so all artifacts of a run can be found
by name alone.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

DEFAULT_TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"
DEFAULT_SNAPSHOT_PREFIX = "backup-"


def read_seed() -> int:
    """Return a signed 64-bit integer from the OS cryptographic source."""
    return int.from_bytes(secrets.token_bytes(8), "little", signed=True)


@dataclass(frozen=True)
class RunIdentity:
    """Identity of one backup run.

    Attributes:
        timestamp: Sortable start time of the run
        seed: Random value disambiguating concurrent runs
        prefix: Prefix of the snapshot name
    """

    timestamp: str
    seed: int
    prefix: str = DEFAULT_SNAPSHOT_PREFIX

    @classmethod
    def create(
        cls,
        timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT,
        prefix: str = DEFAULT_SNAPSHOT_PREFIX,
        now: Optional[datetime] = None,
        seed: Optional[int] = None,
    ) -> "RunIdentity":
        """Compute the identity for a new run."""
        now = now or datetime.now()
        return cls(
            timestamp=now.strftime(timestamp_format),
            seed=read_seed() if seed is None else seed,
            prefix=prefix,
        )

    @property
    def snapshot_name(self) -> str:
        return f"{self.prefix}{self.timestamp}-{self.seed}"

    def describe(self, container_name: str) -> "SnapshotDescriptor":
        """Descriptor for the snapshot of ``container_name`` in this run."""
        return SnapshotDescriptor(container_name, self.snapshot_name)


@dataclass(frozen=True)
class SnapshotDescriptor:
    """A confirmed snapshot waiting to be transferred."""

    container_name: str
    snapshot_name: str

    @property
    def object_key(self) -> str:
        """Remote object key, also the provider key used for deletion."""
        return f"{self.container_name}/{self.snapshot_name}"

    def __str__(self) -> str:
        return self.object_key
