"""Core backup pipeline for lxd-backup-ng.

Snapshots are taken by the snapshot stage, handed over through a channel and
streamed to object storage by the transfer stage. The pipeline coordinator
ties both together.
"""

from .channel import HandoffChannel
from .export import SnapshotExporter
from .identity import RunIdentity, SnapshotDescriptor
from .pipeline import BackupPipeline
from .results import ItemResult, Outcome, RunReport
from .snapshot_stage import SnapshotStage
from .transfer_stage import TransferStage

__all__ = [
    "BackupPipeline",
    "HandoffChannel",
    "ItemResult",
    "Outcome",
    "RunIdentity",
    "RunReport",
    "SnapshotDescriptor",
    "SnapshotExporter",
    "SnapshotStage",
    "TransferStage",
]
