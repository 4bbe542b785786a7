"""Transaction log: a JSON-lines audit trail of pipeline actions.

Each record is one line holding at least ``timestamp``, ``pid``, ``action``
and ``status``. Appends are serialized across threads with a lock and
across processes with a lock file next to the log.
"""

import json
import logging
import os
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from filelock import FileLock

logger = logging.getLogger(__name__)

_transaction_log_path: Optional[Path] = None
_lock = threading.Lock()


def set_transaction_log(path) -> None:
    """Set the transaction log file, or disable logging with None."""
    global _transaction_log_path

    if path is None:
        _transaction_log_path = None
        return

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    _transaction_log_path = path
    logger.debug("Transaction log: %s", path)


def log_transaction(
    action: str,
    status: str,
    container: Optional[str] = None,
    snapshot: Optional[str] = None,
    object_key: Optional[str] = None,
    size_bytes: Optional[int] = None,
    duration_seconds: Optional[float] = None,
    error: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> None:
    """Append one record; does nothing when logging is disabled.

    Write failures are reported as warnings and never raised.
    """
    path = _transaction_log_path
    if path is None:
        return

    record: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "pid": os.getpid(),
        "action": action,
        "status": status,
    }
    optional = {
        "container": container,
        "snapshot": snapshot,
        "object_key": object_key,
        "size_bytes": size_bytes,
        "duration_seconds": (
            round(duration_seconds, 3) if duration_seconds is not None else None
        ),
        "error": error,
        "details": details,
    }
    record.update({k: v for k, v in optional.items() if v is not None})

    line = json.dumps(record, sort_keys=True) + "\n"
    try:
        with _lock, FileLock(f"{path}.lock"):
            with open(path, "a", encoding="utf-8") as f:
                f.write(line)
    except OSError as e:
        logger.warning("Could not write transaction log %s: %s", path, e)


class TransactionContext:
    """Log a ``started`` record on entry and ``completed``/``failed`` on exit.

    Exceptions are never suppressed.
    """

    def __init__(
        self,
        action: str,
        container: Optional[str] = None,
        snapshot: Optional[str] = None,
        object_key: Optional[str] = None,
    ) -> None:
        self.action = action
        self.container = container
        self.snapshot = snapshot
        self.object_key = object_key
        self.size_bytes: Optional[int] = None
        self.error: Optional[str] = None
        self.details: dict[str, Any] = {}
        self._start = 0.0

    def __enter__(self) -> "TransactionContext":
        self._start = time.monotonic()
        log_transaction(
            action=self.action,
            status="started",
            container=self.container,
            snapshot=self.snapshot,
            object_key=self.object_key,
        )
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> bool:
        if exc_type is not None:
            status = "failed"
            error = str(exc_value) or exc_type.__name__
        elif self.error is not None:
            status = "failed"
            error = self.error
        else:
            status = "completed"
            error = None
        log_transaction(
            action=self.action,
            status=status,
            container=self.container,
            snapshot=self.snapshot,
            object_key=self.object_key,
            size_bytes=self.size_bytes,
            duration_seconds=time.monotonic() - self._start,
            error=error,
            details=self.details or None,
        )
        return False

    def set_size(self, size_bytes: int) -> None:
        self.size_bytes = size_bytes

    def add_detail(self, key: str, value: Any) -> None:
        self.details[key] = value

    def fail(self, error: str) -> None:
        """Mark the transaction failed without raising."""
        self.error = error


def read_transaction_log(
    path=None,
    limit: Optional[int] = None,
    action_filter: Optional[str] = None,
    status_filter: Optional[str] = None,
) -> list[dict[str, Any]]:
    """Return records, most recent first. Invalid lines are skipped."""
    path = Path(path) if path is not None else _transaction_log_path
    if path is None or not path.exists():
        return []

    records = []
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except ValueError:
                continue
            if action_filter and record.get("action") != action_filter:
                continue
            if status_filter and record.get("status") != status_filter:
                continue
            records.append(record)

    records.reverse()
    if limit is not None:
        records = records[:limit]
    return records


def get_transaction_stats(path=None) -> dict[str, Any]:
    """Summarize the log per action type."""
    records = read_transaction_log(path)
    stats: dict[str, Any] = {
        "total_records": len(records),
        "snapshots": {"completed": 0, "failed": 0},
        "transfers": {"completed": 0, "failed": 0},
        "deletes": {"completed": 0, "failed": 0},
        "total_bytes_transferred": 0,
        "last_run": None,
    }
    groups = {"snapshot": "snapshots", "transfer": "transfers", "delete": "deletes"}

    for record in records:
        group = groups.get(record.get("action"))
        status = record.get("status")
        if group and status in ("completed", "failed"):
            stats[group][status] += 1
        if record.get("action") == "transfer" and status == "completed":
            stats["total_bytes_transferred"] += record.get("size_bytes", 0)
        if record.get("action") == "run" and stats["last_run"] is None:
            stats["last_run"] = record.get("timestamp")

    return stats
