"""Pytest configuration and shared fixtures."""

import io
import threading

import pytest

from lxd_backup_ng import __util__
from lxd_backup_ng.core import RunIdentity
from lxd_backup_ng.provider import ContainerInfo, Operation, SnapshotProvider
from lxd_backup_ng.storage import ObjectStore, WriteSink
from lxd_backup_ng.transaction import set_transaction_log


class FakeProcess:
    """Stands in for a finished provider child process."""

    def __init__(self, returncode=0, stderr=b""):
        self.returncode = returncode
        self.pid = 4242
        self._stderr = stderr

    def communicate(self):
        return None, self._stderr


class FakeProvider(SnapshotProvider):
    """In-memory provider with per-container failure injection.

    ``snapshots`` holds the keys of snapshots that currently exist.
    """

    def __init__(self, names=(), **kwargs):
        super().__init__(config={"command": "fake"}, **kwargs)
        self.names = list(names)
        self.snapshots = set()
        self.created = []
        self.deleted = []
        self.list_error = None
        self.fail_create = set()
        self.fail_create_wait = set()
        self.fail_delete = set()
        self.fail_delete_wait = set()
        self.on_create = None
        self._lock = threading.Lock()

    def list_containers(self):
        if self.list_error is not None:
            raise __util__.ProviderError(self.list_error)
        return [ContainerInfo(name=name, status="Running") for name in self.names]

    def create_snapshot(self, container_name, snapshot_name):
        if container_name in self.fail_create:
            raise __util__.ProviderError(f"create refused for {container_name}")
        if self.on_create is not None:
            self.on_create(container_name)
        key = f"{container_name}/{snapshot_name}"
        with self._lock:
            self.created.append(key)
        if container_name in self.fail_create_wait:
            process = FakeProcess(1, b"snapshot failed")
        else:
            with self._lock:
                self.snapshots.add(key)
            process = FakeProcess()
        return Operation(f"snapshot {key}", process)

    def delete_snapshot(self, key):
        container_name = key.split("/", 1)[0]
        if container_name in self.fail_delete:
            raise __util__.ProviderError(f"delete refused for {key}")
        if container_name in self.fail_delete_wait:
            return Operation(f"delete {key}", FakeProcess(1, b"busy"))
        with self._lock:
            self.snapshots.discard(key)
            self.deleted.append(key)
        return Operation(f"delete {key}", FakeProcess())


class MemorySink(WriteSink):
    def __init__(self, key, store):
        super().__init__(key)
        self.store = store
        self.buffer = io.BytesIO()

    def _write(self, data):
        if self.key in self.store.fail_write:
            raise __util__.StorageError(f"write refused for {self.key}")
        self.buffer.write(data)

    def _commit(self):
        if self.key in self.store.fail_commit:
            raise __util__.StorageError(f"commit refused for {self.key}")
        with self.store.lock:
            self.store.objects[self.key] = self.buffer.getvalue()

    def _abort(self):
        with self.store.lock:
            self.store.aborted.append(self.key)


class MemoryStore(ObjectStore):
    """Object store keeping committed objects in a dict."""

    def __init__(self, bucket="test-bucket"):
        super().__init__(bucket)
        self.objects = {}
        self.aborted = []
        self.fail_open = set()
        self.fail_write = set()
        self.fail_commit = set()
        self.lock = threading.Lock()

    def open_write_sink(self, key):
        if key in self.fail_open:
            raise __util__.StorageError(f"cannot open {key}")
        return MemorySink(key, self)


class FakeExporter:
    """Exporter writing canned payloads instead of running ``zfs send``."""

    def __init__(self, payloads=None, default=b"snapshot-data"):
        self.payloads = dict(payloads or {})
        self.default = default
        self.failures = {}
        self.exported = []
        self.on_export = None
        self._lock = threading.Lock()

    def build_command(self, descriptor):
        return ["zfs", "send", f"lxd/containers/{descriptor.container_name}"]

    def export(self, descriptor, writer):
        if self.on_export is not None:
            self.on_export(descriptor)
        with self._lock:
            self.exported.append(descriptor.container_name)
        failure = self.failures.get(descriptor.container_name)
        if failure is not None:
            raise __util__.ExportError(
                "`zfs send` exited with code 1", returncode=1, stderr=failure
            )
        data = self.payloads.get(descriptor.container_name, self.default)
        writer.write(data)
        return len(data)


@pytest.fixture
def identity():
    return RunIdentity(timestamp="20260101-120000", seed=42)


@pytest.fixture
def provider():
    return FakeProvider(["c1", "c2", "c3"])


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def exporter():
    return FakeExporter()


@pytest.fixture
def tx_log(tmp_path):
    """Enable the transaction log for one test."""
    path = tmp_path / "transactions.jsonl"
    set_transaction_log(path)
    yield path
    set_transaction_log(None)


@pytest.fixture
def tmp_config_dir(tmp_path):
    """Create a temporary config directory."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def sample_config_toml():
    """Return a sample valid TOML configuration string."""
    return """
[global]
zpool = "tank"
lxc_command = "/usr/bin/lxc"
zfs_command = "/usr/sbin/zfs"
snapshot_prefix = "nightly-"
timestamp_format = "%Y%m%d-%H%M%S"
parallel_snapshots = 6
parallel_transfers = 3
transaction_log = "/var/lib/lxd-backup-ng/transactions.jsonl"

[storage]
backend = "s3"
bucket = "lxd-backups"
region = "eu-west-1"
part_size_mb = 16
"""


@pytest.fixture
def minimal_config_toml():
    """Return a minimal valid TOML configuration string."""
    return """
[global]
zpool = "lxd"

[storage]
bucket = "backups"
"""


@pytest.fixture
def config_file(tmp_config_dir, sample_config_toml):
    """Create a temporary config file with sample content."""
    config_path = tmp_config_dir / "config.toml"
    config_path.write_text(sample_config_toml)
    return config_path


@pytest.fixture
def minimal_config_file(tmp_config_dir, minimal_config_toml):
    """Create a temporary config file with minimal content."""
    config_path = tmp_config_dir / "minimal.toml"
    config_path.write_text(minimal_config_toml)
    return config_path
