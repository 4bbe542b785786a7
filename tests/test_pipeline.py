"""End to end tests for the backup pipeline with in-memory collaborators."""

import json
import threading

import pytest
from conftest import FakeProvider

from lxd_backup_ng.__util__ import AbortError
from lxd_backup_ng.core import BackupPipeline, Outcome
from lxd_backup_ng.core.lzw import decompress


def _pipeline(provider, store, exporter, identity, **kwargs):
    return BackupPipeline(provider, store, exporter, identity, **kwargs)


class TestBackupPipeline:
    """Tests for BackupPipeline.run."""

    def test_all_containers_succeed(self, provider, store, exporter, identity):
        """Test three containers end uploaded with no local snapshot left."""
        exporter.payloads = {name: f"data-{name}".encode() for name in provider.names}

        report = _pipeline(provider, store, exporter, identity).run()

        name = identity.snapshot_name
        assert sorted(store.objects) == [f"c1/{name}", f"c2/{name}", f"c3/{name}"]
        for container in provider.names:
            stored = store.objects[f"{container}/{name}"]
            assert decompress(stored) == f"data-{container}".encode()
        assert provider.snapshots == set()
        assert report.failures == []
        assert len(report.completed) == 3

    def test_export_failure_is_isolated(self, provider, store, exporter, identity):
        """Test a failed export keeps its snapshot and spares the others."""
        exporter.failures["c2"] = "broken pipe"

        report = _pipeline(provider, store, exporter, identity).run()

        name = identity.snapshot_name
        assert f"c2/{name}" not in store.objects
        assert provider.snapshots == {f"c2/{name}"}
        assert report.outcome_of("c1") is Outcome.COMPLETED
        assert report.outcome_of("c2") is Outcome.EXPORT_FAILED
        assert report.outcome_of("c3") is Outcome.COMPLETED

    def test_snapshot_failure_never_reaches_transfer(
        self, provider, store, exporter, identity
    ):
        """Test a failed create produces no descriptor and no transfer."""
        provider.fail_create.add("c1")

        report = _pipeline(provider, store, exporter, identity).run()

        assert "c1" not in exporter.exported
        assert sorted(exporter.exported) == ["c2", "c3"]
        assert "c1" not in {d.container_name for d in report.published}
        assert report.outcome_of("c1") is Outcome.SNAPSHOT_FAILED
        assert len(report.completed) == 2
        assert {r.container_name for r in report.transfer_results} == {"c2", "c3"}

    def test_delete_failure_keeps_object_and_snapshot(
        self, provider, store, exporter, identity
    ):
        """Test a failed delete leaves both the object and the snapshot."""
        provider.fail_delete_wait.add("c3")

        report = _pipeline(provider, store, exporter, identity).run()

        key = f"c3/{identity.snapshot_name}"
        assert decompress(store.objects[key]) == exporter.default
        assert provider.snapshots == {key}
        assert report.outcome_of("c3") is Outcome.CLEANUP_FAILED
        assert len(report.completed) == 2

    def test_list_failure_aborts_before_any_stage(
        self, provider, store, exporter, identity
    ):
        """Test an enumeration failure stops the run with nothing done."""
        provider.list_error = "connection refused"

        with pytest.raises(AbortError, match="connection refused"):
            _pipeline(provider, store, exporter, identity).run()

        assert provider.created == []
        assert exporter.exported == []

    def test_no_containers(self, store, exporter, identity):
        """Test an empty provider yields an empty report."""
        report = _pipeline(FakeProvider([]), store, exporter, identity).run()
        assert report.snapshot_results == []
        assert report.transfer_results == []

    def test_single_snapshot_name_per_run(self, provider, store, exporter, identity):
        """Test every container gets the same snapshot name."""
        _pipeline(provider, store, exporter, identity).run()
        names = {key.split("/", 1)[1] for key in provider.created}
        assert names == {identity.snapshot_name}

    def test_upload_before_delete(self, identity, store, exporter):
        """Test only committed snapshots are deleted across mixed failures."""
        provider = FakeProvider([f"c{i}" for i in range(10)])
        exporter.failures["c1"] = "export failed"
        store.fail_commit.add(f"c2/{identity.snapshot_name}")
        provider.fail_create.add("c3")
        provider.fail_delete.add("c4")

        report = _pipeline(
            provider, store, exporter, identity, parallel_transfers=3
        ).run()

        deleted = {key.split("/", 1)[0] for key in provider.deleted}
        committed = {key.split("/", 1)[0] for key in store.objects}
        assert deleted <= committed
        assert deleted == {f"c{i}" for i in range(10)} - {"c1", "c2", "c3", "c4"}
        assert len(report.failures) == 4

    def test_transfers_start_before_snapshots_finish(self, store, exporter, identity):
        """Test descriptors are transferred as soon as they are published."""
        provider = FakeProvider(["fast", "slow"])
        fast_exported = threading.Event()
        streamed = []

        def hold_slow(name):
            if name == "slow":
                streamed.append(fast_exported.wait(5))

        def mark(descriptor):
            if descriptor.container_name == "fast":
                fast_exported.set()

        provider.on_create = hold_slow
        exporter.on_export = mark

        report = _pipeline(
            provider, store, exporter, identity, parallel_snapshots=2
        ).run()

        assert streamed == [True]
        assert len(report.completed) == 2

    def test_cancel_before_run(self, provider, store, exporter, identity):
        """Test a cancelled pipeline creates no snapshots."""
        pipeline = _pipeline(provider, store, exporter, identity)
        pipeline.cancel()

        report = pipeline.run()

        assert pipeline.cancelled
        assert provider.created == []
        assert all(r.outcome is Outcome.CANCELLED for r in report.snapshot_results)

    def test_invalid_pool_sizes(self, provider, store, exporter, identity):
        """Test worker pools must have at least one worker."""
        with pytest.raises(ValueError):
            _pipeline(provider, store, exporter, identity, parallel_snapshots=0)
        with pytest.raises(ValueError):
            _pipeline(provider, store, exporter, identity, parallel_transfers=0)

    def test_run_records(self, provider, store, exporter, identity, tx_log):
        """Test the run is bracketed by started and completed records."""
        _pipeline(provider, store, exporter, identity).run()

        records = [json.loads(line) for line in tx_log.read_text().splitlines()]
        runs = [r for r in records if r["action"] == "run"]
        assert [r["status"] for r in runs] == ["started", "completed"]
        assert runs[0]["details"] == {"containers": 3}
        assert runs[1]["details"] == {"completed": 3, "failed": 0}
