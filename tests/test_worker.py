"""Tests for MinionWorker: startup, submission, cancellation."""

import threading
from concurrent.futures import wait

import pytest

from minion.core.config import Settings
from minion.pipeline import TaskCancelledError, TaskConfigError
from minion.transport.tls import reset_transport
from minion.worker import MinionWorker

from conftest import CopyConverter, FakeUploadClient, make_segment_archive, make_task_configs


@pytest.fixture(autouse=True)
def _fresh_transport():
    reset_transport()
    yield
    reset_transport()


@pytest.fixture
def client() -> FakeUploadClient:
    return FakeUploadClient()


@pytest.fixture
def worker(tmp_path, client):
    settings = Settings(data_dir=tmp_path / "data", max_workers=4, https_enabled=False)
    w = MinionWorker(
        settings,
        {"MergeRollupTask": CopyConverter()},
        upload_client_factory=lambda: client,
        configure_logging=False,
    )
    w.start()
    yield w
    w.shutdown()


class TestSubmit:
    def test_submit_before_start_raises(self, tmp_path) -> None:
        w = MinionWorker(Settings(data_dir=tmp_path), {}, configure_logging=False)
        with pytest.raises(RuntimeError, match="start"):
            w.submit("MergeRollupTask", {})

    def test_unknown_task_type_raises_synchronously(self, worker) -> None:
        with pytest.raises(TaskConfigError, match="PurgeTask"):
            worker.submit("PurgeTask", make_task_configs(["x"]))

    def test_bad_config_raises_synchronously(self, worker) -> None:
        with pytest.raises(TaskConfigError):
            worker.submit("MergeRollupTask", make_task_configs(["x"], maxNumAttempts="many"))

    def test_runs_many_tasks_concurrently(self, worker, client, tmp_path) -> None:
        futures = []
        for i in range(6):
            archive = make_segment_archive(tmp_path / f"in{i}", f"events_{i}")
            futures.append(worker.submit(
                "MergeRollupTask",
                make_task_configs([str(archive)], segmentName=f"events_{i}"),
            ))

        done, _ = wait(futures, timeout=60)

        assert len(done) == 6
        names = sorted(r.segment_name for f in futures for r in f.result())
        assert names == sorted(f"events_{i}_converted" for i in range(6))
        assert len(client.calls) == 6
        assert list((tmp_path / "data" / "MergeRollupTask").iterdir()) == []


class _GatedConverter(CopyConverter):
    """Blocks in convert() until the test opens the gate."""

    def __init__(self) -> None:
        super().__init__()
        self.started = threading.Event()
        self.gate = threading.Event()

    def convert(self, task, input_dirs, working_dir):
        self.started.set()
        assert self.gate.wait(timeout=30)
        return super().convert(task, input_dirs, working_dir)


class TestCancel:
    def test_cancel_while_running_surfaces_through_future(self, tmp_path, client) -> None:
        converter = _GatedConverter()
        w = MinionWorker(
            Settings(data_dir=tmp_path / "data", max_workers=1),
            {"MergeRollupTask": converter},
            upload_client_factory=lambda: client,
            configure_logging=False,
        )
        w.start()
        try:
            archive = make_segment_archive(tmp_path / "in", "events_0")
            future = w.submit(
                "MergeRollupTask", make_task_configs([str(archive)], taskId="Task_MergeRollupTask_1"),
            )
            assert converter.started.wait(timeout=30)

            assert w.cancel("Task_MergeRollupTask_1") is True
            converter.gate.set()

            with pytest.raises(TaskCancelledError):
                future.result(timeout=30)
        finally:
            converter.gate.set()
            w.shutdown()

        assert client.calls == []
        # Flag is cleared once the run finishes
        assert not w.cancellation.is_cancelled("Task_MergeRollupTask_1")

    def test_cancel_unknown_task_is_ignored(self, worker) -> None:
        assert worker.cancel("Task_never_submitted") is False
        assert not worker.cancellation.is_cancelled("Task_never_submitted")

    def test_cancel_after_finish_is_ignored(self, worker, tmp_path) -> None:
        archive = make_segment_archive(tmp_path / "in", "events_0")
        future = worker.submit(
            "MergeRollupTask", make_task_configs([str(archive)], taskId="Task_MergeRollupTask_2"),
        )
        future.result(timeout=30)

        assert worker.cancel("Task_MergeRollupTask_2") is False
        assert not worker.cancellation.is_cancelled("Task_MergeRollupTask_2")
