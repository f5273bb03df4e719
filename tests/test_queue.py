import json
import threading
from pathlib import Path

import pytest

from crawl_validation_service.validation.models import ValidationTask
from crawl_validation_service.validation.queue import ValidationQueue
from crawl_validation_service.validation.snapshot import QueueSnapshotStore


def make_task(name: str, job_id: str = "job-1") -> ValidationTask:
    return ValidationTask(
        source_uri=f"https://example.com/{name}.pdf",
        local_path=f"/tmp/{name}.pdf",
        output_directory=f"/heritrix/jobs/{job_id}/20240101000000/mirror",
        observed_at="Mon, 01 Jan 2024 00:00:00 GMT",
    )


def test_task_job_id_is_taken_from_output_directory():
    assert make_task("a", "abc").job_id == "abc"
    assert ValidationTask("u", "p", "mirror").job_id is None


def test_queue_is_fifo_and_persisted(tmp_path: Path):
    store = QueueSnapshotStore(tmp_path / "validation-jobs.json")
    queue = ValidationQueue(store)

    assert queue.enqueue(make_task("a")) == 1
    assert queue.enqueue(make_task("b")) == 2

    saved = json.loads(store.path.read_text())
    assert [item["source_uri"] for item in saved] == ["https://example.com/a.pdf", "https://example.com/b.pdf"]

    assert queue.dequeue().source_uri.endswith("a.pdf")
    assert [task.source_uri for task in store.read()] == ["https://example.com/b.pdf"]
    assert queue.dequeue().source_uri.endswith("b.pdf")
    assert queue.dequeue() is None
    assert store.read() == []


def test_queue_reloads_pending_tasks_after_restart(tmp_path: Path):
    path = tmp_path / "validation-jobs.json"
    first = ValidationQueue(QueueSnapshotStore(path))
    first.enqueue(make_task("a"))
    first.enqueue(make_task("b"))
    first.dequeue()

    second = ValidationQueue(QueueSnapshotStore(path))
    assert second.load() == 1
    assert second.pending() == [make_task("b")]


def test_load_without_snapshot_starts_empty(tmp_path: Path):
    queue = ValidationQueue(QueueSnapshotStore(tmp_path / "missing" / "queue.json"))
    assert queue.load() == 0
    assert len(queue) == 0


class BrokenStore(QueueSnapshotStore):
    def __init__(self, path: Path) -> None:
        super().__init__(path)
        self.broken = False

    def write(self, tasks) -> None:
        if self.broken:
            raise OSError("disk full")
        super().write(tasks)


def test_failed_snapshot_rolls_back_enqueue(tmp_path: Path):
    store = BrokenStore(tmp_path / "queue.json")
    queue = ValidationQueue(store)
    queue.enqueue(make_task("a"))
    store.broken = True

    with pytest.raises(OSError):
        queue.enqueue(make_task("b"))

    assert queue.pending() == [make_task("a")]


def test_failed_snapshot_rolls_back_dequeue(tmp_path: Path):
    store = BrokenStore(tmp_path / "queue.json")
    queue = ValidationQueue(store)
    queue.enqueue(make_task("a"))
    queue.enqueue(make_task("b"))
    store.broken = True

    with pytest.raises(OSError):
        queue.dequeue()

    assert [task.source_uri for task in queue.pending()] == [
        "https://example.com/a.pdf",
        "https://example.com/b.pdf",
    ]


def test_concurrent_producers_and_consumer_lose_nothing(tmp_path: Path):
    path = tmp_path / "validation-jobs.json"
    queue = ValidationQueue(QueueSnapshotStore(path))
    producers_done = threading.Event()
    consumed = []

    def produce(worker: int) -> None:
        for index in range(25):
            queue.enqueue(make_task(f"w{worker}-{index}"))

    def consume() -> None:
        while len(consumed) < 40:
            task = queue.dequeue()
            if task is not None:
                consumed.append(task.source_uri)
            elif producers_done.is_set():
                break

    producers = [threading.Thread(target=produce, args=(worker,)) for worker in range(4)]
    consumer = threading.Thread(target=consume)
    consumer.start()
    for thread in producers:
        thread.start()
    for thread in producers:
        thread.join()
    producers_done.set()
    consumer.join()

    pending = [task.source_uri for task in queue.pending()]
    produced = {f"https://example.com/w{worker}-{index}.pdf" for worker in range(4) for index in range(25)}
    assert len(consumed) + len(pending) == 100
    assert set(consumed) | set(pending) == produced

    reloaded = ValidationQueue(QueueSnapshotStore(path))
    reloaded.load()
    assert [task.source_uri for task in reloaded.pending()] == pending

    for worker in range(4):
        prefix = f"https://example.com/w{worker}-"
        order = [int(uri[len(prefix):-4]) for uri in consumed + pending if uri.startswith(prefix)]
        assert order == sorted(order)
