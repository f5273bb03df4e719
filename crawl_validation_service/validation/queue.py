"""Durable FIFO of documents waiting for validation."""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Deque, List, Optional

from ..monitoring.metrics import VALIDATION_QUEUE_SIZE, VALIDATION_TASKS_ENQUEUED
from .models import ValidationTask
from .snapshot import QueueSnapshotStore

logger = logging.getLogger(__name__)


class ValidationQueue:
    """Any number of producers, one consumer.

    Each mutation and the snapshot write that follows it happen under one
    lock. When the snapshot cannot be written the mutation is undone and the
    ``OSError`` is raised to the caller.
    """

    def __init__(self, store: QueueSnapshotStore) -> None:
        self.store = store
        self._lock = threading.Lock()
        self._tasks: Deque[ValidationTask] = deque()

    def load(self) -> int:
        with self._lock:
            self._tasks = deque(self.store.read())
            VALIDATION_QUEUE_SIZE.set(len(self._tasks))
            count = len(self._tasks)
        logger.info("Loaded validation queue", extra={"task_count": count})
        return count

    def enqueue(self, task: ValidationTask) -> int:
        with self._lock:
            self._tasks.append(task)
            try:
                self.store.write(self._tasks)
            except OSError:
                self._tasks.pop()
                raise
            size = len(self._tasks)
            VALIDATION_QUEUE_SIZE.set(size)
        VALIDATION_TASKS_ENQUEUED.inc()
        logger.info("Added validation job", extra={"uri": task.source_uri, "queue_size": size})
        return size

    def dequeue(self) -> Optional[ValidationTask]:
        with self._lock:
            if not self._tasks:
                return None
            task = self._tasks.popleft()
            try:
                self.store.write(self._tasks)
            except OSError:
                self._tasks.appendleft(task)
                raise
            VALIDATION_QUEUE_SIZE.set(len(self._tasks))
            return task

    def pending(self) -> List[ValidationTask]:
        with self._lock:
            return list(self._tasks)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)


__all__ = ["ValidationQueue"]
