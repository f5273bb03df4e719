"""Background consumer of the validation queue."""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional

from ..db.repositories import DocumentRepository
from ..errors import OrphanedTaskError
from ..jobs.registry import JobRegistry
from ..monitoring.metrics import VALIDATION_LATENCY, VALIDATION_TASKS_PROCESSED
from .models import ValidationOutcome, ValidationTask
from .protocol import ValidationProtocol
from .queue import ValidationQueue
from .reports import ReportWriter
from .retry import Sleeper

logger = logging.getLogger(__name__)


class ValidationWorker:
    """Single consumer that validates queued documents one at a time.

    A failing document is recorded and the loop moves on; only a broken queue
    snapshot stops the worker, which then shows up in ``health()``.
    """

    def __init__(
        self,
        queue: ValidationQueue,
        protocol: ValidationProtocol,
        registry: JobRegistry,
        documents: DocumentRepository,
        reports: Optional[ReportWriter] = None,
        *,
        idle_seconds: float = 60.0,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self.queue = queue
        self.protocol = protocol
        self.registry = registry
        self.documents = documents
        self.reports = reports or ReportWriter()
        self.idle_seconds = idle_seconds
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self.current: Optional[ValidationTask] = None
        self.processed = 0
        self.failed = 0
        self.stopped_with: Optional[str] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        if not self.running:
            self.stopped_with = None
            self._task = asyncio.create_task(self.run(), name="validation-worker")
            self._task.add_done_callback(self._on_done)
            logger.info("Validation service started")
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def _on_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.stopped_with = repr(exc)
            logger.error("Validation worker stopped", exc_info=exc)

    def check_pending(self) -> int:
        """Log queued tasks whose crawl job is not tracked; returns their number."""

        orphans = 0
        for task in self.queue.pending():
            if self.registry.ledger_for(task.job_id) is None:
                orphans += 1
                logger.warning(
                    "Queued validation task has no tracked crawl job",
                    extra={"uri": task.source_uri, "job_id": task.job_id},
                )
        return orphans

    async def run(self, once: bool = False) -> None:
        while True:
            task = self.queue.dequeue()
            if task is None:
                if once:
                    break
                logger.debug("No jobs, snoozing for %ss", self.idle_seconds)
                await self._sleep(self.idle_seconds)
                continue

            await self.process(task)

            if once:
                break

    async def process(self, task: ValidationTask) -> ValidationOutcome:
        logger.info("Validating", extra={"uri": task.source_uri, "job_id": task.job_id})
        self.current = task
        started = time.perf_counter()
        try:
            outcome = await self._validate(task)
        except Exception as exc:  # task level guard
            logger.exception("Error in validation service", extra={"uri": task.source_uri})
            outcome = ValidationOutcome.failed(str(exc) or type(exc).__name__)
            await self._record(task, outcome, failed=True)
            VALIDATION_TASKS_PROCESSED.labels(outcome="failed").inc()
            self.failed += 1
        else:
            await self._record(task, outcome, failed=False)
            VALIDATION_TASKS_PROCESSED.labels(outcome="valid" if outcome.is_valid else "invalid").inc()
        finally:
            self.current = None
            VALIDATION_LATENCY.observe(time.perf_counter() - started)
            self._remove_local_file(task)
        self.processed += 1
        return outcome

    async def _validate(self, task: ValidationTask) -> ValidationOutcome:
        if self.registry.ledger_for(task.job_id) is None:
            raise OrphanedTaskError(task.job_id)
        selectors = await self.documents.property_selectors()
        return await self.protocol.validate(task.local_path, selectors)

    async def _record(self, task: ValidationTask, outcome: ValidationOutcome, *, failed: bool) -> None:
        uri = task.source_uri
        if not failed:
            for error in outcome.errors:
                await self._store(self.documents.add_error, uri, error.rule_id, error.message)
            for name, value in outcome.properties.items():
                await self._store(self.documents.add_property, uri, name, None if value is None else str(value))
        if outcome.processing_error:
            await self._store(self.documents.add_processing_error, uri, outcome.processing_error)
        await self._store(
            self.documents.record_document,
            uri,
            task.job_id,
            last_modified=task.observed_at or None,
            is_valid=outcome.is_valid,
        )

        try:
            self.reports.write(task, outcome)
        except OSError:
            logger.exception("Could not write validation report", extra={"uri": uri})

        ledger = self.registry.ledger_for(task.job_id)
        if ledger is None:
            logger.error("Crawl job went away during validation", extra={"uri": uri, "job_id": task.job_id})
            return
        if not failed:
            ledger.merge(outcome.error_counts())
        ledger.record_document(outcome.is_valid)

    async def _store(self, fn: Callable[..., Awaitable[None]], *args: Any, **kwargs: Any) -> None:
        try:
            await fn(*args, **kwargs)
        except Exception:
            logger.exception("Could not store validation result", extra={"operation": fn.__name__})

    def _remove_local_file(self, task: ValidationTask) -> None:
        try:
            Path(task.local_path).unlink(missing_ok=True)
        except OSError:
            logger.exception("Could not delete validated file", extra={"path": task.local_path})

    def health(self) -> Dict[str, Any]:
        return {
            "running": self.running,
            "queue_size": len(self.queue),
            "current": self.current.source_uri if self.current else None,
            "processed": self.processed,
            "failed": self.failed,
            "stopped_with": self.stopped_with,
            "transport": self.protocol.retry_policy.health.to_dict(),
        }


__all__ = ["ValidationWorker"]
