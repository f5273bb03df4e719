"""Construction of the long-lived service objects."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List

from .config import Settings
from .db.repositories import SqlDocumentRepository, SqlJobRepository
from .db.session import dispose_engine
from .engine.base import CrawlEngine
from .engine.heritrix import HeritrixClient
from .jobs.batch import BatchAggregator
from .jobs.manager import JobManager
from .jobs.registry import JobRegistry
from .notify.email import SmtpNotifier
from .validation.client import VeraPDFServiceClient
from .validation.protocol import ValidationProtocol
from .validation.queue import ValidationQueue
from .validation.retry import TransportRetryPolicy
from .validation.snapshot import QueueSnapshotStore
from .validation.worker import ValidationWorker

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    registry: JobRegistry
    engine: CrawlEngine
    manager: JobManager
    batches: BatchAggregator
    queue: ValidationQueue
    worker: ValidationWorker
    closeables: List[Any] = field(default_factory=list)
    uses_database: bool = False

    async def startup(self) -> None:
        await self.manager.restore()
        self.queue.load()
        self.worker.check_pending()
        self.worker.start()

    async def shutdown(self) -> None:
        await self.worker.stop()
        for resource in self.closeables:
            await resource.aclose()
        if self.uses_database:
            await dispose_engine()
        logger.info("Services stopped")


def build_services(settings: Settings) -> Services:
    registry = JobRegistry()
    engine = HeritrixClient.from_settings(settings)
    jobs = SqlJobRepository()
    documents = SqlDocumentRepository()
    manager = JobManager(
        registry,
        engine,
        jobs,
        documents,
        SmtpNotifier.from_settings(settings),
        report_base_url=settings.public_url,
    )

    verapdf = VeraPDFServiceClient(settings.verapdf_url, timeout=settings.request_timeout_seconds)
    protocol = ValidationProtocol(
        verapdf,
        TransportRetryPolicy(settings.transport_retry_seconds, settings.transport_max_attempts),
        poll_interval=settings.validation_poll_interval_seconds,
        max_polls=settings.validation_max_polls,
        max_retries=settings.validation_max_retries,
    )
    queue = ValidationQueue(QueueSnapshotStore(settings.queue_snapshot_path))
    worker = ValidationWorker(queue, protocol, registry, documents, idle_seconds=settings.validation_idle_seconds)

    return Services(
        settings=settings,
        registry=registry,
        engine=engine,
        manager=manager,
        batches=BatchAggregator(manager),
        queue=queue,
        worker=worker,
        closeables=[engine, verapdf],
        uses_database=True,
    )


__all__ = ["Services", "build_services"]
