"""Crawl job lifecycle management."""

from __future__ import annotations

import asyncio
import logging
from collections import Counter, defaultdict
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, Dict, List, Optional, Set, Tuple

from ..db.repositories import DocumentRepository, JobRepository
from ..engine.base import CrawlEngine
from ..errors import EngineError
from ..monitoring.metrics import ENGINE_ERRORS_TOTAL, JOB_TRANSITIONS_TOTAL
from ..notify.email import Notifier
from .models import CrawlJob, JobReport, JobStatus
from .registry import DuplicateJobError, JobRegistry
from .urls import normalize_url, seed_urls

logger = logging.getLogger(__name__)

_ACTIVE = {JobStatus.RUNNING, JobStatus.PAUSED}

# action -> (allowed source states, resulting state)
_TRANSITIONS: Dict[str, Tuple[Set[JobStatus], JobStatus]] = {
    "pause": ({JobStatus.RUNNING}, JobStatus.PAUSED),
    "unpause": ({JobStatus.PAUSED}, JobStatus.RUNNING),
    "terminate": (_ACTIVE, JobStatus.TERMINATED),
}


class JobManager:
    """Coordinates crawl engine calls, the job registry and persistence.

    Engine, repository and notifier failures never escape this class: they
    are logged and the caller receives a report of whatever state the job is
    in afterwards. Operations on the same job are serialized, operations on
    different jobs run concurrently.
    """

    def __init__(
        self,
        registry: JobRegistry,
        engine: CrawlEngine,
        repository: JobRepository,
        documents: DocumentRepository,
        notifier: Notifier,
        *,
        report_base_url: str = "",
    ) -> None:
        self.registry = registry
        self.engine = engine
        self.repository = repository
        self.documents = documents
        self.notifier = notifier
        self.report_base_url = report_base_url
        self._job_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._url_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._url_users: Counter[str] = Counter()

    async def restore(self) -> int:
        """Load persisted jobs into the registry; returns how many were restored."""

        try:
            jobs = await self.repository.list_jobs()
        except Exception:
            logger.exception("Could not load crawl jobs from the database")
            return 0

        restored = 0
        for job in jobs:
            try:
                self.registry.add(job)
            except DuplicateJobError as exc:
                logger.warning("Skipping stored crawl job: %s", exc, extra={"job_id": job.job_id})
                continue
            restored += 1
        logger.info("Restored crawl jobs", extra={"job_count": restored})
        return restored

    async def start_job(
        self,
        url: str,
        *,
        report_email: Optional[str] = None,
        scheduled_date: Optional[date] = None,
        force: bool = False,
    ) -> JobReport:
        crawl_url = normalize_url(url)
        async with self._url_guard(crawl_url):
            existing = self.registry.find_by_url(crawl_url)
            if existing is not None and not force:
                logger.info("Crawl job already exists", extra={"job_id": existing.job_id, "url": crawl_url})
                return JobReport.from_job(existing)

            if existing is not None:
                async with self._job_locks[existing.job_id]:
                    if self.registry.get(existing.job_id) is existing:
                        try:
                            await self.engine.teardown(existing.job_id)
                        except EngineError as exc:
                            self._engine_failed(exc)
                            # A finished job was torn down when its end was observed.
                            if not existing.is_finished:
                                return JobReport.from_job(existing)
                        self.registry.remove(existing.job_id)
                        await self._forget(existing.job_id)
                self._job_locks.pop(existing.job_id, None)
                logger.info("Replaced crawl job", extra={"job_id": existing.job_id, "url": crawl_url})

            job = CrawlJob.create(crawl_url, report_email=report_email, scheduled_date=scheduled_date)
            try:
                await self._launch(job.job_id, seed_urls(url))
            except EngineError as exc:
                self._engine_failed(exc)
                await self._discard_engine_job(job.job_id, exc)
                return JobReport.unbuilt(crawl_url)

            job.status = JobStatus.RUNNING
            self.registry.add(job)
            JOB_TRANSITIONS_TOTAL.labels(status=job.status.value).inc()
            await self._persist(job)
        logger.info("Crawl job started", extra={"job_id": job.job_id, "url": crawl_url})
        return JobReport.from_job(job)

    async def pause_job(self, job_id: str) -> Optional[JobReport]:
        return await self._apply(job_id, "pause")

    async def unpause_job(self, job_id: str) -> Optional[JobReport]:
        return await self._apply(job_id, "unpause")

    async def terminate_job(self, job_id: str) -> Optional[JobReport]:
        return await self._apply(job_id, "terminate")

    async def delete_job(self, job_id: str) -> Optional[JobReport]:
        job = self.registry.get(job_id)
        if job is None:
            return None

        async with self._job_locks[job_id]:
            if self.registry.get(job_id) is not job:
                return None
            if job.status in _ACTIVE and not job.is_finished:
                try:
                    await self.engine.terminate(job_id)
                except EngineError as exc:
                    self._engine_failed(exc)
                    return JobReport.from_job(job)
                job.status = JobStatus.TERMINATED
            self.registry.remove(job_id)
            await self._forget(job_id)
        self._job_locks.pop(job_id, None)
        self._drop_url_lock(job.crawl_url)
        logger.info("Crawl job deleted", extra={"job_id": job_id, "url": job.crawl_url})
        return JobReport.from_job(job)

    async def restart_job(self, job_id: str) -> Optional[JobReport]:
        job = self.registry.get(job_id)
        if job is None:
            return None

        async with self._job_locks[job_id]:
            if self.registry.get(job_id) is not job:
                return None
            try:
                await self.engine.teardown(job_id)
            except EngineError as exc:
                # The engine job is usually gone already once a crawl finished.
                self._engine_failed(exc)
            try:
                await self._launch(job_id, seed_urls(job.crawl_url))
            except EngineError as exc:
                self._engine_failed(exc)
                return JobReport.from_job(job)
            job.reset_run()
            JOB_TRANSITIONS_TOTAL.labels(status=job.status.value).inc()
            await self._persist(job)
        logger.info("Crawl job restarted", extra={"job_id": job_id, "url": job.crawl_url})
        return JobReport.from_job(job)

    async def get_job(self, job_id: str) -> Optional[JobReport]:
        """Report a job, detecting and handling the end of its crawl.

        The engine is queried under the job lock, so a status read never
        outlives a restart or delete of the run it describes.
        """

        job = self.registry.get(job_id)
        if job is None:
            return None
        if job.is_finished:
            return JobReport.from_job(job)

        async with self._job_locks[job_id]:
            if self.registry.get(job_id) is not job:
                return None
            if job.is_finished:
                return JobReport.from_job(job)
            try:
                engine_status = await self.engine.status(job_id)
            except EngineError as exc:
                self._engine_failed(exc)
                return JobReport.from_job(job)

            status = JobStatus.from_engine(engine_status)
            if status is not None and status.is_terminal:
                await self._complete(job, status)
            elif status is not None and job.status in _ACTIVE and status is not job.status:
                job.status = status
        return JobReport.from_job(job, engine_status)

    def list_jobs(self) -> List[JobReport]:
        return [JobReport.from_job(job) for job in self.registry.jobs()]

    async def set_report_email(self, job_id: str, email: Optional[str]) -> Optional[JobReport]:
        job = self.registry.get(job_id)
        if job is None:
            return None
        async with self._job_locks[job_id]:
            if self.registry.get(job_id) is not job:
                return None
            job.report_email = email or None
            await self._persist(job)
        logger.info("Email address updated for job", extra={"job_id": job_id})
        return JobReport.from_job(job)

    async def record_office_document(
        self, job_id: Optional[str], file_url: str, last_modified: Optional[str], kind: str
    ) -> None:
        try:
            await self.documents.record_document(file_url, job_id, kind=kind, last_modified=last_modified)
        except Exception:
            logger.exception("Could not record office document", extra={"url": file_url, "kind": kind})
            return
        logger.info("Recorded office document", extra={"url": file_url, "kind": kind, "job_id": job_id})

    async def _apply(self, job_id: str, action: str) -> Optional[JobReport]:
        job = self.registry.get(job_id)
        if job is None:
            return None

        sources, target = _TRANSITIONS[action]
        async with self._job_locks[job_id]:
            if self.registry.get(job_id) is not job:
                return None
            if job.status not in sources or job.is_finished:
                logger.warning(
                    "Ignoring %s for crawl job in status %s", action, job.status.value, extra={"job_id": job_id}
                )
                return JobReport.from_job(job)
            try:
                await getattr(self.engine, action)(job_id)
            except EngineError as exc:
                self._engine_failed(exc)
                return JobReport.from_job(job)
            job.status = target
            JOB_TRANSITIONS_TOTAL.labels(status=target.value).inc()
            await self._persist(job)
        logger.info("Crawl job %s", target.value, extra={"job_id": job_id, "url": job.crawl_url})
        return JobReport.from_job(job)

    async def _launch(self, job_id: str, seeds: List[str]) -> None:
        await self.engine.create(job_id, seeds)
        await self.engine.build(job_id)
        await self.engine.launch(job_id)

    async def _discard_engine_job(self, job_id: str, cause: EngineError) -> None:
        if cause.action == "create":
            return
        try:
            await self.engine.teardown(job_id)
        except EngineError as exc:
            self._engine_failed(exc)

    @asynccontextmanager
    async def _url_guard(self, crawl_url: str) -> AsyncIterator[None]:
        self._url_users[crawl_url] += 1
        try:
            async with self._url_locks[crawl_url]:
                yield
        finally:
            self._url_users[crawl_url] -= 1
            if not self._url_users[crawl_url]:
                del self._url_users[crawl_url]
                if self.registry.find_by_url(crawl_url) is None:
                    self._url_locks.pop(crawl_url, None)

    def _drop_url_lock(self, crawl_url: str) -> None:
        if crawl_url not in self._url_users:
            self._url_locks.pop(crawl_url, None)

    async def _complete(self, job: CrawlJob, status: JobStatus) -> None:
        """Record the end of the current run; the caller holds the job lock."""

        try:
            result_url = await self.engine.result_location(job.job_id)
        except EngineError as exc:
            self._engine_failed(exc)
            result_url = ""
        if not job.mark_finished(status, result_url):
            return
        JOB_TRANSITIONS_TOTAL.labels(status=job.status.value).inc()

        notify = bool(job.report_email) and not job.email_sent
        if notify:
            job.email_sent = True
        await self._persist(job)
        if notify:
            await self._notify(job)

        try:
            await self.engine.teardown(job.job_id)
        except EngineError as exc:
            self._engine_failed(exc)
        logger.info(
            "Crawl job finished",
            extra={"job_id": job.job_id, "status": job.status.value, "result_url": job.result_url},
        )

    async def _notify(self, job: CrawlJob) -> None:
        subject = "Crawl job"
        body = (
            f"Crawl job on {job.crawl_url} was finished with status {job.status.value}\n"
            f"Results are available at {self.report_base_url}jobinfo?id={job.job_id}"
        )
        try:
            await self.notifier.send(job.report_email or "", subject, body)
        except Exception:
            logger.exception("Notification failed", extra={"job_id": job.job_id})

    async def _persist(self, job: CrawlJob) -> None:
        try:
            await self.repository.save_job(job)
        except Exception:
            logger.exception("Could not persist crawl job", extra={"job_id": job.job_id})

    async def _forget(self, job_id: str) -> None:
        try:
            await self.repository.remove_job(job_id)
        except Exception:
            logger.exception("Could not remove crawl job record", extra={"job_id": job_id})

    def _engine_failed(self, exc: EngineError) -> None:
        ENGINE_ERRORS_TOTAL.labels(action=exc.action).inc()
        logger.error("Crawl engine call failed: %s", exc, extra={"job_id": exc.job_id})


__all__ = ["JobManager"]
