"""Batch jobs grouping several independently tracked crawl jobs."""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, List, Optional

from .manager import JobManager
from .models import BatchJob, BatchMember, BatchReport, JobStatus
from .urls import normalize_url

logger = logging.getLogger(__name__)

_DONE = {JobStatus.FINISHED.value, JobStatus.ABORTED.value}


class BatchAggregator:
    def __init__(self, manager: JobManager) -> None:
        self.manager = manager

    async def start_batch(
        self, urls: Iterable[str], report_email: Optional[str] = None, scheduled_date: Optional[date] = None
    ) -> BatchJob:
        batch = BatchJob.create(report_email)
        logger.info("Batch job creation", extra={"batch_id": batch.batch_id})
        for url in urls:
            # start_job never raises; a member that fails to start is simply not tracked
            report = await self.manager.start_job(url, report_email=report_email, scheduled_date=scheduled_date)
            if not report.job_id:
                logger.warning("Batch member did not start", extra={"batch_id": batch.batch_id, "url": url})
            batch.add_member(normalize_url(url))
        self.manager.registry.add_batch(batch)
        return batch

    async def get_batch(self, batch_id: str) -> Optional[BatchReport]:
        batch = self.manager.registry.get_batch(batch_id)
        if batch is None:
            return None

        members: List[BatchMember] = []
        all_done = True
        for url in list(batch.member_urls):
            job = self.manager.registry.find_by_url(url)
            report = await self.manager.get_job(job.job_id) if job is not None else None
            if report is None:
                members.append(BatchMember(url=url, job_id=None, status=None))
                continue
            members.append(BatchMember(url=url, job_id=report.job_id, status=report.status))
            all_done = all_done and report.status in _DONE

        if all_done and not batch.finished:
            batch.mark_finished()
            logger.info("Batch job finished", extra={"batch_id": batch_id})
        return BatchReport(batch_id=batch.batch_id, finished=batch.finished, members=members)


__all__ = ["BatchAggregator"]
