"""In-memory registry of tracked crawl jobs and batches."""

from __future__ import annotations

import threading
from typing import Dict, Iterable, List, Optional

from .ledger import ErrorLedger
from .models import BatchJob, CrawlJob


class DuplicateJobError(ValueError):
    pass


class JobRegistry:
    """Owns every tracked ``CrawlJob`` and ``BatchJob``, indexed by id.

    Validation tasks carry only a job id and resolve the ledger here when they
    are processed. The lock only guards dictionary access and is never held
    while talking to the engine or the database.
    """

    def __init__(self, jobs: Iterable[CrawlJob] = ()) -> None:
        self._lock = threading.Lock()
        self._jobs: Dict[str, CrawlJob] = {}
        self._by_url: Dict[str, str] = {}
        self._batches: Dict[str, BatchJob] = {}
        for job in jobs:
            self.add(job)

    def add(self, job: CrawlJob) -> None:
        with self._lock:
            existing = self._by_url.get(job.crawl_url)
            if existing is not None and existing != job.job_id:
                raise DuplicateJobError(f"{job.crawl_url} is already tracked by job {existing}")
            self._jobs[job.job_id] = job
            self._by_url[job.crawl_url] = job.job_id

    def remove(self, job_id: str) -> Optional[CrawlJob]:
        with self._lock:
            job = self._jobs.pop(job_id, None)
            if job is not None and self._by_url.get(job.crawl_url) == job_id:
                del self._by_url[job.crawl_url]
            return job

    def get(self, job_id: str) -> Optional[CrawlJob]:
        with self._lock:
            return self._jobs.get(job_id)

    def find_by_url(self, crawl_url: str) -> Optional[CrawlJob]:
        with self._lock:
            job_id = self._by_url.get(crawl_url)
            return self._jobs.get(job_id) if job_id else None

    def ledger_for(self, job_id: Optional[str]) -> Optional[ErrorLedger]:
        if not job_id:
            return None
        job = self.get(job_id)
        return job.ledger if job else None

    def jobs(self) -> List[CrawlJob]:
        with self._lock:
            return list(self._jobs.values())

    def add_batch(self, batch: BatchJob) -> None:
        with self._lock:
            self._batches[batch.batch_id] = batch

    def get_batch(self, batch_id: str) -> Optional[BatchJob]:
        with self._lock:
            return self._batches.get(batch_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, job_id: object) -> bool:
        with self._lock:
            return job_id in self._jobs


__all__ = ["DuplicateJobError", "JobRegistry"]
