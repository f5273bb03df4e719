"""Domain models for crawl jobs and batches."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid

from .ledger import ErrorLedger


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    CREATED = "created"
    RUNNING = "running"
    PAUSED = "paused"
    FINISHED = "finished"
    ABORTED = "aborted"
    TERMINATED = "terminated"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.FINISHED, JobStatus.ABORTED)

    @classmethod
    def from_engine(cls, text: str) -> Optional["JobStatus"]:
        """Map a crawl engine status description such as ``Active: RUNNING``."""

        lowered = text.strip().lower()
        if "aborted" in lowered:
            return cls.ABORTED
        if lowered.startswith("finished"):
            return cls.FINISHED
        if "paus" in lowered:
            return cls.PAUSED
        if "running" in lowered or lowered.startswith("active"):
            return cls.RUNNING
        return None


@dataclass
class CrawlJob:
    job_id: str
    crawl_url: str
    status: JobStatus = JobStatus.CREATED
    start_time: datetime = field(default_factory=utcnow)
    scheduled_date: Optional[date] = None
    finish_time: Optional[datetime] = None
    result_url: str = ""
    report_email: Optional[str] = None
    email_sent: bool = False
    ledger: ErrorLedger = field(default_factory=ErrorLedger, compare=False, repr=False)

    @classmethod
    def create(
        cls, crawl_url: str, report_email: Optional[str] = None, scheduled_date: Optional[date] = None
    ) -> "CrawlJob":
        return cls(
            job_id=str(uuid.uuid4()),
            crawl_url=crawl_url,
            report_email=report_email or None,
            scheduled_date=scheduled_date,
        )

    @property
    def is_finished(self) -> bool:
        return self.finish_time is not None

    def mark_finished(self, status: JobStatus, result_url: str, when: Optional[datetime] = None) -> bool:
        """Record the end of the current run; returns False if it was already recorded."""

        if self.finish_time is not None:
            return False
        self.finish_time = when or utcnow()
        self.result_url = result_url
        if self.status is not JobStatus.TERMINATED:
            self.status = status
        return True

    def reset_run(self) -> None:
        self.status = JobStatus.RUNNING
        self.start_time = utcnow()
        self.finish_time = None
        self.result_url = ""
        self.email_sent = False
        self.ledger.clear()


@dataclass
class JobReport:
    job_id: str
    url: str
    status: str
    start_time: Optional[datetime] = None
    finish_time: Optional[datetime] = None
    result_url: str = ""
    engine_status: Optional[str] = None
    ledger: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_job(cls, job: CrawlJob, engine_status: Optional[str] = None) -> "JobReport":
        return cls(
            job_id=job.job_id,
            url=job.crawl_url,
            status=job.status.value,
            start_time=job.start_time,
            finish_time=job.finish_time,
            result_url=job.result_url,
            engine_status=engine_status,
            ledger=job.ledger.snapshot(),
        )

    @classmethod
    def unbuilt(cls, url: str) -> "JobReport":
        return cls(job_id="", url=url, status="unbuilt")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "url": self.url,
            "status": self.status,
            "start_time": self.start_time,
            "finish_time": self.finish_time,
            "result_url": self.result_url,
            "engine_status": self.engine_status,
            "ledger": self.ledger,
        }


@dataclass
class BatchJob:
    batch_id: str
    report_email: Optional[str]
    member_urls: List[str] = field(default_factory=list)
    finished: bool = False
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def create(cls, report_email: Optional[str]) -> "BatchJob":
        return cls(batch_id=str(uuid.uuid4()), report_email=report_email or None)

    def add_member(self, crawl_url: str) -> None:
        self.member_urls.append(crawl_url)

    def mark_finished(self) -> None:
        self.finished = True


@dataclass
class BatchMember:
    url: str
    job_id: Optional[str]
    status: Optional[str]


@dataclass
class BatchReport:
    batch_id: str
    finished: bool
    members: List[BatchMember]
