"""Crawl job orchestration."""

from .ledger import ErrorLedger
from .models import BatchJob, CrawlJob, JobReport, JobStatus
from .registry import JobRegistry

__all__ = ["ErrorLedger", "BatchJob", "CrawlJob", "JobReport", "JobStatus", "JobRegistry"]
