"""Exception hierarchy for the crawl validation service."""

from __future__ import annotations

from typing import Optional


class CrawlServiceError(Exception):
    """Base class for service level errors."""


class EngineError(CrawlServiceError):
    """A call to the crawl engine failed."""

    def __init__(self, action: str, job_id: Optional[str], reason: str) -> None:
        self.action = action
        self.job_id = job_id
        self.reason = reason
        target = f" for job {job_id}" if job_id else ""
        super().__init__(f"Crawl engine {action}{target} failed: {reason}")


class ValidationProtocolError(CrawlServiceError):
    """The validation service did not complete a document."""


class ValidationTimeout(ValidationProtocolError):
    pass


class RetryBudgetExhausted(ValidationProtocolError):
    pass


class UnexpectedServiceStatus(ValidationProtocolError):
    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(f"Invalid response code from validation service, code was {status_code}")


class OrphanedTaskError(CrawlServiceError):
    """A validation task refers to a crawl job that is no longer tracked."""

    def __init__(self, job_id: Optional[str]) -> None:
        self.job_id = job_id
        super().__init__(f"Validation task belongs to untracked crawl job {job_id}")


__all__ = [
    "CrawlServiceError",
    "EngineError",
    "ValidationProtocolError",
    "ValidationTimeout",
    "RetryBudgetExhausted",
    "UnexpectedServiceStatus",
    "OrphanedTaskError",
]
