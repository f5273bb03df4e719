"""Persistence of crawl jobs and validated documents."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Protocol

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..jobs.models import CrawlJob, JobStatus
from .models import CrawlJob as CrawlJobModel
from .models import Document as DocumentModel
from .models import DocumentError as DocumentErrorModel
from .models import DocumentProperty as DocumentPropertyModel
from .models import PdfProperty as PdfPropertyModel
from .models import ProcessingError as ProcessingErrorModel
from .session import session_scope

logger = logging.getLogger(__name__)


class JobRepository(Protocol):
    async def save_job(self, job: CrawlJob) -> None: ...

    async def remove_job(self, job_id: str) -> None: ...

    async def list_jobs(self) -> List[CrawlJob]: ...


class DocumentRepository(Protocol):
    async def property_selectors(self) -> Dict[str, str]: ...

    async def record_document(
        self,
        url: str,
        job_id: Optional[str],
        *,
        kind: str = "pdf",
        last_modified: Optional[str] = None,
        is_valid: Optional[bool] = None,
    ) -> None: ...

    async def add_error(self, url: str, rule_id: str, message: str) -> None: ...

    async def add_property(self, url: str, name: str, value: Optional[str]) -> None: ...

    async def add_processing_error(self, url: str, message: str) -> None: ...


def _to_domain(row: CrawlJobModel) -> CrawlJob:
    return CrawlJob(
        job_id=row.id,
        crawl_url=row.crawl_url,
        status=JobStatus(row.status),
        start_time=row.start_time,
        scheduled_date=row.scheduled_date,
        finish_time=row.finish_time,
        result_url=row.result_url or "",
        report_email=row.report_email,
        email_sent=row.email_sent,
    )


class SqlJobRepository:
    def __init__(self, sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None) -> None:
        self._sessionmaker = sessionmaker

    async def save_job(self, job: CrawlJob) -> None:
        async with session_scope(self._sessionmaker) as session:
            await session.merge(
                CrawlJobModel(
                    id=job.job_id,
                    crawl_url=job.crawl_url,
                    status=job.status.value,
                    scheduled_date=job.scheduled_date,
                    start_time=job.start_time,
                    finish_time=job.finish_time,
                    result_url=job.result_url,
                    report_email=job.report_email,
                    email_sent=job.email_sent,
                )
            )

    async def remove_job(self, job_id: str) -> None:
        """Delete the job with its documents and their validation results.

        Results are keyed by document URL, so a URL still recorded under another
        job keeps its results.
        """

        owned = select(DocumentModel.url).where(DocumentModel.job_id == job_id)
        shared = select(DocumentModel.url).where(DocumentModel.job_id.is_distinct_from(job_id))
        async with session_scope(self._sessionmaker) as session:
            for model in (DocumentErrorModel, DocumentPropertyModel, ProcessingErrorModel):
                await session.execute(
                    delete(model).where(model.document_url.in_(owned), model.document_url.not_in(shared))
                )
            await session.execute(delete(DocumentModel).where(DocumentModel.job_id == job_id))
            await session.execute(delete(CrawlJobModel).where(CrawlJobModel.id == job_id))

    async def list_jobs(self) -> List[CrawlJob]:
        async with session_scope(self._sessionmaker) as session:
            result = await session.execute(select(CrawlJobModel).order_by(CrawlJobModel.start_time))
            return [_to_domain(row) for row in result.scalars()]


class SqlDocumentRepository:
    def __init__(self, sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None) -> None:
        self._sessionmaker = sessionmaker

    async def property_selectors(self) -> Dict[str, str]:
        async with session_scope(self._sessionmaker) as session:
            result = await session.execute(select(PdfPropertyModel))
            return {row.name: row.xpath for row in result.scalars()}

    async def record_document(
        self,
        url: str,
        job_id: Optional[str],
        *,
        kind: str = "pdf",
        last_modified: Optional[str] = None,
        is_valid: Optional[bool] = None,
    ) -> None:
        async with session_scope(self._sessionmaker) as session:
            document = await session.scalar(
                select(DocumentModel).where(DocumentModel.url == url, DocumentModel.kind == kind)
            )
            if document is None:
                document = DocumentModel(url=url, kind=kind)
                session.add(document)
            document.job_id = job_id
            if last_modified is not None:
                document.last_modified = last_modified
            if is_valid is not None:
                document.is_valid = is_valid

    async def add_error(self, url: str, rule_id: str, message: str) -> None:
        async with session_scope(self._sessionmaker) as session:
            session.add(DocumentErrorModel(document_url=url, rule_id=rule_id, message=message))

    async def add_property(self, url: str, name: str, value: Optional[str]) -> None:
        async with session_scope(self._sessionmaker) as session:
            session.add(DocumentPropertyModel(document_url=url, name=name, value=value))

    async def add_processing_error(self, url: str, message: str) -> None:
        async with session_scope(self._sessionmaker) as session:
            session.add(ProcessingErrorModel(document_url=url, message=message[:5000]))


__all__ = ["DocumentRepository", "JobRepository", "SqlDocumentRepository", "SqlJobRepository"]
