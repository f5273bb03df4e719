import asyncio
from datetime import date
from pathlib import Path

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from crawl_validation_service.db.models import Base, Document, DocumentError, DocumentProperty, PdfProperty, ProcessingError
from crawl_validation_service.db.repositories import SqlDocumentRepository, SqlJobRepository
from crawl_validation_service.db.session import session_scope
from crawl_validation_service.jobs.models import CrawlJob, JobStatus


async def make_sessionmaker(tmp_path: Path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)
    return engine, async_sessionmaker(bind=engine, expire_on_commit=False)


def test_job_repository_round_trip(tmp_path: Path):
    job = CrawlJob.create("https://example.com", report_email="ops@example.com", scheduled_date=date(2024, 5, 1))
    job.status = JobStatus.RUNNING

    async def scenario():
        engine, sessionmaker = await make_sessionmaker(tmp_path)
        repository = SqlJobRepository(sessionmaker)
        try:
            await repository.save_job(job)
            job.mark_finished(JobStatus.FINISHED, "https://result/")
            job.email_sent = True
            await repository.save_job(job)
            stored = await repository.list_jobs()
            await repository.remove_job(job.job_id)
            remaining = await repository.list_jobs()
        finally:
            await engine.dispose()
        return stored, remaining

    stored, remaining = asyncio.run(scenario())

    assert len(stored) == 1
    restored = stored[0]
    assert restored.job_id == job.job_id
    assert restored.status is JobStatus.FINISHED
    assert restored.result_url == "https://result/"
    assert restored.scheduled_date == date(2024, 5, 1)
    assert restored.email_sent is True
    assert restored.is_finished
    assert remaining == []


def test_document_repository_records_results(tmp_path: Path):
    async def scenario():
        engine, sessionmaker = await make_sessionmaker(tmp_path)
        repository = SqlDocumentRepository(sessionmaker)
        try:
            async with session_scope(sessionmaker) as session:
                session.add(PdfProperty(name="Producer", xpath="//producer"))
            selectors = await repository.property_selectors()

            url = "https://example.com/a.pdf"
            await repository.record_document(url, None, last_modified="yesterday")
            await repository.record_document(url, None, is_valid=False)
            await repository.record_document("https://example.com/a.docx", None, kind="microsoft_office")
            await repository.add_error(url, "ISO 19005-1-6.1.2-1", "Header")
            await repository.add_property(url, "Producer", "LaTeX")
            await repository.add_processing_error(url, "timeout")

            async with session_scope(sessionmaker) as session:
                documents = (await session.execute(select(Document).order_by(Document.id))).scalars().all()
                errors = (await session.execute(select(DocumentError))).scalars().all()
        finally:
            await engine.dispose()
        return selectors, documents, errors

    selectors, documents, errors = asyncio.run(scenario())

    assert selectors == {"Producer": "//producer"}
    assert [(doc.url, doc.kind) for doc in documents] == [
        ("https://example.com/a.pdf", "pdf"),
        ("https://example.com/a.docx", "microsoft_office"),
    ]
    assert documents[0].last_modified == "yesterday"
    assert documents[0].is_valid is False
    assert [(error.rule_id, error.message) for error in errors] == [("ISO 19005-1-6.1.2-1", "Header")]


def test_remove_job_deletes_its_documents_and_their_results(tmp_path: Path):
    removed = CrawlJob.create("https://example.com")
    kept = CrawlJob.create("https://example.org")

    async def scenario():
        engine, sessionmaker = await make_sessionmaker(tmp_path)
        jobs = SqlJobRepository(sessionmaker)
        documents = SqlDocumentRepository(sessionmaker)
        try:
            await jobs.save_job(removed)
            await jobs.save_job(kept)
            await documents.record_document("https://example.com/a.pdf", removed.job_id)
            await documents.record_document("https://example.com/shared.pdf", removed.job_id)
            await documents.record_document("https://example.com/shared.pdf", kept.job_id, kind="microsoft_office")
            await documents.record_document("https://example.org/b.pdf", kept.job_id)
            for url in ("https://example.com/a.pdf", "https://example.com/shared.pdf", "https://example.org/b.pdf"):
                await documents.add_error(url, "6.1.2-1", "Header")
                await documents.add_property(url, "Producer", "LaTeX")
                await documents.add_processing_error(url, "timeout")

            await jobs.remove_job(removed.job_id)

            async with session_scope(sessionmaker) as session:
                remaining_documents = (await session.execute(select(Document.url, Document.job_id))).all()
                result_urls = {
                    model.__name__: sorted((await session.execute(select(model.document_url))).scalars())
                    for model in (DocumentError, DocumentProperty, ProcessingError)
                }
            stored = await jobs.list_jobs()
        finally:
            await engine.dispose()
        return remaining_documents, result_urls, stored

    remaining_documents, result_urls, stored = asyncio.run(scenario())

    assert sorted(remaining_documents) == [
        ("https://example.com/shared.pdf", kept.job_id),
        ("https://example.org/b.pdf", kept.job_id),
    ]
    for urls in result_urls.values():
        assert urls == ["https://example.com/shared.pdf", "https://example.org/b.pdf"]
    assert [job.job_id for job in stored] == [kept.job_id]
