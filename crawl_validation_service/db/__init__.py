"""Database package."""

from .models import Base, CrawlJob, Document, DocumentError, DocumentProperty, PdfProperty, ProcessingError
from .repositories import DocumentRepository, JobRepository, SqlDocumentRepository, SqlJobRepository
from .session import dispose_engine, get_engine, get_sessionmaker, session_scope

__all__ = [
    "Base",
    "CrawlJob",
    "Document",
    "DocumentError",
    "DocumentProperty",
    "PdfProperty",
    "ProcessingError",
    "DocumentRepository",
    "JobRepository",
    "SqlDocumentRepository",
    "SqlJobRepository",
    "dispose_engine",
    "get_engine",
    "get_sessionmaker",
    "session_scope",
]
