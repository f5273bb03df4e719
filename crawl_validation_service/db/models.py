"""SQLAlchemy ORM models."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class CrawlJob(Base):
    __tablename__ = "crawl_jobs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    crawl_url: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(32), default="created", index=True)
    scheduled_date: Mapped[Optional[date]] = mapped_column(Date)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    finish_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    result_url: Mapped[str] = mapped_column(Text, default="", nullable=False)
    report_email: Mapped[Optional[str]] = mapped_column(String(255))
    email_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    documents: Mapped[list["Document"]] = relationship(back_populates="job", passive_deletes=True)


class Document(Base):
    __tablename__ = "documents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_id: Mapped[Optional[str]] = mapped_column(ForeignKey("crawl_jobs.id", ondelete="CASCADE"))
    url: Mapped[str] = mapped_column(Text, nullable=False)
    kind: Mapped[str] = mapped_column(String(32), default="pdf", nullable=False)
    last_modified: Mapped[Optional[str]] = mapped_column(String(64))
    is_valid: Mapped[Optional[bool]] = mapped_column(Boolean)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    job: Mapped[Optional[CrawlJob]] = relationship(back_populates="documents")

    __table_args__ = (
        UniqueConstraint("url", "kind", name="uq_documents_url_kind"),
        Index("idx_documents_job", "job_id"),
    )


class DocumentError(Base):
    __tablename__ = "document_errors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    document_url: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    rule_id: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, default="", nullable=False)


class DocumentProperty(Base):
    __tablename__ = "document_properties"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    document_url: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    value: Mapped[Optional[str]] = mapped_column(Text)


class ProcessingError(Base):
    __tablename__ = "processing_errors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    document_url: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class PdfProperty(Base):
    """Property extracted by the validation service, with the XPath that selects it."""

    __tablename__ = "pdf_properties"

    name: Mapped[str] = mapped_column(String(255), primary_key=True)
    xpath: Mapped[str] = mapped_column(Text, nullable=False)


__all__ = ["Base", "CrawlJob", "Document", "DocumentError", "DocumentProperty", "ProcessingError", "PdfProperty"]
