"""Initial schema for the crawl validation service."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "202601010000"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "crawl_jobs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("crawl_url", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="created"),
        sa.Column("scheduled_date", sa.Date(), nullable=True),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finish_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("result_url", sa.Text(), nullable=False, server_default=""),
        sa.Column("report_email", sa.String(length=255), nullable=True),
        sa.Column("email_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_crawl_jobs_crawl_url", "crawl_jobs", ["crawl_url"])
    op.create_index("ix_crawl_jobs_status", "crawl_jobs", ["status"])

    op.create_table(
        "documents",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("job_id", sa.String(length=36), sa.ForeignKey("crawl_jobs.id", ondelete="CASCADE"), nullable=True),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("kind", sa.String(length=32), nullable=False, server_default="pdf"),
        sa.Column("last_modified", sa.String(length=64), nullable=True),
        sa.Column("is_valid", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("idx_documents_job", "documents", ["job_id"])
    op.create_unique_constraint("uq_documents_url_kind", "documents", ["url", "kind"])

    op.create_table(
        "document_errors",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("document_url", sa.Text(), nullable=False),
        sa.Column("rule_id", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False, server_default=""),
    )
    op.create_index("ix_document_errors_document_url", "document_errors", ["document_url"])

    op.create_table(
        "document_properties",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("document_url", sa.Text(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("value", sa.Text(), nullable=True),
    )
    op.create_index("ix_document_properties_document_url", "document_properties", ["document_url"])

    op.create_table(
        "processing_errors",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("document_url", sa.Text(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_processing_errors_document_url", "processing_errors", ["document_url"])

    op.create_table(
        "pdf_properties",
        sa.Column("name", sa.String(length=255), primary_key=True),
        sa.Column("xpath", sa.Text(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("pdf_properties")
    op.drop_index("ix_processing_errors_document_url", table_name="processing_errors")
    op.drop_table("processing_errors")
    op.drop_index("ix_document_properties_document_url", table_name="document_properties")
    op.drop_table("document_properties")
    op.drop_index("ix_document_errors_document_url", table_name="document_errors")
    op.drop_table("document_errors")
    op.drop_constraint("uq_documents_url_kind", "documents", type_="unique")
    op.drop_index("idx_documents_job", table_name="documents")
    op.drop_table("documents")
    op.drop_index("ix_crawl_jobs_status", table_name="crawl_jobs")
    op.drop_index("ix_crawl_jobs_crawl_url", table_name="crawl_jobs")
    op.drop_table("crawl_jobs")
