"""Initial folder ingest schema"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "20261019_0001_initial_ingest_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    folder_kind = postgresql.ENUM("general", "minutes", name="folder_kind", create_type=False)
    meeting_document_type = postgresql.ENUM("minutes", "agenda", name="meeting_document_type", create_type=False)
    date_confidence = postgresql.ENUM("high", "medium", "low", name="date_confidence", create_type=False)
    meeting_status = postgresql.ENUM("pending", "approved", name="meeting_status", create_type=False)
    for enum in (folder_kind, meeting_document_type, date_confidence, meeting_status):
        enum.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "tenants",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        "storage_connections",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("bucket", sa.String(), nullable=False),
        sa.Column("region", sa.String(), nullable=True),
        sa.Column("endpoint_url", sa.String(), nullable=True),
        sa.Column("access_key_id", sa.String(), nullable=True),
        sa.Column("secret_access_key", sa.String(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        "folder_integrations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False),
        sa.Column("external_folder_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("kind", folder_kind, nullable=False, server_default="general"),
        sa.Column("max_depth", sa.Integer(), nullable=True, server_default="5"),
        sa.Column("school_year", sa.String(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("tenant_id", "external_folder_id", name="uq_folder_integrations_tenant_folder"),
    )
    op.create_index("ix_folder_integrations_tenant_id", "folder_integrations", ["tenant_id"])

    op.create_table(
        "indexed_documents",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False),
        sa.Column("integration_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("folder_integrations.id", ondelete="SET NULL"), nullable=True),
        sa.Column("integration_name", sa.String(), nullable=True),
        sa.Column("external_file_id", sa.String(), nullable=False),
        sa.Column("file_name", sa.String(), nullable=False),
        sa.Column("mime_type", sa.String(), nullable=True),
        sa.Column("parent_folder_id", sa.String(), nullable=True),
        sa.Column("text_content", sa.Text(), nullable=True),
        sa.Column("search_vector", postgresql.TSVECTOR(), nullable=True),
        sa.Column("last_indexed_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("tenant_id", "external_file_id", name="uq_indexed_documents_tenant_file"),
    )
    op.create_index("ix_indexed_documents_tenant_id", "indexed_documents", ["tenant_id"])
    op.create_index(
        "ix_indexed_documents_search_vector", "indexed_documents", ["search_vector"], postgresql_using="gin"
    )

    op.create_table(
        "meeting_documents",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False),
        sa.Column("external_file_id", sa.String(), nullable=False),
        sa.Column("web_url", sa.String(), nullable=True),
        sa.Column("file_name", sa.String(), nullable=False),
        sa.Column("document_type", meeting_document_type, nullable=False, server_default="minutes"),
        sa.Column("meeting_date", sa.Date(), nullable=True),
        sa.Column("meeting_month", sa.Integer(), nullable=True),
        sa.Column("meeting_year", sa.Integer(), nullable=True),
        sa.Column("school_year", sa.String(), nullable=False),
        sa.Column("text_content", sa.Text(), nullable=True),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("key_items", postgresql.JSONB(), nullable=True),
        sa.Column("action_items", postgresql.JSONB(), nullable=True),
        sa.Column("improvements", postgresql.JSONB(), nullable=True),
        sa.Column("tags", postgresql.JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column("extracted_date", sa.Date(), nullable=True),
        sa.Column("date_confidence", date_confidence, nullable=True),
        sa.Column("enriched_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", meeting_status, nullable=False, server_default="pending"),
        sa.Column("approved_by", sa.String(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("tenant_id", "external_file_id", name="uq_meeting_documents_tenant_file"),
    )
    op.create_index("ix_meeting_documents_tenant_id", "meeting_documents", ["tenant_id"])
    op.create_index(
        "ix_meeting_documents_pending_enrichment",
        "meeting_documents",
        ["tenant_id"],
        postgresql_where=sa.text("enriched_at IS NULL"),
    )

    op.create_table(
        "knowledge_articles",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("body", sa.Text(), nullable=False, server_default=""),
        sa.Column("tags", postgresql.JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column("source_meeting_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("meeting_documents.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_knowledge_articles_tenant_id", "knowledge_articles", ["tenant_id"])

    op.create_table(
        "tags",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("display_name", sa.String(), nullable=False),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("tenant_id", "name", name="uq_tags_tenant_name"),
        sa.CheckConstraint("usage_count >= 0", name="ck_tags_usage_count_non_negative"),
    )
    op.create_index("ix_tags_tenant_id", "tags", ["tenant_id"])


def downgrade() -> None:
    op.drop_index("ix_tags_tenant_id", table_name="tags")
    op.drop_table("tags")
    op.drop_index("ix_knowledge_articles_tenant_id", table_name="knowledge_articles")
    op.drop_table("knowledge_articles")
    op.drop_index("ix_meeting_documents_pending_enrichment", table_name="meeting_documents")
    op.drop_index("ix_meeting_documents_tenant_id", table_name="meeting_documents")
    op.drop_table("meeting_documents")
    op.drop_index("ix_indexed_documents_search_vector", table_name="indexed_documents")
    op.drop_index("ix_indexed_documents_tenant_id", table_name="indexed_documents")
    op.drop_table("indexed_documents")
    op.drop_index("ix_folder_integrations_tenant_id", table_name="folder_integrations")
    op.drop_table("folder_integrations")
    op.drop_table("storage_connections")
    op.drop_table("tenants")

    bind = op.get_bind()
    for name in ("meeting_status", "date_confidence", "meeting_document_type", "folder_kind"):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
