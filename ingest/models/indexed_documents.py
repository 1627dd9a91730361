from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.sql import func

from .base import Base, SearchVector


class IndexedDocument(Base):
    """Cached copy of a remote file; rewritten on every crawl, pruned when the file disappears."""

    __tablename__ = "indexed_documents"
    __table_args__ = (
        UniqueConstraint("tenant_id", "external_file_id", name="uq_indexed_documents_tenant_file"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(
        Uuid(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    integration_id = Column(
        Uuid(as_uuid=True), ForeignKey("folder_integrations.id", ondelete="SET NULL"), nullable=True
    )
    integration_name = Column(String, nullable=True)
    external_file_id = Column(String, nullable=False)
    file_name = Column(String, nullable=False)
    mime_type = Column(String, nullable=True)
    parent_folder_id = Column(String, nullable=True)
    text_content = Column(Text, nullable=True)
    search_vector = Column(SearchVector, nullable=True)  # file name A, integration name B, content C
    last_indexed_at = Column(DateTime(timezone=True), server_default=func.now())
    created_at = Column(DateTime(timezone=True), server_default=func.now())
