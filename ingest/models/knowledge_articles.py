import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.sql import func

from .base import Base, JSONList


class KnowledgeArticle(Base):
    __tablename__ = "knowledge_articles"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(
        Uuid(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = Column(String, nullable=False)
    body = Column(Text, nullable=False, default="")
    tags = Column(JSONList, nullable=False, default=list)
    source_meeting_id = Column(
        Uuid(as_uuid=True), ForeignKey("meeting_documents.id", ondelete="SET NULL"), nullable=True
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())
