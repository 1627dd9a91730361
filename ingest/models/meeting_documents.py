from __future__ import annotations

import uuid
from enum import Enum

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.sql import func

from .base import Base, JSONList


class MeetingStatusEnum(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"


class MeetingDocumentTypeEnum(str, Enum):
    MINUTES = "minutes"
    AGENDA = "agenda"


class DateConfidenceEnum(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def _values(enum_cls):
    return [member.value for member in enum_cls]


class MeetingDocument(Base):
    __tablename__ = "meeting_documents"
    __table_args__ = (
        UniqueConstraint("tenant_id", "external_file_id", name="uq_meeting_documents_tenant_file"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(
        Uuid(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    external_file_id = Column(String, nullable=False)
    web_url = Column(String, nullable=True)
    file_name = Column(String, nullable=False)
    document_type = Column(
        SAEnum(MeetingDocumentTypeEnum, name="meeting_document_type", values_callable=_values),
        nullable=False,
        default=MeetingDocumentTypeEnum.MINUTES,
    )
    meeting_date = Column(Date, nullable=True)
    meeting_month = Column(Integer, nullable=True)  # 1-12
    meeting_year = Column(Integer, nullable=True)
    school_year = Column(String, nullable=False)
    text_content = Column(Text, nullable=True)

    summary = Column(Text, nullable=True)
    key_items = Column(JSONList, nullable=True)
    action_items = Column(JSONList, nullable=True)
    improvements = Column(JSONList, nullable=True)
    tags = Column(JSONList, nullable=False, default=list)
    extracted_date = Column(Date, nullable=True)
    date_confidence = Column(
        SAEnum(DateConfidenceEnum, name="date_confidence", values_callable=_values), nullable=True
    )
    enriched_at = Column(DateTime(timezone=True), nullable=True)

    status = Column(
        SAEnum(MeetingStatusEnum, name="meeting_status", values_callable=_values),
        nullable=False,
        default=MeetingStatusEnum.PENDING,
    )
    approved_by = Column(String, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    last_synced_at = Column(DateTime(timezone=True), server_default=func.now())
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def is_protected(self) -> bool:
        return self.status == MeetingStatusEnum.APPROVED
