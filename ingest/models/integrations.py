from __future__ import annotations

import uuid
from enum import Enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
    true,
)
from sqlalchemy.sql import func

from .base import Base


class FolderKindEnum(str, Enum):
    GENERAL = "general"
    MINUTES = "minutes"


class FolderIntegration(Base):
    __tablename__ = "folder_integrations"
    __table_args__ = (
        UniqueConstraint("tenant_id", "external_folder_id", name="uq_folder_integrations_tenant_folder"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(
        Uuid(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    external_folder_id = Column(String, nullable=False)
    name = Column(String, nullable=True)
    kind = Column(
        SAEnum(FolderKindEnum, name="folder_kind", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=FolderKindEnum.GENERAL,
    )
    max_depth = Column(Integer, nullable=True, default=5)  # 0 = this folder only
    school_year = Column(String, nullable=True)
    active = Column(Boolean, nullable=False, default=True, server_default=true())
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
