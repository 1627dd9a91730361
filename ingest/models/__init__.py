from .base import Base
from .indexed_documents import IndexedDocument
from .integrations import FolderIntegration, FolderKindEnum
from .knowledge_articles import KnowledgeArticle
from .meeting_documents import (
    DateConfidenceEnum,
    MeetingDocument,
    MeetingDocumentTypeEnum,
    MeetingStatusEnum,
)
from .tags import Tag
from .tenants import StorageConnection, Tenant

__all__ = [
    "Base",
    "DateConfidenceEnum",
    "FolderIntegration",
    "FolderKindEnum",
    "IndexedDocument",
    "KnowledgeArticle",
    "MeetingDocument",
    "MeetingDocumentTypeEnum",
    "MeetingStatusEnum",
    "StorageConnection",
    "Tag",
    "Tenant",
]
