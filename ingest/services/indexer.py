from __future__ import annotations

import logging
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..config import settings
from ..errors import ConfigurationMissing, IntegrationFailure, PersistenceFailure
from ..models.indexed_documents import IndexedDocument
from ..models.integrations import FolderIntegration
from .crawler import FileDescriptor
from .extraction import ContentExtractor
from .integrations import active_integrations, active_tenant_ids, crawl_integration
from .metrics import record_errors, record_indexed, record_pruned
from .persistence import row_savepoint
from .search import search_vector_for
from .storage import BrowserFactory, browser_for_tenant

logger = logging.getLogger(__name__)


@dataclass
class IndexResult:
    indexed: int = 0
    errors: int = 0
    deleted: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


def upsert_indexed_document(
    db: Session,
    tenant_id: uuid.UUID,
    external_id: str,
    fields: dict[str, Any],
    *,
    now: Optional[datetime] = None,
) -> IndexedDocument:
    """Insert or fully overwrite the index row keyed by (tenant, external id)."""
    now = now or datetime.now(timezone.utc)
    existing = db.execute(
        select(IndexedDocument).where(
            IndexedDocument.tenant_id == tenant_id,
            IndexedDocument.external_file_id == external_id,
        )
    ).scalar_one_or_none()

    if existing is not None:
        for key, value in fields.items():
            setattr(existing, key, value)
        existing.last_indexed_at = now
        return existing

    document = IndexedDocument(
        tenant_id=tenant_id,
        external_file_id=external_id,
        last_indexed_at=now,
        **fields,
    )
    db.add(document)
    return document


def prune_stale_documents(db: Session, tenant_id: uuid.UUID, seen_ids: Iterable[str]) -> int:
    """Delete index rows whose remote file was not part of the latest crawl."""
    seen = set(seen_ids)
    if not seen:
        return 0
    result = db.execute(
        delete(IndexedDocument)
        .where(
            IndexedDocument.tenant_id == tenant_id,
            IndexedDocument.external_file_id.not_in(seen),
        )
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount or 0


class DocumentIndexer:
    """Crawls every active folder integration of a tenant into the generic index."""

    def __init__(
        self,
        db: Session,
        browser_factory: BrowserFactory = browser_for_tenant,
        *,
        max_chars: Optional[int] = None,
    ) -> None:
        self.db = db
        self.browser_factory = browser_factory
        self.max_chars = max_chars or settings.ingest.index_max_content_chars

    def _fields_for(self, file: FileDescriptor, integration: FolderIntegration, text: Optional[str]) -> dict[str, Any]:
        integration_name = integration.name or ""
        return {
            "file_name": file.name,
            "mime_type": file.mime_type,
            "parent_folder_id": file.parent_folder_id,
            "text_content": text,
            "integration_id": integration.id,
            "integration_name": integration_name,
            "search_vector": search_vector_for(self.db, file.name, integration_name, text),
        }

    def index_one_tenant(self, tenant_id: uuid.UUID) -> IndexResult:
        result = IndexResult()
        try:
            browser = self.browser_factory(self.db, tenant_id)
        except ConfigurationMissing as exc:
            logger.info("Skipping index for tenant %s: %s", tenant_id, exc)
            return result

        integrations = active_integrations(self.db, tenant_id)
        if not integrations:
            return result

        extractor = ContentExtractor(browser, self.max_chars)
        seen: set[str] = set()
        failed_integrations = 0

        for integration in integrations:
            try:
                files = crawl_integration(browser, integration)
            except IntegrationFailure as exc:
                logger.exception("Integration %s failed: %s", exc.integration_id, exc)
                failed_integrations += 1
                result.errors += 1
                continue

            for file in files:
                if file.id in seen:
                    continue  # reachable from more than one integration
                seen.add(file.id)
                text = extractor.extract(file.id, file.mime_type)
                try:
                    with row_savepoint(self.db):
                        upsert_indexed_document(
                            self.db, tenant_id, file.id, self._fields_for(file, integration, text)
                        )
                except PersistenceFailure as exc:
                    logger.warning("Failed to index %s (%s): %s", file.name, file.id, exc)
                    result.errors += 1
                    continue
                result.indexed += 1

        if failed_integrations:
            logger.warning(
                "Not pruning index for tenant %s: %s integration(s) failed to crawl", tenant_id, failed_integrations
            )
        else:
            result.deleted = prune_stale_documents(self.db, tenant_id, seen)

        record_indexed(tenant_id, result.indexed)
        record_pruned(tenant_id, result.deleted)
        record_errors("index", result.errors)
        logger.info("Indexed tenant %s: %s", tenant_id, result.as_dict())
        return result


def index_all_tenants(db: Session, browser_factory: BrowserFactory = browser_for_tenant) -> dict[str, int]:
    """Index every active tenant one after the other; a failing tenant is counted and skipped."""
    tenant_ids = active_tenant_ids(db)
    totals = {"tenants": len(tenant_ids), "indexed": 0, "errors": 0, "deleted": 0}
    indexer = DocumentIndexer(db, browser_factory)

    for tenant_id in tenant_ids:
        try:
            result = indexer.index_one_tenant(tenant_id)
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Failed to index tenant %s", tenant_id)
            totals["errors"] += 1
            continue
        totals["indexed"] += result.indexed
        totals["errors"] += result.errors
        totals["deleted"] += result.deleted

    return totals
