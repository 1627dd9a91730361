from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..errors import ConfigurationMissing, IntegrationFailure, PersistenceFailure
from ..models.integrations import FolderIntegration, FolderKindEnum
from ..models.meeting_documents import MeetingDocument, MeetingDocumentTypeEnum
from .crawler import FileDescriptor
from .extraction import MINUTES_MIME_TYPES, ContentExtractor
from .integrations import active_integrations, active_tenant_ids, crawl_integration
from .metadata import classify_document_type, parse_meeting_date
from .metrics import record_errors, record_synced
from .persistence import row_savepoint
from .storage import BrowserFactory, StorageBrowser, StorageItem, browser_for_tenant

logger = logging.getLogger(__name__)


class UpsertOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    PROTECTED = "protected"


@dataclass
class SyncResult:
    synced: int = 0
    skipped: int = 0
    errors: int = 0
    seen: set[str] = field(default_factory=set, repr=False)
    pending_ids: list[uuid.UUID] = field(default_factory=list, repr=False)

    def as_dict(self) -> dict[str, int]:
        return {"synced": self.synced, "skipped": self.skipped, "errors": self.errors}


def _find_meeting_document(db: Session, tenant_id: uuid.UUID, external_id: str) -> Optional[MeetingDocument]:
    return db.execute(
        select(MeetingDocument).where(
            MeetingDocument.tenant_id == tenant_id,
            MeetingDocument.external_file_id == external_id,
        )
    ).scalar_one_or_none()


def upsert_meeting_document(
    db: Session,
    tenant_id: uuid.UUID,
    external_id: str,
    fields: dict[str, Any],
    *,
    now: Optional[datetime] = None,
) -> tuple[MeetingDocument, UpsertOutcome]:
    """Create or refresh a meeting document; approved records are returned untouched."""
    now = now or datetime.now(timezone.utc)
    existing = _find_meeting_document(db, tenant_id, external_id)

    if existing is None:
        document = MeetingDocument(
            tenant_id=tenant_id,
            external_file_id=external_id,
            last_synced_at=now,
            **fields,
        )
        db.add(document)
        return document, UpsertOutcome.CREATED

    if existing.is_protected:
        return existing, UpsertOutcome.PROTECTED

    if "text_content" in fields and fields["text_content"] != existing.text_content:
        existing.enriched_at = None  # content changed, enrich again
    for key, value in fields.items():
        setattr(existing, key, value)
    existing.last_synced_at = now
    return existing, UpsertOutcome.UPDATED


def _is_minutes_candidate(item: StorageItem) -> bool:
    return item.mime_type in MINUTES_MIME_TYPES


class MinutesSync:
    """Mirrors the tenant's ``minutes`` folders into meeting documents.

    Agenda files are left to the generic index. Approved documents are never
    re-exported or rewritten, but still count as seen. Nothing is deleted here;
    removing a meeting document is an explicit user action.
    """

    def __init__(
        self,
        db: Session,
        browser_factory: BrowserFactory = browser_for_tenant,
        *,
        max_chars: Optional[int] = None,
    ) -> None:
        self.db = db
        self.browser_factory = browser_factory
        self.max_chars = max_chars or settings.ingest.minutes_max_content_chars

    def _fields_for(
        self,
        browser: StorageBrowser,
        integration: FolderIntegration,
        file: FileDescriptor,
        text: Optional[str],
    ) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "file_name": file.name,
            "web_url": browser.web_url(file.id),
            "document_type": MeetingDocumentTypeEnum.MINUTES,
            "school_year": integration.school_year or settings.ingest.current_school_year,
            "text_content": text,
        }
        parsed = parse_meeting_date(file.name, text)
        if parsed.found:
            # an empty heuristic result keeps whatever date is already stored
            fields.update(meeting_date=parsed.date, meeting_month=parsed.month, meeting_year=parsed.year)
        return fields

    def sync_one_tenant(self, tenant_id: uuid.UUID) -> SyncResult:
        result = SyncResult()
        try:
            browser = self.browser_factory(self.db, tenant_id)
        except ConfigurationMissing as exc:
            logger.info("Skipping minutes sync for tenant %s: %s", tenant_id, exc)
            return result

        integrations = active_integrations(self.db, tenant_id, kind=FolderKindEnum.MINUTES)
        if not integrations:
            return result

        extractor = ContentExtractor(browser, self.max_chars)

        for integration in integrations:
            try:
                files = crawl_integration(browser, integration, accept=_is_minutes_candidate)
            except IntegrationFailure as exc:
                logger.exception("Minutes integration %s failed: %s", exc.integration_id, exc)
                result.errors += 1
                continue

            for file in files:
                if file.id in result.seen:
                    continue
                result.seen.add(file.id)

                if classify_document_type(file.name) == MeetingDocumentTypeEnum.AGENDA:
                    result.skipped += 1
                    continue

                existing = _find_meeting_document(self.db, tenant_id, file.id)
                if existing is not None and existing.is_protected:
                    result.skipped += 1
                    continue

                text = extractor.extract(file.id, file.mime_type)
                try:
                    with row_savepoint(self.db):
                        document, outcome = upsert_meeting_document(
                            self.db, tenant_id, file.id, self._fields_for(browser, integration, file, text)
                        )
                except PersistenceFailure as exc:
                    logger.warning("Failed to sync minutes file %s (%s): %s", file.name, file.id, exc)
                    result.errors += 1
                    continue

                if outcome == UpsertOutcome.PROTECTED:
                    result.skipped += 1
                    continue
                result.synced += 1
                if document.enriched_at is None and document.text_content:
                    result.pending_ids.append(document.id)

        record_synced(tenant_id, result.synced, result.skipped)
        record_errors("minutes_sync", result.errors)
        logger.info("Synced minutes for tenant %s: %s", tenant_id, result.as_dict())
        return result


def sync_all_tenants(
    db: Session,
    browser_factory: BrowserFactory = browser_for_tenant,
    on_synced: Optional[Callable[[uuid.UUID, SyncResult], None]] = None,
) -> dict[str, int]:
    """Sync every active tenant; ``on_synced`` sees each committed tenant result."""
    tenant_ids = active_tenant_ids(db)
    totals = {"tenants": len(tenant_ids), "synced": 0, "skipped": 0, "errors": 0}
    syncer = MinutesSync(db, browser_factory)

    for tenant_id in tenant_ids:
        try:
            result = syncer.sync_one_tenant(tenant_id)
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Failed to sync minutes for tenant %s", tenant_id)
            totals["errors"] += 1
            continue
        totals["synced"] += result.synced
        totals["skipped"] += result.skipped
        totals["errors"] += result.errors
        if on_synced is not None:
            on_synced(tenant_id, result)

    return totals
