from __future__ import annotations

import logging
import time
import uuid
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, Iterator, List, Optional, Sequence, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..errors import PersistenceFailure
from ..models.meeting_documents import MeetingDocument, MeetingStatusEnum
from .integrations import active_tenant_ids
from .llm_enrich import Enricher, MeetingAnalysis, get_enricher
from .metadata import ParsedDate, merge_ai_date
from .metrics import record_enrichment, record_errors
from .persistence import row_savepoint
from .tags import TagLedger, unique_tags

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class EnrichmentResult:
    processed: int = 0
    errors: int = 0
    total: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class EnrichmentJob:
    document_id: uuid.UUID
    file_name: str
    text: str


def batched(items: Sequence[T], size: int) -> Iterator[List[T]]:
    if size < 1:
        raise ValueError("batch size must be positive")
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


def pending_documents(
    db: Session,
    tenant_id: uuid.UUID,
    document_ids: Optional[Iterable[uuid.UUID]] = None,
) -> List[MeetingDocument]:
    """Unenriched, unapproved documents that have text to analyse."""
    stmt = select(MeetingDocument).where(
        MeetingDocument.tenant_id == tenant_id,
        MeetingDocument.enriched_at.is_(None),
        MeetingDocument.status != MeetingStatusEnum.APPROVED,
        MeetingDocument.text_content.isnot(None),
        MeetingDocument.text_content != "",
    )
    if document_ids is not None:
        stmt = stmt.where(MeetingDocument.id.in_(list(document_ids)))
    return list(db.execute(stmt.order_by(MeetingDocument.created_at, MeetingDocument.file_name)).scalars())


def apply_analysis(document: MeetingDocument, analysis: MeetingAnalysis, *, now: Optional[datetime] = None) -> None:
    document.summary = analysis.summary
    document.key_items = list(analysis.key_items)
    document.action_items = list(analysis.action_items)
    document.improvements = list(analysis.improvements)
    document.tags = unique_tags(analysis.suggested_tags)
    document.extracted_date = analysis.extracted_date
    document.date_confidence = analysis.date_confidence
    document.enriched_at = now or datetime.now(timezone.utc)

    current = ParsedDate(
        date=document.meeting_date,
        month=document.meeting_month,
        year=document.meeting_year,
    )
    merged = merge_ai_date(current, analysis.extracted_date, analysis.date_confidence)
    if merged is not current:
        document.meeting_date = merged.date
        document.meeting_month = merged.month
        document.meeting_year = merged.year


class EnrichmentScheduler:
    """Runs the enricher over pending documents in fixed-size concurrent batches.

    Each batch is a join barrier: every call in it finishes (or fails) before
    results are written and before the next batch starts. Between batches the
    scheduler sleeps ``delay_seconds``. Each batch is committed before the sleep,
    so a pass interrupted later keeps the batches already written. Failed items
    stay unenriched for the next pass; nothing is retried within a pass.
    """

    def __init__(
        self,
        db: Session,
        enricher: Enricher,
        *,
        batch_size: Optional[int] = None,
        delay_seconds: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
        ledger: Optional[TagLedger] = None,
    ) -> None:
        self.db = db
        self.enricher = enricher
        self.batch_size = batch_size or settings.ingest.enrichment_batch_size
        if delay_seconds is None:
            delay_seconds = settings.ingest.enrichment_batch_delay_ms / 1000
        self.delay_seconds = delay_seconds
        self.sleep = sleep
        self.ledger = ledger or TagLedger(db)

    def _store(self, tenant_id: uuid.UUID, job: EnrichmentJob, analysis: MeetingAnalysis) -> None:
        with row_savepoint(self.db):
            document = self.db.get(MeetingDocument, job.document_id)
            if document is None:
                raise PersistenceFailure(f"Meeting document {job.document_id} disappeared")
            apply_analysis(document, analysis)
            if analysis.suggested_tags:
                self.ledger.ensure_exist(tenant_id, analysis.suggested_tags)

    def run(
        self,
        tenant_id: uuid.UUID,
        document_ids: Optional[Iterable[uuid.UUID]] = None,
    ) -> EnrichmentResult:
        jobs = [
            EnrichmentJob(document_id=doc.id, file_name=doc.file_name, text=doc.text_content)
            for doc in pending_documents(self.db, tenant_id, document_ids)
        ]
        result = EnrichmentResult(total=len(jobs))
        if not jobs:
            return result

        known_tags = self.ledger.known_names(tenant_id)
        batches = list(batched(jobs, self.batch_size))

        with ThreadPoolExecutor(max_workers=self.batch_size, thread_name_prefix="enrich") as pool:
            for index, batch in enumerate(batches):
                futures = [
                    (job, pool.submit(self.enricher.analyze, job.text, job.file_name, known_tags)) for job in batch
                ]
                wait([future for _, future in futures])

                for job, future in futures:
                    try:
                        analysis = future.result()
                    except Exception as exc:
                        logger.warning("Enrichment failed for %s (%s): %s", job.file_name, job.document_id, exc)
                        result.errors += 1
                        continue
                    try:
                        self._store(tenant_id, job, analysis)
                    except PersistenceFailure as exc:
                        logger.warning("Failed to store enrichment for %s: %s", job.document_id, exc)
                        result.errors += 1
                        continue
                    result.processed += 1

                self.db.commit()

                if index < len(batches) - 1:
                    self.sleep(self.delay_seconds)

        record_enrichment(tenant_id, result.processed, result.errors)
        record_errors("enrichment", result.errors)
        logger.info("Enriched tenant %s: %s", tenant_id, result.as_dict())
        return result


def enrich_tenant(
    db: Session,
    tenant_id: uuid.UUID,
    enricher: Optional[Enricher] = None,
    document_ids: Optional[Iterable[uuid.UUID]] = None,
) -> EnrichmentResult:
    return EnrichmentScheduler(db, enricher or get_enricher()).run(tenant_id, document_ids)


def enrich_all_tenants(db: Session, enricher: Optional[Enricher] = None) -> dict[str, int]:
    enricher = enricher or get_enricher()
    tenant_ids = active_tenant_ids(db)
    totals = {"tenants": len(tenant_ids), "processed": 0, "errors": 0, "total": 0}

    for tenant_id in tenant_ids:
        try:
            result = enrich_tenant(db, tenant_id, enricher)
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Failed to enrich tenant %s", tenant_id)
            totals["errors"] += 1
            continue
        totals["processed"] += result.processed
        totals["errors"] += result.errors
        totals["total"] += result.total

    return totals
