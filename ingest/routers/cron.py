from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..db.session import session_scope
from ..dependencies.cron import get_browser_factory, get_enricher, require_cron_secret
from ..dependencies.db import get_db
from ..models.tenants import Tenant
from ..services.enrichment import enrich_tenant
from ..services.indexer import index_all_tenants
from ..services.llm_enrich import Enricher
from ..services.minutes_sync import SyncResult, sync_all_tenants
from ..services.storage import BrowserFactory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", dependencies=[Depends(require_cron_secret)])


def _enrich_in_background(tenant_id: str, document_ids: List[str], enricher: Enricher) -> None:
    try:
        with session_scope() as db:
            result = enrich_tenant(db, uuid.UUID(tenant_id), enricher, [uuid.UUID(value) for value in document_ids])
        logger.info("Background enrichment for tenant %s: %s", tenant_id, result.as_dict())
    except Exception:
        logger.exception("Background enrichment failed for tenant %s", tenant_id)


@router.post("/index-documents")
def run_index(
    db: Session = Depends(get_db),
    browser_factory: BrowserFactory = Depends(get_browser_factory),
) -> Dict[str, Any]:
    return {"ok": True, **index_all_tenants(db, browser_factory)}


@router.post("/sync-minutes")
def run_sync(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    browser_factory: BrowserFactory = Depends(get_browser_factory),
    enricher: Enricher = Depends(get_enricher),
) -> Dict[str, Any]:
    pending: Dict[str, List[str]] = {}

    def collect(tenant_id: uuid.UUID, result: SyncResult) -> None:
        if result.pending_ids:
            pending[str(tenant_id)] = [str(document_id) for document_id in result.pending_ids]

    totals = sync_all_tenants(db, browser_factory, on_synced=collect)

    for tenant_id, document_ids in pending.items():
        background_tasks.add_task(_enrich_in_background, tenant_id, document_ids, enricher)

    return {"ok": True, **totals, "enrichment_queued": sum(len(ids) for ids in pending.values())}


@router.post("/enrich/{tenant_id}")
def run_enrich(
    tenant_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    enricher: Enricher = Depends(get_enricher),
) -> Dict[str, Any]:
    request.state.tenant_id = str(tenant_id)
    if db.get(Tenant, tenant_id) is None:
        raise HTTPException(status_code=404, detail="Tenant not found")

    result = enrich_tenant(db, tenant_id, enricher)
    db.commit()
    return {"ok": True, **result.as_dict()}
