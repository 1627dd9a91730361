from __future__ import annotations

import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..errors import IntegrationFailure
from ..models.integrations import FolderIntegration, FolderKindEnum
from ..models.tenants import Tenant
from .crawler import FileDescriptor, FileFilter, crawl
from .storage import StorageBrowser


def active_tenant_ids(db: Session) -> List[uuid.UUID]:
    return list(db.execute(select(Tenant.id).where(Tenant.active.is_(True)).order_by(Tenant.created_at)).scalars())


def active_integrations(
    db: Session,
    tenant_id: uuid.UUID,
    kind: Optional[FolderKindEnum] = None,
) -> List[FolderIntegration]:
    stmt = select(FolderIntegration).where(
        FolderIntegration.tenant_id == tenant_id,
        FolderIntegration.active.is_(True),
    )
    if kind is not None:
        stmt = stmt.where(FolderIntegration.kind == kind)
    return list(db.execute(stmt.order_by(FolderIntegration.created_at)).scalars())


def max_depth_for(integration: FolderIntegration) -> int:
    if integration.max_depth is None:
        return settings.ingest.default_max_depth
    return integration.max_depth


def crawl_integration(
    browser: StorageBrowser,
    integration: FolderIntegration,
    accept: Optional[FileFilter] = None,
) -> List[FileDescriptor]:
    """Crawl one integration's folder tree; any listing failure fails the whole integration."""
    try:
        return crawl(browser, integration.external_folder_id, 0, max_depth_for(integration), accept)
    except Exception as exc:
        raise IntegrationFailure(
            integration.id, f"Failed to crawl folder {integration.external_folder_id}: {exc}"
        ) from exc
