from __future__ import annotations

import json
import uuid
from typing import Optional

import typer
from sqlalchemy import select

from .db.session import SessionLocal
from .models import FolderIntegration, FolderKindEnum, StorageConnection, Tenant
from .services.enrichment import enrich_all_tenants, enrich_tenant
from .services.indexer import DocumentIndexer, index_all_tenants
from .services.minutes_sync import MinutesSync, sync_all_tenants
from .services.search import search_index
from .services.tags import TagLedger

app = typer.Typer(help="Folder ingest administrative CLI")


def _echo_json(payload: dict) -> None:
    typer.echo(json.dumps(payload, default=str))


def _tenant_uuid(value: Optional[str]) -> Optional[uuid.UUID]:
    if value is None:
        return None
    try:
        return uuid.UUID(value)
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid tenant id: {value}") from exc


@app.command()
def index(tenant_id: Optional[str] = typer.Argument(None, help="Tenant id; all active tenants when omitted")) -> None:
    """Crawl folder integrations into the generic document index."""
    tenant_uuid = _tenant_uuid(tenant_id)
    db = SessionLocal()
    try:
        if tenant_uuid is None:
            _echo_json(index_all_tenants(db))
            return
        result = DocumentIndexer(db).index_one_tenant(tenant_uuid)
        db.commit()
        _echo_json(result.as_dict())
    finally:
        db.close()


@app.command()
def sync(tenant_id: Optional[str] = typer.Argument(None, help="Tenant id; all active tenants when omitted")) -> None:
    """Mirror minutes folders into meeting documents."""
    tenant_uuid = _tenant_uuid(tenant_id)
    db = SessionLocal()
    try:
        if tenant_uuid is None:
            _echo_json(sync_all_tenants(db))
            return
        result = MinutesSync(db).sync_one_tenant(tenant_uuid)
        db.commit()
        _echo_json(result.as_dict())
    finally:
        db.close()


@app.command()
def enrich(tenant_id: Optional[str] = typer.Argument(None, help="Tenant id; all active tenants when omitted")) -> None:
    """Run AI enrichment over meeting documents that have not been analysed yet."""
    tenant_uuid = _tenant_uuid(tenant_id)
    db = SessionLocal()
    try:
        if tenant_uuid is None:
            _echo_json(enrich_all_tenants(db))
            return
        result = enrich_tenant(db, tenant_uuid)
        db.commit()
        _echo_json(result.as_dict())
    finally:
        db.close()


@app.command("merge-tags")
def merge_tags(
    tenant_id: str = typer.Argument(...),
    source_id: str = typer.Argument(..., help="Tag to fold away"),
    target_id: str = typer.Argument(..., help="Tag that survives"),
) -> None:
    """Fold one tag into another across all tagged content."""
    db = SessionLocal()
    try:
        result = TagLedger(db).merge(_tenant_uuid(tenant_id), uuid.UUID(source_id), uuid.UUID(target_id))
        db.commit()
        typer.echo(f"Merged into target on {result.merged_count} records (usage {result.target_usage_count})")
    finally:
        db.close()


@app.command("add-integration")
def add_integration(
    tenant_name: str = typer.Argument(..., help="Tenant name; created when missing"),
    folder: str = typer.Argument(..., help="Folder id (key prefix) inside the bucket"),
    bucket: Optional[str] = typer.Option(None, "--bucket", "-b", help="Storage bucket for a new connection"),
    name: str = typer.Option("", "--name", "-n", help="Display name of the integration"),
    kind: FolderKindEnum = typer.Option(FolderKindEnum.GENERAL, "--kind", "-k", show_default=True),
    max_depth: int = typer.Option(5, "--max-depth", show_default=True),
    school_year: Optional[str] = typer.Option(None, "--school-year"),
) -> None:
    """Register a folder integration, creating the tenant and storage connection as needed."""
    db = SessionLocal()
    try:
        tenant = db.execute(select(Tenant).where(Tenant.name == tenant_name)).scalar_one_or_none()
        if tenant is None:
            tenant = Tenant(name=tenant_name)
            db.add(tenant)
            db.flush()

        connection = db.execute(
            select(StorageConnection).where(StorageConnection.tenant_id == tenant.id)
        ).scalar_one_or_none()
        if connection is None:
            if not bucket:
                raise typer.BadParameter("--bucket is required for a tenant without a storage connection")
            db.add(StorageConnection(tenant_id=tenant.id, bucket=bucket))
        elif bucket:
            connection.bucket = bucket

        integration = db.execute(
            select(FolderIntegration).where(
                FolderIntegration.tenant_id == tenant.id,
                FolderIntegration.external_folder_id == folder,
            )
        ).scalar_one_or_none()
        if integration is None:
            integration = FolderIntegration(tenant_id=tenant.id, external_folder_id=folder)
            db.add(integration)
        integration.name = name or folder
        integration.kind = kind
        integration.max_depth = max_depth
        integration.school_year = school_year
        integration.active = True

        db.commit()
        typer.echo(f"Integration {integration.id} ({kind.value}) registered for tenant {tenant.name} ({tenant.id})")
    finally:
        db.close()


@app.command()
def search(
    tenant_id: str = typer.Argument(...),
    query: str = typer.Argument(...),
    limit: int = typer.Option(20, "--limit", "-l", show_default=True),
) -> None:
    """Full-text search over a tenant's document index."""
    db = SessionLocal()
    try:
        for hit in search_index(db, _tenant_uuid(tenant_id), query, limit):
            typer.echo(f"{hit.rank:.3f}\t{hit.document.file_name}\t{hit.document.external_file_id}")
    finally:
        db.close()


if __name__ == "__main__":
    app()
