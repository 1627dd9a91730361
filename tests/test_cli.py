from __future__ import annotations

from sqlalchemy import select
from typer.testing import CliRunner

from ingest.cli import app
from ingest.models import FolderIntegration, FolderKindEnum, IndexedDocument, StorageConnection, Tenant

runner = CliRunner()


def test_add_integration_creates_tenant_connection_and_integration(db):
    result = runner.invoke(
        app,
        ["add-integration", "Lincoln PTA", "minutes/", "--bucket", "pta-drive", "--kind", "minutes", "--school-year", "2024-2025"],
    )

    assert result.exit_code == 0, result.output
    tenant = db.execute(select(Tenant)).scalar_one()
    assert tenant.name == "Lincoln PTA"
    assert db.execute(select(StorageConnection)).scalar_one().bucket == "pta-drive"
    integration = db.execute(select(FolderIntegration)).scalar_one()
    assert integration.kind == FolderKindEnum.MINUTES
    assert integration.school_year == "2024-2025"
    assert integration.name == "minutes/"


def test_add_integration_needs_a_bucket_for_new_tenants(db):
    result = runner.invoke(app, ["add-integration", "Lincoln PTA", "minutes/"])

    assert result.exit_code != 0
    assert db.execute(select(Tenant)).scalars().all() == []


def test_search_prints_ranked_hits(db, tenant):
    db.add(IndexedDocument(tenant_id=tenant.id, external_file_id="a", file_name="Budget.txt", text_content="budget"))
    db.commit()

    result = runner.invoke(app, ["search", str(tenant.id), "budget"])

    assert result.exit_code == 0, result.output
    assert "Budget.txt\ta" in result.output
