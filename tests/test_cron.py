from __future__ import annotations

import uuid

import pytest
from sqlalchemy import select

from ingest.dependencies.cron import get_browser_factory, get_enricher
from ingest.main import app
from ingest.models import FolderKindEnum, IndexedDocument, MeetingDocument


@pytest.fixture()
def overrides(browser_factory, enricher):
    app.dependency_overrides[get_browser_factory] = lambda: browser_factory
    app.dependency_overrides[get_enricher] = lambda: enricher
    yield
    app.dependency_overrides.clear()


@pytest.mark.integration
@pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer wrong"}, {"Authorization": "test-cron-secret"}])
def test_cron_routes_require_the_secret(client, headers):
    for path in ("/cron/index-documents", "/cron/sync-minutes", f"/cron/enrich/{uuid.uuid4()}"):
        response = client.post(path, headers=headers)
        assert response.status_code == 401


@pytest.mark.integration
def test_index_documents_route(client, cron_headers, overrides, db, tenant, make_integration, browser):
    make_integration("root")
    browser.add_file("root", "a", "Budget.txt", text="budget")
    browser.add_file("root", "b", "Minutes.txt", text="minutes")

    response = client.post("/cron/index-documents", headers=cron_headers)

    assert response.status_code == 200
    assert response.json() == {"ok": True, "tenants": 1, "indexed": 2, "errors": 0, "deleted": 0}
    db.expire_all()
    assert {row.external_file_id for row in db.execute(select(IndexedDocument)).scalars()} == {"a", "b"}


@pytest.mark.integration
def test_sync_minutes_route_enriches_new_documents_in_background(
    client, cron_headers, overrides, db, tenant, make_integration, browser, enricher
):
    make_integration("minutes", kind=FolderKindEnum.MINUTES)
    browser.add_file("minutes", "m1", "Minutes 2024-09-10.txt", text="Call to order")
    browser.add_file("minutes", "a1", "Agenda 2024-09-10.txt", text="1. Welcome")

    response = client.post("/cron/sync-minutes", headers=cron_headers)

    assert response.status_code == 200
    assert response.json() == {
        "ok": True,
        "tenants": 1,
        "synced": 1,
        "skipped": 1,
        "errors": 0,
        "enrichment_queued": 1,
    }
    assert enricher.calls == ["Minutes 2024-09-10.txt"]
    db.expire_all()
    doc = db.execute(select(MeetingDocument)).scalar_one()
    assert doc.summary == "A short meeting."
    assert doc.enriched_at is not None


@pytest.mark.integration
def test_enrich_route_runs_pending_documents(client, cron_headers, overrides, db, tenant, enricher):
    db.add(
        MeetingDocument(
            tenant_id=tenant.id,
            external_file_id="m1",
            file_name="Minutes.txt",
            school_year="2024-2025",
            text_content="We met",
        )
    )
    db.commit()

    response = client.post(f"/cron/enrich/{tenant.id}", headers=cron_headers)

    assert response.status_code == 200
    assert response.json() == {"ok": True, "processed": 1, "errors": 0, "total": 1}


@pytest.mark.integration
def test_enrich_route_unknown_tenant(client, cron_headers, overrides):
    response = client.post(f"/cron/enrich/{uuid.uuid4()}", headers=cron_headers)

    assert response.status_code == 404
