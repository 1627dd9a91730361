from __future__ import annotations

import os
import pathlib
import sys
import threading
import uuid
from typing import Callable, Dict, Iterator, List, Optional

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["ENRICHMENT_BATCH_DELAY_MS"] = "0"
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_REGION", "us-east-1")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlalchemy.orm import Session

ROOT_DIR = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from ingest.db.session import SessionLocal, engine
from ingest.errors import TransientFetchFailure
from ingest.main import app
from ingest.models import Base, FolderIntegration, FolderKindEnum, Tenant
from ingest.services.llm_enrich import Enricher, MeetingAnalysis
from ingest.services.storage import FOLDER_MIME_TYPE, ListingPage, StorageBrowser, StorageItem


# pysqlite does not emit BEGIN itself, which breaks SAVEPOINT handling.
@event.listens_for(engine, "connect")
def _sqlite_connect(dbapi_connection, connection_record) -> None:
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _sqlite_begin(conn) -> None:
    conn.exec_driver_sql("BEGIN")


class FakeStorageBrowser(StorageBrowser):
    """In-memory folder tree with offset page tokens."""

    def __init__(self, page_size: int = 100) -> None:
        self.page_size = page_size
        self.folders: Dict[str, List[StorageItem]] = {}
        self.texts: Dict[str, str] = {}
        self.failing_folders: set[str] = set()
        self.failing_exports: set[str] = set()
        self.list_calls: List[tuple[str, Optional[str]]] = []
        self.export_calls: List[str] = []

    def add_folder(self, parent_id: str, folder_id: str, name: Optional[str] = None) -> str:
        self.folders.setdefault(parent_id, []).append(StorageItem(folder_id, name or folder_id, FOLDER_MIME_TYPE))
        self.folders.setdefault(folder_id, [])
        return folder_id

    def add_file(
        self,
        folder_id: str,
        file_id: str,
        name: Optional[str] = None,
        mime_type: str = "text/plain",
        text: str = "",
    ) -> str:
        self.folders.setdefault(folder_id, []).append(StorageItem(file_id, name or file_id, mime_type))
        self.texts[file_id] = text
        return file_id

    def remove(self, folder_id: str, item_id: str) -> None:
        self.folders[folder_id] = [item for item in self.folders.get(folder_id, []) if item.id != item_id]

    def list_children(self, folder_id: str, page_token: Optional[str] = None) -> ListingPage:
        self.list_calls.append((folder_id, page_token))
        if folder_id in self.failing_folders:
            raise TransientFetchFailure(f"listing {folder_id} failed")
        items = self.folders.get(folder_id, [])
        start = int(page_token or 0)
        end = start + self.page_size
        return ListingPage(items=list(items[start:end]), next_page_token=str(end) if end < len(items) else None)

    def export_text(self, file_id: str, mime_type: str) -> str:
        self.export_calls.append(file_id)
        if file_id in self.failing_exports:
            raise TransientFetchFailure(f"export {file_id} failed")
        return self.texts.get(file_id, "")

    def web_url(self, file_id: str) -> Optional[str]:
        return f"fake://{file_id}"


class FakeEnricher(Enricher):
    """Returns canned analyses keyed by file name; exceptions in ``responses`` are raised."""

    def __init__(self) -> None:
        self.responses: Dict[str, object] = {}
        self.default = MeetingAnalysis(summary="A short meeting.", suggested_tags=["Budget"])
        self.calls: List[str] = []
        self.known_tags_seen: List[List[str]] = []
        self._lock = threading.Lock()

    def analyze(self, text, file_name, known_tags):
        with self._lock:
            self.calls.append(file_name)
            self.known_tags_seen.append(list(known_tags))
        response = self.responses.get(file_name, self.default)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture(autouse=True)
def schema() -> Iterator[None]:
    Base.metadata.create_all(engine)
    yield
    SessionLocal.remove()
    app.dependency_overrides.clear()
    Base.metadata.drop_all(engine)


@pytest.fixture()
def db() -> Iterator[Session]:
    session = Session(bind=engine, expire_on_commit=False)
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture()
def tenant(db: Session) -> Tenant:
    row = Tenant(name="Lincoln Elementary PTA")
    db.add(row)
    db.commit()
    return row


@pytest.fixture()
def make_integration(db: Session, tenant: Tenant) -> Callable[..., FolderIntegration]:
    def _make(folder_id: str = "root", **overrides) -> FolderIntegration:
        values = {
            "tenant_id": tenant.id,
            "external_folder_id": folder_id,
            "name": overrides.pop("name", "Shared Drive"),
            "kind": FolderKindEnum.GENERAL,
            "max_depth": 5,
        }
        values.update(overrides)
        integration = FolderIntegration(**values)
        db.add(integration)
        db.commit()
        return integration

    return _make


@pytest.fixture()
def browser() -> FakeStorageBrowser:
    return FakeStorageBrowser()


@pytest.fixture()
def browser_factory(browser: FakeStorageBrowser) -> Callable[[Session, uuid.UUID], StorageBrowser]:
    return lambda db, tenant_id: browser


@pytest.fixture()
def enricher() -> FakeEnricher:
    return FakeEnricher()


@pytest.fixture()
def client() -> Iterator[TestClient]:
    with TestClient(app) as _client:
        yield _client


@pytest.fixture()
def cron_headers() -> dict[str, str]:
    return {"Authorization": "Bearer test-cron-secret"}
