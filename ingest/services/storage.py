from __future__ import annotations

import mimetypes
import uuid
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, Callable, Optional
from urllib.parse import quote

from botocore.exceptions import BotoCoreError, ClientError
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..errors import ConfigurationMissing, TransientFetchFailure, UnsupportedExport
from ..models.tenants import StorageConnection
from .aws import boto3_client
from .parse_docx import extract_text_from_docx
from .parse_pdf import extract_text_from_pdf

FOLDER_MIME_TYPE = "inode/directory"
PDF_MIME_TYPE = "application/pdf"
DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

_EXTENSION_OVERRIDES = {
    ".md": "text/markdown",
    ".markdown": "text/markdown",
    ".csv": "text/csv",
    ".txt": "text/plain",
    ".pdf": PDF_MIME_TYPE,
    ".docx": DOCX_MIME_TYPE,
}


@dataclass(frozen=True)
class StorageItem:
    id: str
    name: str
    mime_type: str

    @property
    def is_folder(self) -> bool:
        return self.mime_type == FOLDER_MIME_TYPE


@dataclass
class ListingPage:
    items: list[StorageItem] = field(default_factory=list)
    next_page_token: Optional[str] = None


class StorageBrowser:
    """Read-only view of a tenant's remote folder tree."""

    def list_children(self, folder_id: str, page_token: Optional[str] = None) -> ListingPage:  # pragma: no cover - interface
        raise NotImplementedError

    def export_text(self, file_id: str, mime_type: str) -> str:  # pragma: no cover - interface
        raise NotImplementedError

    def web_url(self, file_id: str) -> Optional[str]:
        return None


BrowserFactory = Callable[[Session, uuid.UUID], StorageBrowser]


def guess_mime_type(name: str) -> str:
    suffix = PurePosixPath(name).suffix.lower()
    if suffix in _EXTENSION_OVERRIDES:
        return _EXTENSION_OVERRIDES[suffix]
    guessed, _ = mimetypes.guess_type(name)
    return guessed or "application/octet-stream"


def _as_prefix(folder_id: str) -> str:
    folder_id = folder_id.lstrip("/")
    if not folder_id:
        return ""
    return folder_id if folder_id.endswith("/") else f"{folder_id}/"


class S3StorageBrowser(StorageBrowser):
    """Treats key prefixes as folders: ``minutes/2024/`` contains ``minutes/2024/jan.pdf``."""

    def __init__(
        self,
        bucket: str,
        *,
        client: Any = None,
        page_size: Optional[int] = None,
    ) -> None:
        self.bucket = bucket
        self.page_size = page_size or settings.ingest.listing_page_size
        self._client = client if client is not None else boto3_client("s3")

    def list_children(self, folder_id: str, page_token: Optional[str] = None) -> ListingPage:
        prefix = _as_prefix(folder_id)
        params: dict[str, Any] = {
            "Bucket": self.bucket,
            "Prefix": prefix,
            "Delimiter": "/",
            "MaxKeys": self.page_size,
        }
        if page_token:
            params["ContinuationToken"] = page_token

        try:
            response = self._client.list_objects_v2(**params)
        except (BotoCoreError, ClientError) as exc:
            raise TransientFetchFailure(f"Failed to list s3://{self.bucket}/{prefix}: {exc}") from exc

        items: list[StorageItem] = []
        for common in response.get("CommonPrefixes", []):
            child_prefix = common["Prefix"]
            items.append(
                StorageItem(
                    id=child_prefix,
                    name=child_prefix[len(prefix):].rstrip("/"),
                    mime_type=FOLDER_MIME_TYPE,
                )
            )
        for obj in response.get("Contents", []):
            key = obj["Key"]
            if key == prefix or key.endswith("/"):
                continue  # folder placeholder objects
            name = key[len(prefix):]
            items.append(StorageItem(id=key, name=name, mime_type=guess_mime_type(name)))

        next_token = response.get("NextContinuationToken") if response.get("IsTruncated") else None
        return ListingPage(items=items, next_page_token=next_token)

    def _download(self, key: str) -> bytes:
        try:
            obj = self._client.get_object(Bucket=self.bucket, Key=key)
            return obj["Body"].read()
        except (BotoCoreError, ClientError) as exc:
            raise TransientFetchFailure(f"Failed to download s3://{self.bucket}/{key}: {exc}") from exc

    def export_text(self, file_id: str, mime_type: str) -> str:
        if mime_type.startswith("text/"):
            return self._download(file_id).decode("utf-8", errors="replace")

        if mime_type == PDF_MIME_TYPE:
            payload = self._download(file_id)
            try:
                return extract_text_from_pdf(payload) or ""
            except Exception as exc:
                raise TransientFetchFailure(f"Unreadable PDF s3://{self.bucket}/{file_id}: {exc}") from exc

        if mime_type == DOCX_MIME_TYPE:
            payload = self._download(file_id)
            try:
                return extract_text_from_docx(payload) or ""
            except Exception as exc:
                raise TransientFetchFailure(f"Unreadable DOCX s3://{self.bucket}/{file_id}: {exc}") from exc

        raise UnsupportedExport(f"Cannot export {mime_type} as text")

    def web_url(self, file_id: str) -> Optional[str]:
        """Path-style HTTPS URL on the client's endpoint (AWS or an S3-compatible host)."""
        endpoint = self._client.meta.endpoint_url.rstrip("/")
        return f"{endpoint}/{quote(self.bucket)}/{quote(file_id)}"


def browser_for_tenant(db: Session, tenant_id: uuid.UUID) -> StorageBrowser:
    connection = db.execute(
        select(StorageConnection).where(
            StorageConnection.tenant_id == tenant_id,
            StorageConnection.active.is_(True),
        )
    ).scalar_one_or_none()
    if connection is None:
        raise ConfigurationMissing(f"Tenant {tenant_id} has no storage connection")

    client = boto3_client(
        "s3",
        region=connection.region,
        endpoint_url=connection.endpoint_url,
        access_key_id=connection.access_key_id,
        secret_access_key=connection.secret_access_key,
    )
    return S3StorageBrowser(connection.bucket, client=client)
