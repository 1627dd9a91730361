from __future__ import annotations

import io

import boto3
import pytest
from docx import Document
from moto import mock_aws

from ingest.errors import ConfigurationMissing, TransientFetchFailure, UnsupportedExport
from ingest.models import StorageConnection
from ingest.services.crawler import crawl
from ingest.services.extraction import ContentExtractor
from ingest.services.storage import (
    DOCX_MIME_TYPE,
    FOLDER_MIME_TYPE,
    PDF_MIME_TYPE,
    S3StorageBrowser,
    browser_for_tenant,
    guess_mime_type,
)

BUCKET = "pta-drive"


@pytest.fixture()
def s3():
    with mock_aws():
        client = boto3.client("s3", region_name="us-east-1")
        client.create_bucket(Bucket=BUCKET)
        yield client


def _put(s3, key: str, body: bytes = b"") -> None:
    s3.put_object(Bucket=BUCKET, Key=key, Body=body)


def _docx_bytes(*paragraphs: str) -> bytes:
    document = Document()
    for paragraph in paragraphs:
        document.add_paragraph(paragraph)
    table = document.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "Treasurer"
    table.rows[0].cells[1].text = "Report accepted"
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def _pdf_bytes(line: str) -> bytes:
    """Single-page PDF with one line of Helvetica text and a valid xref table."""
    stream = f"BT /F1 18 Tf 72 720 Td ({line}) Tj ET".encode("latin-1")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Contents 4 0 R /Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length " + str(len(stream)).encode() + b" >>\nstream\n" + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    body = b"%PDF-1.4\n"
    offsets = []
    for number, obj in enumerate(objects, start=1):
        offsets.append(len(body))
        body += f"{number} 0 obj\n".encode() + obj + b"\nendobj\n"
    xref_at = len(body)
    body += f"xref\n0 {len(objects) + 1}\n".encode()
    body += b"0000000000 65535 f \n"
    for offset in offsets:
        body += f"{offset:010d} 00000 n \n".encode()
    body += f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref_at}\n%%EOF\n".encode()
    return body


def test_list_children_maps_prefixes_to_folders(s3) -> None:
    _put(s3, "minutes/")
    _put(s3, "minutes/2024-01-09.txt", b"January")
    _put(s3, "minutes/archive/2023-05-02.pdf")
    _put(s3, "budget.csv")

    browser = S3StorageBrowser(BUCKET, client=s3)
    page = browser.list_children("minutes")

    assert [(item.id, item.name, item.mime_type) for item in page.items] == [
        ("minutes/archive/", "archive", FOLDER_MIME_TYPE),
        ("minutes/2024-01-09.txt", "2024-01-09.txt", "text/plain"),
    ]
    assert page.next_page_token is None

    root = browser.list_children("")
    assert [item.id for item in root.items] == ["minutes/", "budget.csv"]


def test_listing_pages_through_continuation_tokens(s3) -> None:
    for index in range(5):
        _put(s3, f"docs/file-{index}.txt", b"x")

    browser = S3StorageBrowser(BUCKET, client=s3, page_size=2)
    first = browser.list_children("docs/")

    assert len(first.items) == 2
    assert first.next_page_token

    files = crawl(browser, "docs/")
    assert [f.name for f in files] == [f"file-{index}.txt" for index in range(5)]


def test_export_text_decodes_text_objects(s3) -> None:
    _put(s3, "notes.md", "Café meeting".encode("utf-8"))

    browser = S3StorageBrowser(BUCKET, client=s3)

    assert browser.export_text("notes.md", "text/markdown") == "Café meeting"
    url = browser.web_url("notes.md")
    assert url.startswith("https://")
    assert url.endswith(f"/{BUCKET}/notes.md")
    assert browser.web_url("minutes/Oct 8.txt").endswith(f"/{BUCKET}/minutes/Oct%208.txt")


def test_export_text_reads_word_documents(s3) -> None:
    _put(s3, "minutes/Minutes 2024-10-08.docx", _docx_bytes("Minutes of the October meeting", "Motion carried"))

    browser = S3StorageBrowser(BUCKET, client=s3)
    (item,) = browser.list_children("minutes").items

    assert item.mime_type == DOCX_MIME_TYPE
    text = browser.export_text(item.id, item.mime_type)
    assert text.splitlines() == ["Minutes of the October meeting", "Motion carried", "Treasurer | Report accepted"]

    extracted = ContentExtractor(browser, 20).extract(item.id, item.mime_type)
    assert extracted.startswith("Minutes of the Octob")


def test_export_text_reads_pdf_text(s3) -> None:
    _put(s3, "minutes/2024-03-12.pdf", _pdf_bytes("Minutes of March 2024"))

    browser = S3StorageBrowser(BUCKET, client=s3)
    (item,) = browser.list_children("minutes").items

    assert item.mime_type == PDF_MIME_TYPE
    assert "Minutes of March 2024" in browser.export_text(item.id, item.mime_type)
    assert "March 2024" in ContentExtractor(browser, 1000).extract(item.id, item.mime_type)


def test_unreadable_docx_is_a_transient_failure(s3) -> None:
    _put(s3, "broken.docx", b"PK not a zip")

    with pytest.raises(TransientFetchFailure):
        S3StorageBrowser(BUCKET, client=s3).export_text("broken.docx", DOCX_MIME_TYPE)


def test_export_text_rejects_unsupported_types(s3) -> None:
    _put(s3, "photo.jpg", b"\xff\xd8")

    with pytest.raises(UnsupportedExport):
        S3StorageBrowser(BUCKET, client=s3).export_text("photo.jpg", "image/jpeg")


def test_missing_object_is_a_transient_failure(s3) -> None:
    with pytest.raises(TransientFetchFailure):
        S3StorageBrowser(BUCKET, client=s3).export_text("missing.txt", "text/plain")


def test_unreadable_pdf_is_a_transient_failure(s3) -> None:
    _put(s3, "broken.pdf", b"not really a pdf")

    with pytest.raises(TransientFetchFailure):
        S3StorageBrowser(BUCKET, client=s3).export_text("broken.pdf", "application/pdf")


def test_missing_bucket_listing_is_a_transient_failure(s3) -> None:
    with pytest.raises(TransientFetchFailure):
        S3StorageBrowser("no-such-bucket", client=s3).list_children("")


def test_browser_for_tenant_requires_a_connection(db, tenant) -> None:
    with pytest.raises(ConfigurationMissing):
        browser_for_tenant(db, tenant.id)


def test_browser_for_tenant_uses_stored_connection(db, tenant, s3) -> None:
    db.add(StorageConnection(tenant_id=tenant.id, bucket=BUCKET, region="us-east-1"))
    db.flush()

    browser = browser_for_tenant(db, tenant.id)

    assert isinstance(browser, S3StorageBrowser)
    assert browser.bucket == BUCKET


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Minutes.PDF", "application/pdf"),
        ("notes.md", "text/markdown"),
        ("report.docx", "application/vnd.openxmlformats-officedocument.wordprocessingml.document"),
        ("mystery", "application/octet-stream"),
    ],
)
def test_guess_mime_type(name, expected) -> None:
    assert guess_mime_type(name) == expected
