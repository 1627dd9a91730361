from __future__ import annotations

import logging
from typing import Optional

from ..errors import IngestError
from .storage import DOCX_MIME_TYPE, PDF_MIME_TYPE, StorageBrowser

logger = logging.getLogger(__name__)

# Office/native document types the storage backend can render as plain text.
# Legacy binary Word (.doc) has no text exporter and is treated as unsupported.
EXPORTABLE_MIME_TYPES = frozenset(
    {
        "application/vnd.google-apps.document",
        "application/vnd.google-apps.spreadsheet",
        "application/vnd.google-apps.presentation",
        PDF_MIME_TYPE,
        DOCX_MIME_TYPE,
    }
)

MINUTES_MIME_TYPES = frozenset(
    {
        "application/vnd.google-apps.document",
        PDF_MIME_TYPE,
        "text/plain",
        "text/markdown",
        DOCX_MIME_TYPE,
    }
)


def is_text_mime_type(mime_type: str) -> bool:
    return mime_type.startswith("text/")


def is_extractable(mime_type: str) -> bool:
    return is_text_mime_type(mime_type) or mime_type in EXPORTABLE_MIME_TYPES


def truncate(text: str, max_chars: int) -> str:
    return text[:max_chars] if len(text) > max_chars else text


class ContentExtractor:
    """Fetches plain text for a remote file, capped at ``max_chars``.

    Unsupported binaries and failed exports both come back as ``None`` so a
    single bad file never stops a crawl.
    """

    def __init__(self, browser: StorageBrowser, max_chars: int) -> None:
        self.browser = browser
        self.max_chars = max_chars

    def extract(self, external_id: str, mime_type: str) -> Optional[str]:
        if not is_extractable(mime_type):
            return None
        try:
            content = self.browser.export_text(external_id, mime_type)
        except IngestError as exc:
            logger.warning("Text extraction failed for %s (%s): %s", external_id, mime_type, exc)
            return None
        except Exception:
            logger.exception("Unexpected extraction failure for %s (%s)", external_id, mime_type)
            return None
        if content is None:
            return None
        return truncate(content, self.max_chars)
