from __future__ import annotations

import io
from typing import BinaryIO, Optional, Union

import pdfplumber


def extract_text_from_pdf(source: Union[bytes, BinaryIO]) -> Optional[str]:
    """Concatenate the text of every page, or None when the PDF has no text layer."""
    if isinstance(source, (bytes, bytearray)):
        buffer: BinaryIO = io.BytesIO(source)
    else:
        buffer = source
        buffer.seek(0)

    with pdfplumber.open(buffer) as pdf:
        pages = [page.extract_text() or "" for page in pdf.pages]
    text = "\n".join(pages).strip()
    return text if text else None
