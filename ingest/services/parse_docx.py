from __future__ import annotations

import io
from typing import BinaryIO, Optional, Union

from docx import Document


def extract_text_from_docx(source: Union[bytes, BinaryIO]) -> Optional[str]:
    """Paragraph text followed by table cell text, or None for an empty document."""
    if isinstance(source, (bytes, bytearray)):
        buffer: BinaryIO = io.BytesIO(source)
    else:
        buffer = source
        buffer.seek(0)

    document = Document(buffer)
    lines = [paragraph.text.strip() for paragraph in document.paragraphs]
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                lines.append(" | ".join(cells))
    text = "\n".join(line for line in lines if line).strip()
    return text if text else None
