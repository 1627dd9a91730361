from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, List, Optional

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from ..models.indexed_documents import IndexedDocument

SEARCH_LANGUAGE = "english"


@dataclass
class SearchHit:
    document: IndexedDocument
    rank: float


def _dialect(db: Session) -> str:
    return db.get_bind().dialect.name


def search_vector_for(
    db: Session,
    file_name: str,
    integration_name: Optional[str],
    text_content: Optional[str],
) -> Any:
    """Weighted search document: file name (A) > integration name (B) > content (C)."""
    if _dialect(db) == "postgresql":
        return (
            func.setweight(func.to_tsvector(SEARCH_LANGUAGE, file_name), "A")
            .op("||")(func.setweight(func.to_tsvector(SEARCH_LANGUAGE, func.coalesce(integration_name, "")), "B"))
            .op("||")(func.setweight(func.to_tsvector(SEARCH_LANGUAGE, func.coalesce(text_content, "")), "C"))
        )
    parts = (file_name, integration_name or "", text_content or "")
    return "\n".join(part for part in parts if part).lower()


def search_index(db: Session, tenant_id: uuid.UUID, query: str, limit: int = 20) -> List[SearchHit]:
    query = (query or "").strip()
    if not query:
        return []

    if _dialect(db) == "postgresql":
        tsquery = func.websearch_to_tsquery(SEARCH_LANGUAGE, query)
        rank = func.ts_rank(IndexedDocument.search_vector, tsquery)
        stmt = (
            select(IndexedDocument, rank.label("rank"))
            .where(
                IndexedDocument.tenant_id == tenant_id,
                IndexedDocument.search_vector.op("@@")(tsquery),
            )
            .order_by(rank.desc())
            .limit(limit)
        )
    else:
        pattern = f"%{query.lower()}%"
        rank = (
            case((func.lower(IndexedDocument.file_name).like(pattern), 3), else_=0)
            + case((func.lower(func.coalesce(IndexedDocument.integration_name, "")).like(pattern), 2), else_=0)
            + case((func.lower(func.coalesce(IndexedDocument.text_content, "")).like(pattern), 1), else_=0)
        )
        stmt = (
            select(IndexedDocument, rank.label("rank"))
            .where(IndexedDocument.tenant_id == tenant_id, rank > 0)
            .order_by(rank.desc(), IndexedDocument.file_name.asc())
            .limit(limit)
        )

    return [SearchHit(document=row[0], rank=float(row[1])) for row in db.execute(stmt).all()]
