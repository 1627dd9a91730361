from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from typing import Iterable, List

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..errors import PersistenceFailure, TagNotFound
from ..models.knowledge_articles import KnowledgeArticle
from ..models.meeting_documents import MeetingDocument
from ..models.tags import Tag
from .persistence import row_savepoint

logger = logging.getLogger(__name__)

# Every content table whose ``tags`` column holds normalized tag names.
TAGGED_MODELS = (MeetingDocument, KnowledgeArticle)


def normalize_tag(value: str) -> str:
    return re.sub(r"\s+", " ", (value or "").strip().lower())


def unique_tags(values: Iterable[str]) -> List[str]:
    seen: list[str] = []
    for value in values:
        name = normalize_tag(value)
        if name and name not in seen:
            seen.append(name)
    return seen


@dataclass
class MergeResult:
    merged_count: int
    target_usage_count: int


class TagLedger:
    """Per-tenant tag registry with approximate usage counts.

    Counts are adjusted with single-row UPDATE statements and no locking; a lost
    insert race is treated as "the other writer created it".
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def _get(self, tenant_id: uuid.UUID, tag_id: uuid.UUID) -> Tag:
        tag = self.db.execute(
            select(Tag).where(Tag.id == tag_id, Tag.tenant_id == tenant_id)
        ).scalar_one_or_none()
        if tag is None:
            raise TagNotFound(f"Tag {tag_id} not found for tenant {tenant_id}")
        return tag

    def known_names(self, tenant_id: uuid.UUID) -> List[str]:
        rows = self.db.execute(
            select(Tag.display_name)
            .where(Tag.tenant_id == tenant_id)
            .order_by(Tag.usage_count.desc(), Tag.display_name.asc())
        )
        return list(rows.scalars())

    def ensure_exist(self, tenant_id: uuid.UUID, names: Iterable[str]) -> None:
        displays: dict[str, str] = {}
        for display in names:
            name = normalize_tag(display)
            if name and name not in displays:
                displays[name] = display.strip()

        for name, display_name in displays.items():
            bumped = self.db.execute(
                update(Tag)
                .where(Tag.tenant_id == tenant_id, Tag.name == name)
                .values(usage_count=Tag.usage_count + 1)
            ).rowcount
            if bumped:
                continue
            try:
                with row_savepoint(self.db):
                    self.db.add(Tag(tenant_id=tenant_id, name=name, display_name=display_name, usage_count=1))
            except PersistenceFailure:
                logger.info("Tag %r was created concurrently for tenant %s", name, tenant_id)

    def decrement(self, tenant_id: uuid.UUID, names: Iterable[str]) -> None:
        for name in unique_tags(names):
            self.db.execute(
                update(Tag)
                .where(Tag.tenant_id == tenant_id, Tag.name == name, Tag.usage_count > 0)
                .values(usage_count=Tag.usage_count - 1)
            )

    def retag(self, record, names: Iterable[str]) -> List[str]:
        """Replace a content record's tags and move the usage counts to match."""
        names = list(names)
        old = unique_tags(record.tags or [])
        new = unique_tags(names)
        added = [display for display in names if normalize_tag(display) in new and normalize_tag(display) not in old]
        removed = [name for name in old if name not in new]

        record.tags = new
        if added:
            self.ensure_exist(record.tenant_id, added)
        if removed:
            self.decrement(record.tenant_id, removed)
        return new

    def delete(self, tenant_id: uuid.UUID, tag_id: uuid.UUID) -> None:
        """Remove the tag row only; content keeps the name until retagged."""
        tag = self._get(tenant_id, tag_id)
        self.db.delete(tag)
        self.db.flush()

    def merge(self, tenant_id: uuid.UUID, source_id: uuid.UUID, target_id: uuid.UUID) -> MergeResult:
        if source_id == target_id:
            raise ValueError("Cannot merge a tag into itself")
        source = self._get(tenant_id, source_id)
        target = self._get(tenant_id, target_id)

        merged_count = 0
        for model in TAGGED_MODELS:
            records = self.db.execute(select(model).where(model.tenant_id == tenant_id)).scalars()
            for record in records:
                current = unique_tags(record.tags or [])
                if source.name not in current:
                    continue
                swapped = [name for name in current if name != source.name]
                if target.name not in swapped:
                    swapped.append(target.name)
                record.tags = swapped
                merged_count += 1

        target.usage_count = (target.usage_count or 0) + (source.usage_count or 0)
        self.db.delete(source)
        self.db.flush()
        logger.info(
            "Merged tag %r into %r for tenant %s (%s records)", source.name, target.name, tenant_id, merged_count
        )
        return MergeResult(merged_count=merged_count, target_usage_count=target.usage_count)
