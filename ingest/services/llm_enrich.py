from __future__ import annotations

from datetime import date
from typing import Any, Optional, Sequence

import openai
from instructor import from_openai
from pydantic import BaseModel, Field, field_validator

from ..config import settings
from ..models.meeting_documents import DateConfidenceEnum

TRUNCATION_MARKER = "\n[Content truncated...]"


class MeetingAnalysis(BaseModel):
    summary: str = ""
    key_items: list[str] = Field(default_factory=list)
    action_items: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    suggested_tags: list[str] = Field(default_factory=list)
    extracted_date: Optional[date] = None  # ISO date if stated in the text
    date_confidence: DateConfidenceEnum = DateConfidenceEnum.LOW

    @field_validator("date_confidence", mode="before")
    @classmethod
    def _coerce_confidence(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip().lower() in {c.value for c in DateConfidenceEnum}:
            return value.strip().lower()
        if isinstance(value, DateConfidenceEnum):
            return value
        return DateConfidenceEnum.LOW

    @field_validator("extracted_date", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> Any:
        if value in (None, "", "null"):
            return None
        if isinstance(value, date):
            return value
        try:
            return date.fromisoformat(str(value).strip()[:10])
        except ValueError:
            return None


SYSTEM = (
    "You are the secretary of a parent-teacher association. "
    "You read meeting minutes and return structured, factual notes about them."
)


USER_TMPL = """File name: {file_name}

Meeting document:
---
{excerpt}
---
{known_tags_section}
Return JSON with keys:
- summary (2-4 sentences)
- key_items (3-8 decisions, debates or updates, one complete thought each)
- action_items (tasks, formatted "Task - Owner (deadline)" when known)
- improvements (2-4 suggestions for future meetings)
- suggested_tags (3-7 general topic tags such as "Budget" or "Volunteers")
- extracted_date (YYYY-MM-DD if the meeting date is stated, otherwise null)
- date_confidence ("high" for an exact date, "medium" for month/year only, "low" otherwise)
"""


def _truncate(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + TRUNCATION_MARKER


def build_prompt(text: str, file_name: str, known_tags: Sequence[str], max_chars: int) -> str:
    known_tags_section = ""
    if known_tags:
        known_tags_section = f"\nExisting tags (reuse these when they fit):\n{', '.join(known_tags)}\n"
    return USER_TMPL.format(
        file_name=file_name,
        excerpt=_truncate(text, max_chars),
        known_tags_section=known_tags_section,
    )


class Enricher:
    def analyze(self, text: str, file_name: str, known_tags: Sequence[str]) -> MeetingAnalysis:  # pragma: no cover - interface
        raise NotImplementedError


class OpenAIEnricher(Enricher):
    def __init__(
        self,
        client: Any = None,
        *,
        model: Optional[str] = None,
        max_input_chars: Optional[int] = None,
    ) -> None:
        self._client = client
        self.model = model or settings.openai_model
        self.max_input_chars = max_input_chars or settings.ingest.enrichment_max_input_chars

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = from_openai(openai.OpenAI())
        return self._client

    def analyze(self, text: str, file_name: str, known_tags: Sequence[str]) -> MeetingAnalysis:
        return self._get_client().chat.completions.create(
            model=self.model,
            response_model=MeetingAnalysis,
            messages=[
                {"role": "system", "content": SYSTEM},
                {"role": "user", "content": build_prompt(text, file_name, known_tags, self.max_input_chars)},
            ],
            temperature=0.2,
        )


def get_enricher() -> Enricher:
    return OpenAIEnricher()
