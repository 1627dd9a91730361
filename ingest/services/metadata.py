from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from ..models.meeting_documents import DateConfidenceEnum, MeetingDocumentTypeEnum

CONTENT_SCAN_CHARS = 500
MONTH_ONLY_DAY = 15

MONTH_NAMES = (
    "january",
    "february",
    "march",
    "april",
    "may",
    "june",
    "july",
    "august",
    "september",
    "october",
    "november",
    "december",
)

ISO_DATE_RE = re.compile(r"(\d{4})-(\d{2})-(\d{2})")
US_DATE_RE = re.compile(r"(\d{1,2})[-/](\d{1,2})[-/](\d{4})")
MONTH_YEAR_RE = re.compile(rf"({'|'.join(MONTH_NAMES)})\s*(\d{{4}})", re.IGNORECASE)


@dataclass(frozen=True)
class ParsedDate:
    date: Optional[date] = None
    month: Optional[int] = None
    year: Optional[int] = None

    @classmethod
    def from_date(cls, value: date) -> "ParsedDate":
        return cls(date=value, month=value.month, year=value.year)

    @property
    def found(self) -> bool:
        return self.date is not None


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _match_iso(text: str) -> Optional[date]:
    for match in ISO_DATE_RE.finditer(text):
        parsed = _safe_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        if parsed:
            return parsed
    return None


def _match_us(text: str) -> Optional[date]:
    for match in US_DATE_RE.finditer(text):
        parsed = _safe_date(int(match.group(3)), int(match.group(1)), int(match.group(2)))
        if parsed:
            return parsed
    return None


def _match_month_year(text: str) -> Optional[date]:
    match = MONTH_YEAR_RE.search(text)
    if not match:
        return None
    month = MONTH_NAMES.index(match.group(1).lower()) + 1
    return _safe_date(int(match.group(2)), month, MONTH_ONLY_DAY)


_PATTERNS: tuple[Callable[[str], Optional[date]], ...] = (_match_iso, _match_us, _match_month_year)


def parse_meeting_date(file_name: str, content: Optional[str] = None) -> ParsedDate:
    """Infer a meeting date from the file name, then from the start of the content.

    The ladder is ISO date, US date, then "Month YYYY" (day defaults to the 15th),
    tried against the file name first and the first 500 characters of the
    content second. Nothing matching yields an all-empty result.
    """
    candidates = [file_name or ""]
    if content:
        candidates.append(content[:CONTENT_SCAN_CHARS])

    for text in candidates:
        for pattern in _PATTERNS:
            parsed = pattern(text)
            if parsed:
                return ParsedDate.from_date(parsed)
    return ParsedDate()


def merge_ai_date(
    current: ParsedDate,
    extracted: Optional[date],
    confidence: Optional[DateConfidenceEnum],
) -> ParsedDate:
    """Heuristic or previously stored dates win; only a high-confidence AI date fills a gap."""
    if current.found or extracted is None:
        return current
    if confidence != DateConfidenceEnum.HIGH:
        return current
    return ParsedDate.from_date(extracted)


def classify_document_type(file_name: str) -> MeetingDocumentTypeEnum:
    if "agenda" in (file_name or "").lower():
        return MeetingDocumentTypeEnum.AGENDA
    return MeetingDocumentTypeEnum.MINUTES
