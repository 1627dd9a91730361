from __future__ import annotations

from datetime import date

import pytest

from ingest.models.meeting_documents import DateConfidenceEnum, MeetingDocumentTypeEnum
from ingest.services.metadata import (
    ParsedDate,
    classify_document_type,
    merge_ai_date,
    parse_meeting_date,
)


@pytest.mark.parametrize(
    "file_name, expected",
    [
        ("2024-03-07 Minutes.pdf", date(2024, 3, 7)),
        ("March 2024 Minutes.pdf", date(2024, 3, 15)),
        ("PTA Minutes 2024-03-12.docx", date(2024, 3, 12)),
        ("Minutes 3-12-2024.pdf", date(2024, 3, 12)),
        ("Minutes 03/12/2024.pdf", date(2024, 3, 12)),
        ("October 2023 minutes", date(2023, 10, 15)),
        ("minutes-september2024.txt", date(2024, 9, 15)),
    ],
)
def test_parse_meeting_date_from_file_name(file_name, expected) -> None:
    parsed = parse_meeting_date(file_name)

    assert parsed.date == expected
    assert parsed.month == expected.month
    assert parsed.year == expected.year


def test_iso_date_wins_over_us_and_month_formats() -> None:
    parsed = parse_meeting_date("May 2020 notes 1-2-2021 final 2022-06-07")

    assert parsed.date == date(2022, 6, 7)


def test_file_name_wins_over_content() -> None:
    parsed = parse_meeting_date("Minutes 2024-01-09.pdf", "Meeting held 2023-05-05")

    assert parsed.date == date(2024, 1, 9)


def test_content_prefix_is_scanned_when_file_name_has_no_date() -> None:
    parsed = parse_meeting_date("General meeting.docx", "Minutes of the meeting held 4/18/2024 in the library")

    assert parsed.date == date(2024, 4, 18)


def test_content_beyond_scan_window_is_ignored() -> None:
    content = ("x" * 600) + " 2024-02-02"

    assert parse_meeting_date("notes.txt", content) == ParsedDate()


def test_invalid_calendar_date_counts_as_no_match() -> None:
    parsed = parse_meeting_date("Minutes 2024-02-30.pdf")

    assert not parsed.found
    assert parsed == ParsedDate(date=None, month=None, year=None)


def test_invalid_iso_date_falls_through_to_content() -> None:
    parsed = parse_meeting_date("Minutes 2024-13-01.pdf", "Held on March 2024")

    assert parsed.date == date(2024, 3, 15)


def test_high_confidence_ai_date_fills_gap_only() -> None:
    empty = ParsedDate()
    stored = ParsedDate.from_date(date(2024, 1, 10))

    assert merge_ai_date(empty, date(2024, 2, 1), DateConfidenceEnum.HIGH).date == date(2024, 2, 1)
    assert merge_ai_date(empty, date(2024, 2, 1), DateConfidenceEnum.MEDIUM) is empty
    assert merge_ai_date(empty, None, DateConfidenceEnum.HIGH) is empty
    assert merge_ai_date(stored, date(2024, 2, 1), DateConfidenceEnum.HIGH) is stored


@pytest.mark.parametrize(
    "file_name, expected",
    [
        ("March Agenda.pdf", MeetingDocumentTypeEnum.AGENDA),
        ("AGENDA_2024-03-01.docx", MeetingDocumentTypeEnum.AGENDA),
        ("March Minutes.pdf", MeetingDocumentTypeEnum.MINUTES),
    ],
)
def test_classify_document_type(file_name, expected) -> None:
    assert classify_document_type(file_name) == expected
