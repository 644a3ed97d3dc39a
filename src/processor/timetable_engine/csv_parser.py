"""CSV ingest: quote-aware splitting plus per-row validation.

Unlike the text and OCR paths, every rejected row here is reported in
ParseOutcome.errors with its 1-based row number (header = row 1).
"""

from typing import Iterable, List

from .fields import is_tutor_token, parse_day, parse_period, parse_week, resolve_tutor_slot
from .log import get_logger
from .models import (
    AM_REGISTRATION,
    PM_REGISTRATION,
    ParseError,
    ParseOutcome,
    ScheduleEntry,
)

logger = get_logger(__name__)

EXPECTED_HEADERS = ["Week", "Day", "Period", "Subject", "Teacher", "Room"]
FIELD_COUNT = len(EXPECTED_HEADERS)


def split_csv_line(line: str) -> List[str]:
    """
    Split one CSV line on commas that sit outside double quotes.

    Quote characters only toggle the inside-quotes state and are never part
    of a field value. Escaped quotes ("") are not supported.

    Args:
        line: CSV line to split

    Returns:
        List of raw field values
    """
    fields = []
    current = []
    inside_quotes = False

    for char in line:
        if char == '"':
            inside_quotes = not inside_quotes
        elif char == ',' and not inside_quotes:
            fields.append(''.join(current))
            current = []
        else:
            current.append(char)

    fields.append(''.join(current))
    return fields


def parse_csv(content: str) -> ParseOutcome:
    """
    Parse CSV timetable content into schedule entries.

    Args:
        content: Full CSV text, header line first

    Returns:
        ParseOutcome with valid entries, row-indexed errors and the number of
        non-blank data rows examined
    """
    lines = (content or "").splitlines()
    data_lines = lines[1:]

    if len(lines) < 2 or not any(line.strip() for line in data_lines):
        logger.info("csv_no_data_rows", line_count=len(lines))
        return ParseOutcome(
            errors=[ParseError(row=0, message="CSV file is empty or has no data rows")],
        )

    errors: List[ParseError] = []
    entries: List[ScheduleEntry] = []
    total_rows = 0

    headers = [h.strip().lower() for h in split_csv_line(lines[0].strip())]
    if headers != [h.lower() for h in EXPECTED_HEADERS]:
        errors.append(ParseError(
            row=1,
            message=f"Invalid CSV header. Expected: {','.join(EXPECTED_HEADERS)}",
        ))

    for index, line in enumerate(data_lines):
        row_number = index + 2

        trimmed = line.strip()
        if not trimmed:
            continue

        total_rows += 1
        fields = split_csv_line(trimmed)

        if len(fields) != FIELD_COUNT:
            errors.append(ParseError(
                row=row_number,
                message=f"Expected {FIELD_COUNT} fields, found {len(fields)}",
            ))
            continue

        week_str, day_str, period_str, subject, teacher, room = (f.strip() for f in fields)

        week = parse_week(week_str)
        if week is None:
            errors.append(ParseError(
                row=row_number,
                message=f"Invalid week value '{week_str}'. Must be '1' or '2'",
            ))
            continue

        day = parse_day(day_str)
        if day is None:
            errors.append(ParseError(
                row=row_number,
                message=(
                    f"Invalid day value '{day_str}'. "
                    "Must be Monday/Tuesday/Wednesday/Thursday/Friday"
                ),
            ))
            continue

        period = parse_period(period_str)
        if period is None:
            errors.append(ParseError(
                row=row_number,
                message=(
                    f"Invalid period value '{period_str}'. "
                    "Must be 'TUT', 'AM Registration', '1'-'5', or 'PM Registration'"
                ),
            ))
            continue

        if not subject:
            errors.append(ParseError(row=row_number, message="Subject is required (cannot be empty)"))
            continue

        if is_tutor_token(period_str):
            period = resolve_tutor_slot(subject)

        if not room:
            errors.append(ParseError(row=row_number, message="Room is required (cannot be empty)"))
            continue

        entries.append(ScheduleEntry(
            day=day,
            period=period,
            week=week,
            subject=subject,
            room=room,
            teacher=teacher or None,
        ))

    logger.info(
        "csv_parsed",
        rows=total_rows,
        entries=len(entries),
        errors=len(errors),
    )
    return ParseOutcome(valid_entries=entries, errors=errors, total_rows_considered=total_rows)


def _format_field(value: str) -> str:
    # The reader has no escape for quotes, so they cannot be written back.
    value = (value or "").replace('"', '')
    if ',' in value:
        return f'"{value}"'
    return value


def _format_period(period: int) -> str:
    if period == AM_REGISTRATION:
        return "AM Registration"
    if period == PM_REGISTRATION:
        return "PM Registration"
    return str(period)


def entry_to_csv_row(entry: ScheduleEntry) -> str:
    """
    Serialize an entry in the import format (times are not part of it).

    Args:
        entry: Entry to serialize

    Returns:
        One CSV line without a trailing newline
    """
    values = [
        str(entry.week.number),
        entry.day.value,
        _format_period(entry.period),
        entry.subject,
        entry.teacher or "",
        entry.room,
    ]
    return ','.join(_format_field(v) for v in values)


def entries_to_csv(entries: Iterable[ScheduleEntry]) -> str:
    """Render entries as a complete CSV document, header included."""
    lines = [','.join(EXPECTED_HEADERS)]
    lines.extend(entry_to_csv_row(entry) for entry in entries)
    return '\n'.join(lines) + '\n'
