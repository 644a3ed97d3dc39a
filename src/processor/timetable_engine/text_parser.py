"""Text-layout ingest for PDFs with an extractable text layer.

The page text is scanned line by line. "Week N" lines and day-name lines
update the current context; any other line is read as a period line for that
context. Lines that do not fit are dropped without an entry in
ParseOutcome.errors: extraction order and spacing in PDF text vary too much
to point at a reliable row number, so the skip is only logged at DEBUG.
"""

import re
from typing import Iterable, List, Optional

from .fields import (
    TIME_RANGE_RE,
    extract_room,
    extract_teacher_code,
    parse_day_header,
    parse_period,
    parse_time_range,
    parse_week_header,
    remove_span,
    resolve_tutor_slot,
    tidy_text,
)
from .log import get_logger
from .models import DayOfWeek, ParseOutcome, ScheduleEntry, WeekCycle

logger = get_logger(__name__)

# "Period 3", "P3", "3", "3.", "3)". A leading time such as "09:00" is not a period.
PERIOD_PREFIX_RE = re.compile(r'^\s*(?:Period\s*|P)?(\d+)(?!\d|:\d)[.):]?', re.IGNORECASE)

# Registration lines carry no period number.
REGISTRATION_PREFIX_RE = re.compile(r'^\s*(?:(TUT)\b|((?:AM|PM)\s+Registration)\b)', re.IGNORECASE)


def parse_period_line(line: str, week: WeekCycle, day: DayOfWeek) -> Optional[ScheduleEntry]:
    """
    Parse one period line such as "Period 1 09:00-09:50 Mathematics R12 KCO".

    Spans are removed in order: the period prefix from the front, then the
    time range, then the room. What is left is the subject, from which a
    trailing 3-letter teacher code is taken.

    Args:
        line: Trimmed text line
        week: Week context the line belongs to
        day: Day context the line belongs to

    Returns:
        ScheduleEntry, or None when the line is not a usable period line
    """
    if not line:
        return None

    tutor = False
    registration = REGISTRATION_PREFIX_RE.match(line)
    if registration and registration.group(1):
        tutor = True
        period = parse_period(registration.group(1))
        remaining = remove_span(line, 0, registration.end())
    elif registration:
        # The phrase itself is the subject ("AM Registration").
        period = parse_period(registration.group(2))
        remaining = line
    else:
        match = PERIOD_PREFIX_RE.match(line)
        if not match:
            return None
        period = parse_period(match.group(1))
        remaining = remove_span(line, 0, match.end())

    if period is None:
        return None

    start_time = end_time = None
    time_match = TIME_RANGE_RE.search(remaining)
    if time_match:
        start_time, end_time = parse_time_range(time_match.group(0))
        remaining = remove_span(remaining, time_match.start(), time_match.end())

    remaining, room = extract_room(remaining)

    subject = tidy_text(remaining)
    if not subject:
        return None

    subject, teacher = extract_teacher_code(subject, max_length=3)

    if tutor:
        period = resolve_tutor_slot(subject)

    return ScheduleEntry(
        day=day,
        period=period,
        week=week,
        subject=subject,
        room=room or "",
        teacher=teacher,
        start_time=start_time,
        end_time=end_time,
    )


def parse_text(text: str) -> ParseOutcome:
    """
    Parse extracted timetable text.

    Args:
        text: Raw text of one page (or several pages joined)

    Returns:
        ParseOutcome whose errors are always empty; total_rows_considered
        counts the lines read as period candidates (context known, not a header)
    """
    entries: List[ScheduleEntry] = []
    considered = 0

    current_week: Optional[WeekCycle] = None
    current_day: Optional[DayOfWeek] = None

    for line_number, line in enumerate((text or "").splitlines(), 1):
        trimmed = line.strip()
        if not trimmed:
            continue

        week = parse_week_header(trimmed)
        if week is not None:
            current_week = week
            logger.debug("week_header", line=line_number, week=week.label)
            continue

        day = parse_day_header(trimmed)
        if day is not None:
            current_day = day
            logger.debug("day_header", line=line_number, day=day.value)
            continue

        if current_week is None or current_day is None:
            logger.debug("line_skipped_no_context", line=line_number)
            continue

        considered += 1
        entry = parse_period_line(trimmed, current_week, current_day)
        if entry is None:
            logger.debug("line_skipped_unparsed", line=line_number, text=trimmed)
            continue

        entries.append(entry)

    logger.debug("text_parsed", lines_considered=considered, entries=len(entries))
    return ParseOutcome(valid_entries=entries, total_rows_considered=considered)


def parse_text_pages(pages: Iterable[str]) -> ParseOutcome:
    """
    Parse each page independently and concatenate the results in page order.

    Week/day context does not carry over from one page to the next.
    """
    return ParseOutcome.combine(parse_text(page) for page in pages)
