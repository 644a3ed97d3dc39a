"""Low-level field parsers shared by every ingest path.

Each parser is a pure function that tolerates missing or garbled input by
returning None (or an empty value) instead of raising. The ingest paths
compose them in different orders; the usual order is
period -> time -> room -> teacher, with whatever is left being the subject.
"""

import re
from typing import Optional, Tuple

from .models import AM_REGISTRATION, PM_REGISTRATION, TEACHING_PERIODS, DayOfWeek, WeekCycle

TUTOR_TOKEN = "TUT"

_WEEK_HEADER_RE = re.compile(r'Week\s*([12])(?!\d)', re.IGNORECASE)
_WEEK_LABEL_RE = re.compile(r'^\s*([12])(?!\d)')
_LEADING_WORD_RE = re.compile(r'^\s*([A-Za-z]+)')

# "09:00", "9:00-9:50", "09:00 - 09:50"
TIME_RANGE_RE = re.compile(r'(\d{1,2}:\d{2})(?:\s*[-–—]\s*(\d{1,2}:\d{2}))?')

# "Room 12", "Rm12", "R12", "Room B4", "Room Gym". A spaced Room/Rm prefix takes
# any token; otherwise the token must hold a digit so words that merely start
# with "R" are not taken for rooms.
ROOM_RE = re.compile(
    r'\b(?:(?:Room|Rm)\.?\s+([A-Za-z0-9]+)|(?:Room|Rm|R)\.?\s*([A-Za-z]?\d[A-Za-z0-9]*))\b',
    re.IGNORECASE,
)

_TEACHER_RE = re.compile(r'\b[A-Z]{3,4}\b')

# Separator tokens left at the edges of a cut.
_LEADING_SEPARATOR_RE = re.compile(r'^\s*[-–—|•,;:.]+(?=\s|$)')
_TRAILING_SEPARATOR_RE = re.compile(r'(?:(?<=\s)|^)[-–—|•,;:.]+\s*$')


def tidy_text(text: str) -> str:
    """
    Collapse runs of whitespace and trim the ends.

    Args:
        text: Text to tidy

    Returns:
        Tidied text
    """
    if not text:
        return ""
    return re.sub(r'\s+', ' ', text).strip()


def remove_span(text: str, start: int, end: int) -> str:
    """Cut text[start:end] out, dropping separators orphaned at the cut."""
    before = _TRAILING_SEPARATOR_RE.sub('', text[:start].rstrip())
    after = _LEADING_SEPARATOR_RE.sub('', text[end:])
    return tidy_text(before + ' ' + after)


def parse_week(text: str) -> Optional[WeekCycle]:
    """Exact "1"/"2" match (CSV rule)."""
    if not isinstance(text, str):
        return None
    if text == "1":
        return WeekCycle.WEEK_1
    if text == "2":
        return WeekCycle.WEEK_2
    return None


def parse_week_header(text: str) -> Optional[WeekCycle]:
    """Match "Week 1"/"Week 2" anywhere in the text (text-layout rule)."""
    if not text or not isinstance(text, str):
        return None
    match = _WEEK_HEADER_RE.search(text)
    if not match:
        return None
    return WeekCycle.from_number(int(match.group(1)))


def parse_week_label(text: str) -> Optional[WeekCycle]:
    """Leading "1"/"2" digit (OCR row-label rule)."""
    if not text or not isinstance(text, str):
        return None
    match = _WEEK_LABEL_RE.match(text)
    if not match:
        return None
    return WeekCycle.from_number(int(match.group(1)))


def parse_day(text: str) -> Optional[DayOfWeek]:
    """
    Parse a weekday name.

    Args:
        text: Full name ("Monday") or 3-letter abbreviation ("Mon"), any case

    Returns:
        DayOfWeek, or None for weekends and anything unrecognized
    """
    return DayOfWeek.from_string(text)


def parse_day_header(line: str) -> Optional[DayOfWeek]:
    """
    Detect a day header line by its leading word.

    "Monday", "MON", "Monday 14th" and "Tue:" are headers; "Mathematics" and
    "Monthly test" are not.
    """
    if not line or not isinstance(line, str):
        return None
    match = _LEADING_WORD_RE.match(line)
    if not match:
        return None
    return parse_day(match.group(1))


def is_tutor_token(text: str) -> bool:
    """Check for the ambiguous registration token "TUT"."""
    if not text or not isinstance(text, str):
        return False
    return text.strip().upper() == TUTOR_TOKEN


def resolve_tutor_slot(subject: str) -> int:
    """
    Decide which registration slot a "TUT" period refers to.

    Args:
        subject: Subject text paired with the TUT token

    Returns:
        0 when the subject mentions AM, 6 when it mentions PM, otherwise 0
    """
    upper = (subject or "").upper()
    if "AM" in upper:
        return AM_REGISTRATION
    if "PM" in upper:
        return PM_REGISTRATION
    return AM_REGISTRATION


def parse_period(text: str) -> Optional[int]:
    """
    Parse a period token into a slot.

    "TUT" returns the provisional slot 0; callers must run
    resolve_tutor_slot() once the subject is known.

    Args:
        text: Period text ("TUT", "AM Registration", "1".."5", ...)

    Returns:
        Slot number or None if the token is not a period
    """
    if not text or not isinstance(text, str):
        return None

    value = text.strip()
    if not value:
        return None

    if is_tutor_token(value):
        return AM_REGISTRATION

    lowered = value.lower()
    if "registration" in lowered:
        if "am" in lowered.replace("registration", " "):
            return AM_REGISTRATION
        if "pm" in lowered.replace("registration", " "):
            return PM_REGISTRATION
        return None

    if re.fullmatch(r'[0-9]+', value):
        number = int(value)
        if number in TEACHING_PERIODS:
            return number

    return None


def _pad_time(token: str) -> str:
    hours, minutes = token.split(':', 1)
    return f"{int(hours):02d}:{minutes}"


def parse_time_range(text: str) -> Optional[Tuple[str, Optional[str]]]:
    """
    Find a time or time range.

    Args:
        text: Text that may contain "HH:MM" or "HH:MM-HH:MM"

    Returns:
        (start, end) with end None for a single token, or None if no time found
    """
    if not text or not isinstance(text, str):
        return None
    match = TIME_RANGE_RE.search(text)
    if not match:
        return None
    start = _pad_time(match.group(1))
    end = _pad_time(match.group(2)) if match.group(2) else None
    return start, end


def extract_teacher_code(text: str, max_length: int = 4) -> Tuple[str, Optional[str]]:
    """
    Pull a teacher code (3 to max_length uppercase letters) out of the text.

    The trailing match wins, since codes follow the subject. When the code is
    the whole text nothing is extracted, so a subject such as "ICT" survives.

    Args:
        text: Text to search
        max_length: Longest code length accepted (3 or 4)

    Returns:
        (remaining_text, code) where code is None when nothing matched
    """
    if not text or not isinstance(text, str):
        return "", None

    matches = [m for m in _TEACHER_RE.finditer(text) if len(m.group(0)) <= max_length]
    if not matches:
        return tidy_text(text), None

    match = matches[-1]
    remaining = remove_span(text, match.start(), match.end())
    if not remaining:
        return tidy_text(text), None
    return remaining, match.group(0)


def extract_room(text: str) -> Tuple[str, Optional[str]]:
    """
    Pull a room token ("Room 12", "Rm12", "R12") out of the text.

    Args:
        text: Text to search

    Returns:
        (remaining_text, room) with the prefix stripped from room, room None
        when nothing matched
    """
    if not text or not isinstance(text, str):
        return "", None
    match = ROOM_RE.search(text)
    if not match:
        return tidy_text(text), None
    return remove_span(text, match.start(), match.end()), match.group(1) or match.group(2)
