"""Data models for timetable extraction."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple


class WeekCycle(Enum):
    """The two alternating phases of a fortnightly timetable."""
    WEEK_1 = 1
    WEEK_2 = 2

    def toggle(self) -> 'WeekCycle':
        """Return the other week of the rotation."""
        return WeekCycle.WEEK_2 if self is WeekCycle.WEEK_1 else WeekCycle.WEEK_1

    @property
    def label(self) -> str:
        return WEEK_LABELS[self]

    @property
    def number(self) -> int:
        return self.value

    @classmethod
    def from_number(cls, number: int) -> Optional['WeekCycle']:
        for week in cls:
            if week.value == number:
                return week
        return None


# Display text is kept apart from the enum so it never takes part in equality.
WEEK_LABELS: Dict[WeekCycle, str] = {
    WeekCycle.WEEK_1: "Week 1",
    WeekCycle.WEEK_2: "Week 2",
}


class DayOfWeek(Enum):
    """Enumeration for the days of the school week."""
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"

    @property
    def index(self) -> int:
        """Position in declaration order (Monday = 0)."""
        return list(DayOfWeek).index(self)

    @property
    def short_name(self) -> str:
        return self.value[:3]

    def __lt__(self, other: 'DayOfWeek') -> bool:
        if not isinstance(other, DayOfWeek):
            return NotImplemented
        return self.index < other.index

    def __le__(self, other: 'DayOfWeek') -> bool:
        if not isinstance(other, DayOfWeek):
            return NotImplemented
        return self.index <= other.index

    def __gt__(self, other: 'DayOfWeek') -> bool:
        if not isinstance(other, DayOfWeek):
            return NotImplemented
        return self.index > other.index

    def __ge__(self, other: 'DayOfWeek') -> bool:
        if not isinstance(other, DayOfWeek):
            return NotImplemented
        return self.index >= other.index

    @classmethod
    def from_string(cls, day_str: str) -> Optional['DayOfWeek']:
        """
        Parse a weekday from its full name or 3-letter abbreviation.

        Args:
            day_str: String representation of weekday (e.g., "Mon", "monday")

        Returns:
            DayOfWeek or None if not matched (weekends are never matched)
        """
        if not day_str or not isinstance(day_str, str):
            return None

        day_str = day_str.strip().upper()

        if not day_str:
            return None

        day_mapping = {}
        for day in cls:
            day_mapping[day.value.upper()] = day
            day_mapping[day.short_name.upper()] = day

        return day_mapping.get(day_str)


# Period slots are plain ints in a closed domain.
AM_REGISTRATION = 0
PM_REGISTRATION = 6
TEACHING_PERIODS = range(1, 6)
PERIOD_SLOTS = range(AM_REGISTRATION, PM_REGISTRATION + 1)


def is_valid_period(slot: int) -> bool:
    """Check that a slot lies in the canonical 0..6 domain."""
    return isinstance(slot, int) and slot in PERIOD_SLOTS


def period_label(slot: int) -> str:
    """Human readable label for a period slot."""
    if slot == AM_REGISTRATION:
        return "AM Registration"
    if slot == PM_REGISTRATION:
        return "PM Registration"
    return f"P{slot}"


@dataclass(frozen=True)
class ScheduleEntry:
    """A single normalized timetable slot."""
    day: DayOfWeek
    period: int
    week: WeekCycle
    subject: str
    room: str
    teacher: Optional[str] = None
    start_time: Optional[str] = None  # "HH:MM"
    end_time: Optional[str] = None  # "HH:MM"

    @property
    def key(self) -> Tuple[WeekCycle, DayOfWeek, int]:
        """Identity of the slot within one timetable."""
        return (self.week, self.day, self.period)

    @property
    def period_label(self) -> str:
        return period_label(self.period)

    @property
    def time_range(self) -> Optional[str]:
        if self.start_time and self.end_time:
            return f"{self.start_time} - {self.end_time}"
        return None

    def to_dict(self) -> dict:
        return {
            'week': self.week.number,
            'day': self.day.value,
            'period': self.period,
            'subject': self.subject,
            'room': self.room,
            'teacher': self.teacher,
            'start_time': self.start_time,
            'end_time': self.end_time,
        }

    def __str__(self) -> str:
        return f"{self.week.label} {self.day.value} {self.period_label}: {self.subject}"


@dataclass(frozen=True)
class ParseError:
    """A row- or line-level problem found while ingesting a source."""
    row: int
    message: str

    def __str__(self) -> str:
        return f"Row {self.row}: {self.message}"


@dataclass(frozen=True)
class ParseOutcome:
    """Result of one import attempt. Immutable once built."""
    valid_entries: Tuple[ScheduleEntry, ...] = ()
    errors: Tuple[ParseError, ...] = ()
    total_rows_considered: int = 0

    def __post_init__(self):
        # Accept lists from callers but always store tuples.
        object.__setattr__(self, 'valid_entries', tuple(self.valid_entries))
        object.__setattr__(self, 'errors', tuple(self.errors))

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def success_count(self) -> int:
        return len(self.valid_entries)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @classmethod
    def combine(cls, outcomes: Iterable['ParseOutcome']) -> 'ParseOutcome':
        """
        Concatenate several outcomes (e.g. one per page) in order.

        Args:
            outcomes: Outcomes to merge

        Returns:
            A single ParseOutcome holding all entries and errors
        """
        entries: List[ScheduleEntry] = []
        errors: List[ParseError] = []
        total = 0
        for outcome in outcomes:
            entries.extend(outcome.valid_entries)
            errors.extend(outcome.errors)
            total += outcome.total_rows_considered
        return cls(valid_entries=entries, errors=errors, total_rows_considered=total)

    def __len__(self) -> int:
        return len(self.valid_entries)


@dataclass(frozen=True)
class BoundingBox:
    """Normalized (0..1) rectangle, origin bottom-left, y grows upwards."""
    x: float
    y: float
    width: float = 0.0
    height: float = 0.0

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2


@dataclass(frozen=True)
class Fragment:
    """One OCR-recognized text span and where it sits on the page."""
    text: str
    bbox: BoundingBox
    confidence: float = 1.0

    @property
    def center_x(self) -> float:
        return self.bbox.center_x

    @property
    def center_y(self) -> float:
        return self.bbox.center_y


@dataclass
class ValidationReport:
    """Diagnostic summary computed over a list of schedule entries."""
    total_entries: int = 0
    week_counts: Dict[WeekCycle, int] = field(default_factory=dict)
    day_counts: Dict[DayOfWeek, int] = field(default_factory=dict)
    missing_subject: List[ScheduleEntry] = field(default_factory=list)
    missing_room: List[ScheduleEntry] = field(default_factory=list)
    duplicate_keys: List[Tuple[WeekCycle, DayOfWeek, int]] = field(default_factory=list)
    issues: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.issues

    def to_dict(self) -> dict:
        return {
            'total_entries': self.total_entries,
            'week_counts': {week.label: count for week, count in self.week_counts.items()},
            'day_counts': {day.value: count for day, count in self.day_counts.items()},
            'duplicate_keys': [
                {'week': week.number, 'day': day.value, 'period': period}
                for week, day, period in self.duplicate_keys
            ],
            'issues': list(self.issues),
            'warnings': list(self.warnings),
            'is_valid': self.is_valid,
        }
