"""Validation and utility functions for timetable processing."""

import re
from pathlib import Path
from typing import Iterable, List, Optional, Union

from .errors import UnsupportedFileError
from .models import DayOfWeek, ScheduleEntry, ValidationReport, WeekCycle

CSV_EXTENSIONS = {'.csv'}
TEXT_EXTENSIONS = {'.txt'}
PDF_EXTENSIONS = {'.pdf'}
IMAGE_EXTENSIONS = {'.png', '.jpg', '.jpeg', '.bmp', '.tiff', '.tif'}

SUPPORTED_EXTENSIONS = CSV_EXTENSIONS | TEXT_EXTENSIONS | PDF_EXTENSIONS | IMAGE_EXTENSIONS


def validate_file_path(
    file_path: Union[str, Path],
    supported_extensions: Optional[set] = None,
) -> Path:
    """
    Validate file path and extension.

    Args:
        file_path: Path to validate
        supported_extensions: Set of supported file extensions
            (defaults to SUPPORTED_EXTENSIONS)

    Returns:
        Validated Path object

    Raises:
        FileNotFoundError: If the path does not exist or is not a file
        UnsupportedFileError: If the extension is not supported
    """
    supported = supported_extensions or SUPPORTED_EXTENSIONS
    path = Path(file_path)

    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    if not path.is_file():
        raise FileNotFoundError(f"Path is not a file: {path}")

    if path.suffix.lower() not in supported:
        raise UnsupportedFileError(
            f"Unsupported file format: {path.suffix or '(none)'}. "
            f"Supported formats: {', '.join(sorted(supported))}"
        )

    return path


def is_supported_file(file_path: Union[str, Path]) -> bool:
    """
    Quick check if file is supported.

    Args:
        file_path: Path to check

    Returns:
        True if file extension is supported
    """
    return Path(file_path).suffix.lower() in SUPPORTED_EXTENSIONS


def sanitize_text(text: str) -> str:
    """
    Collapse whitespace and strip NUL characters from extracted text.

    Line breaks are kept so line-oriented parsers still see the layout.
    """
    if not text:
        return ""

    text = text.replace('\x00', '')
    lines = [re.sub(r'[ \t\f\v]+', ' ', line).strip() for line in text.splitlines()]
    return '\n'.join(lines)


def validate_entries(entries: Iterable[ScheduleEntry]) -> ValidationReport:
    """
    Compute a diagnostic report over parsed entries.

    Entries are never modified or dropped. Empty subjects and duplicate
    (week, day, period) keys are issues; empty rooms are warnings. Each
    duplicate key is reported once however many times it repeats.

    Args:
        entries: Entries from any ingest path

    Returns:
        ValidationReport
    """
    entries = list(entries)
    report = ValidationReport(total_entries=len(entries))

    report.week_counts = {
        week: sum(1 for e in entries if e.week is week) for week in WeekCycle
    }
    report.day_counts = {
        day: sum(1 for e in entries if e.day is day) for day in DayOfWeek
    }

    for entry in entries:
        if not entry.subject.strip():
            report.missing_subject.append(entry)
            report.issues.append(
                f"Entry missing subject: Period {entry.period}, {entry.day.value}"
            )
        if not entry.room.strip():
            report.missing_room.append(entry)
            report.warnings.append(
                f"Entry missing room: {entry.subject}, Period {entry.period}"
            )

    seen = set()
    for entry in entries:
        key = entry.key
        if key in seen and key not in report.duplicate_keys:
            report.duplicate_keys.append(key)
            report.issues.append(
                f"Duplicate entry: {entry.week.label} {entry.day.value} Period {entry.period}"
            )
        seen.add(key)

    return report


def format_validation_report(report: ValidationReport) -> str:
    """
    Render a validation report for the console.

    Args:
        report: Report to render

    Returns:
        Multi-line report text
    """
    lines = [
        "Validation Report:",
        f"  Total Entries: {report.total_entries}",
    ]
    for week in WeekCycle:
        lines.append(f"  {week.label} Entries: {report.week_counts.get(week, 0)}")

    lines.append("")
    lines.append("  Entries per day:")
    for day in DayOfWeek:
        lines.append(f"    {day.value}: {report.day_counts.get(day, 0)}")

    if report.warnings:
        lines.append("")
        lines.append("  ⚠ Warnings:")
        lines.extend(f"    - {warning}" for warning in report.warnings)

    lines.append("")
    if report.issues:
        lines.append("  ✗ Issues:")
        lines.extend(f"    - {issue}" for issue in report.issues)
    else:
        lines.append("  ✓ No issues found")

    return '\n'.join(lines)


def merge_duplicate_entries(entries: Iterable[ScheduleEntry]) -> List[ScheduleEntry]:
    """
    Drop entries identical in every field, keeping the first occurrence.

    Entries that only share a (week, day, period) key are all kept; those
    are reported by validate_entries instead.

    Args:
        entries: List of entries to deduplicate

    Returns:
        Deduplicated list of entries, original order preserved
    """
    unique_entries = []
    seen = set()

    for entry in entries:
        if entry not in seen:
            seen.add(entry)
            unique_entries.append(entry)

    return unique_entries


def entries_for(
    entries: Iterable[ScheduleEntry],
    week: WeekCycle,
    day: Optional[DayOfWeek] = None,
) -> List[ScheduleEntry]:
    """
    Select the entries of one week (and optionally one day).

    Args:
        entries: Entries to filter
        week: Week to keep
        day: Day to keep, or None for the whole week

    Returns:
        Matching entries sorted by day then period
    """
    selected = [
        e for e in entries
        if e.week is week and (day is None or e.day is day)
    ]
    selected.sort(key=lambda e: (e.day.index, e.period))
    return selected
