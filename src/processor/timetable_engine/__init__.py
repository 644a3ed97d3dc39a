"""Timetable Engine Package for two-week school timetable extraction."""

__version__ = "0.2.0"

from .log import configure_default_logging

configure_default_logging()

from .csv_parser import entries_to_csv, entry_to_csv_row, parse_csv, split_csv_line
from .errors import ExtractionError, OCRUnavailableError, SourceReadError, UnsupportedFileError
from .grid_parser import GridParser, parse_fragment_sequence, parse_fragments
from .main import import_fragments, process_timetable, save_to_json
from .models import (
    BoundingBox,
    DayOfWeek,
    Fragment,
    ParseError,
    ParseOutcome,
    ScheduleEntry,
    ValidationReport,
    WeekCycle,
)
from .text_parser import parse_text
from .utils import (
    entries_for,
    format_validation_report,
    is_supported_file,
    merge_duplicate_entries,
    validate_entries,
)

__all__ = [
    'process_timetable',
    'save_to_json',
    'import_fragments',
    'parse_csv',
    'split_csv_line',
    'entries_to_csv',
    'entry_to_csv_row',
    'parse_text',
    'GridParser',
    'parse_fragments',
    'parse_fragment_sequence',
    'BoundingBox',
    'DayOfWeek',
    'Fragment',
    'ParseError',
    'ParseOutcome',
    'ScheduleEntry',
    'ValidationReport',
    'WeekCycle',
    'ExtractionError',
    'OCRUnavailableError',
    'SourceReadError',
    'UnsupportedFileError',
    'entries_for',
    'format_validation_report',
    'is_supported_file',
    'merge_duplicate_entries',
    'validate_entries',
]
