"""Positional ingest: rebuild the day-row x period-column grid from OCR fragments.

Scanned timetables only give us a bag of text fragments with bounding boxes.
Rows are found from the "1 Mon" / "2 Fri" style labels down the left edge,
every other fragment is claimed by the row band its vertical center falls in,
and the fragments of a row are split into period cells wherever the
horizontal gap between neighbours exceeds the column gap threshold.

Coordinates are normalized to 0..1 with the origin at the bottom-left, so a
larger y is higher on the page.

Cells that do not have the expected subject / teacher / room shape are
dropped and only logged at DEBUG. Sparse grids have many empty or partial
cells, and page furniture (titles, legends) cannot be told apart from a
malformed cell, so nothing is reported in ParseOutcome.errors.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from .config import DEFAULT_COLUMN_GAP_THRESHOLD
from .fields import extract_room, parse_day, parse_week_label
from .log import get_logger
from .models import (
    AM_REGISTRATION,
    DayOfWeek,
    Fragment,
    ParseOutcome,
    ScheduleEntry,
    WeekCycle,
    is_valid_period,
)

logger = get_logger(__name__)

# "1 Mon", "2Fri", "1 Monday"
ROW_LABEL_RE = re.compile(r'^\s*([12])\s*([A-Za-z]{3,9})\s*$')
TEACHER_LINE_RE = re.compile(r'^[A-Z]{3,4}$')
ROOM_LINE_RE = re.compile(r'^Room\s*\d')

REGISTRATION_LABEL = "Registration"
MIN_CELL_LINES = 3


@dataclass(frozen=True)
class RowLabel:
    """A detected day-row label and its vertical position."""
    week: WeekCycle
    day: DayOfWeek
    y: float
    fragment: Fragment


@dataclass(frozen=True)
class RowBand:
    """Vertical territory [min_y, max_y) claimed by one row label."""
    label: RowLabel
    min_y: float
    max_y: float
    is_top: bool = False

    def contains(self, y: float) -> bool:
        if self.is_top:
            return self.min_y <= y <= self.max_y
        return self.min_y <= y < self.max_y


def parse_row_label(text: str) -> Optional[Tuple[WeekCycle, DayOfWeek]]:
    """
    Read a row label such as "1 Mon".

    Args:
        text: Fragment text

    Returns:
        (week, day) or None if the text is not a row label
    """
    if not text or not isinstance(text, str):
        return None
    match = ROW_LABEL_RE.match(text)
    if not match:
        return None
    week = parse_week_label(match.group(1))
    day = parse_day(match.group(2))
    if week is None or day is None:
        return None
    return week, day


def is_teacher_line(text: str) -> bool:
    return bool(TEACHER_LINE_RE.match((text or "").strip()))


def is_room_line(text: str) -> bool:
    return bool(ROOM_LINE_RE.match((text or "").strip()))


def resolve_cell_slot(subject: str, index: int) -> Tuple[str, int]:
    """
    Work out the subject label and slot for the cell at a column index.

    Registration cells are relabelled "Registration" and take slot 0 when
    they mention AM, otherwise their 0-based index. Any other cell is
    numbered from 1.

    Args:
        subject: First line of the cell
        index: 0-based position of the cell within its row

    Returns:
        (subject, slot)
    """
    if REGISTRATION_LABEL.lower() in subject.lower():
        slot = AM_REGISTRATION if "AM" in subject else index
        return REGISTRATION_LABEL, slot
    return subject, index + 1


def build_cell_entry(
    lines: Sequence[str],
    index: int,
    week: WeekCycle,
    day: DayOfWeek,
) -> Optional[ScheduleEntry]:
    """
    Turn the stacked lines of one cell into an entry.

    Args:
        lines: Cell text lines in top-to-bottom order
        index: 0-based position of the cell within its row
        week: Week of the row
        day: Day of the row

    Returns:
        ScheduleEntry, or None when the cell does not have the
        subject / teacher / room shape
    """
    if len(lines) < MIN_CELL_LINES:
        return None

    subject, teacher, room_line = (line.strip() for line in lines[:MIN_CELL_LINES])
    if not subject or not is_teacher_line(teacher) or not is_room_line(room_line):
        return None

    _, room = extract_room(room_line)
    subject, slot = resolve_cell_slot(subject, index)
    if not is_valid_period(slot):
        return None

    return ScheduleEntry(
        day=day,
        period=slot,
        week=week,
        subject=subject,
        room=room or "",
        teacher=teacher,
    )


class GridParser:
    """Reconstructs timetable entries from positioned OCR fragments."""

    def __init__(self, column_gap_threshold: float = DEFAULT_COLUMN_GAP_THRESHOLD):
        """
        Initialize the grid parser.

        Args:
            column_gap_threshold: Normalized x distance between neighbouring
                fragment centers above which a new period column starts.
                Calibrated per document family.
        """
        if not 0.0 < column_gap_threshold < 1.0:
            raise ValueError(
                f"column_gap_threshold must be between 0 and 1, got {column_gap_threshold}"
            )
        self.column_gap_threshold = column_gap_threshold

    def parse_page(self, fragments: Iterable[Fragment]) -> ParseOutcome:
        """
        Parse the fragments of one page.

        Args:
            fragments: OCR fragments for a single page

        Returns:
            ParseOutcome with the entries found. errors is always empty;
            total_rows_considered counts the candidate cells examined.
        """
        fragments = [f for f in fragments if f.text and f.text.strip()]
        rows = self.detect_rows(fragments)

        if not rows:
            logger.debug("no_row_labels", fragments=len(fragments))
            return ParseOutcome()

        label_ids = {id(row.fragment) for row in rows}
        content = [f for f in fragments if id(f) not in label_ids]

        entries: List[ScheduleEntry] = []
        considered = 0

        for band in self.row_bands(rows):
            row_fragments = self.fragments_in_band(content, band)
            cells = self.cluster_columns(row_fragments)

            for index, cell in enumerate(cells):
                considered += 1
                lines = self.cell_lines(cell)
                entry = build_cell_entry(lines, index, band.label.week, band.label.day)
                if entry is None:
                    logger.debug(
                        "cell_discarded",
                        week=band.label.week.label,
                        day=band.label.day.value,
                        index=index,
                        lines=lines,
                    )
                    continue
                entries.append(entry)

        logger.debug("grid_parsed", rows=len(rows), cells=considered, entries=len(entries))
        return ParseOutcome(valid_entries=entries, total_rows_considered=considered)

    def parse_pages(self, pages: Iterable[Iterable[Fragment]]) -> ParseOutcome:
        """Parse pages independently and concatenate results in page order."""
        return ParseOutcome.combine(self.parse_page(page) for page in pages)

    def detect_rows(self, fragments: Iterable[Fragment]) -> List[RowLabel]:
        """
        Find day-row labels, top of the page first.

        Args:
            fragments: Page fragments

        Returns:
            Row labels sorted by y descending
        """
        rows = []
        for fragment in fragments:
            parsed = parse_row_label(fragment.text)
            if parsed is None:
                continue
            week, day = parsed
            rows.append(RowLabel(week=week, day=day, y=fragment.center_y, fragment=fragment))

        rows.sort(key=lambda row: -row.y)
        return rows

    def row_bands(self, rows: Sequence[RowLabel]) -> List[RowBand]:
        """
        Convert point-like row labels into vertical bands.

        Each band reaches halfway to its neighbours; the first row extends
        to the top of the page (1.0) and the last row to the bottom (0.0).

        Args:
            rows: Row labels sorted by y descending

        Returns:
            One RowBand per row, same order
        """
        bands = []
        for i, row in enumerate(rows):
            max_y = 1.0 if i == 0 else (rows[i - 1].y + row.y) / 2
            min_y = 0.0 if i == len(rows) - 1 else (row.y + rows[i + 1].y) / 2
            bands.append(RowBand(label=row, min_y=min_y, max_y=max_y, is_top=(i == 0)))
        return bands

    def fragments_in_band(self, fragments: Iterable[Fragment], band: RowBand) -> List[Fragment]:
        """Fragments whose vertical center lies in the band, left to right."""
        claimed = [f for f in fragments if band.contains(f.center_y)]
        claimed.sort(key=lambda f: (f.center_x, -f.center_y, f.text))
        return claimed

    def cluster_columns(self, fragments: Sequence[Fragment]) -> List[List[Fragment]]:
        """
        Split a row's fragments (sorted by center_x) into period cells.

        A new cell starts whenever the gap to the previous fragment's center
        exceeds the column gap threshold.

        Args:
            fragments: Row fragments sorted left to right

        Returns:
            List of cells, each a list of fragments
        """
        if not fragments:
            return []

        clusters = [[fragments[0]]]
        for previous, fragment in zip(fragments, fragments[1:]):
            if fragment.center_x - previous.center_x > self.column_gap_threshold:
                clusters.append([fragment])
            else:
                clusters[-1].append(fragment)
        return clusters

    @staticmethod
    def cell_lines(cell: Iterable[Fragment]) -> List[str]:
        """Cell text in reading order (top to bottom)."""
        ordered = sorted(cell, key=lambda f: (-f.center_y, f.center_x))
        return [f.text.strip() for f in ordered]


def parse_fragments(
    pages: Iterable[Iterable[Fragment]],
    column_gap_threshold: float = DEFAULT_COLUMN_GAP_THRESHOLD,
) -> ParseOutcome:
    """
    Parse OCR fragments page by page.

    Args:
        pages: One fragment collection per page
        column_gap_threshold: See GridParser

    Returns:
        Combined ParseOutcome in page order
    """
    return GridParser(column_gap_threshold=column_gap_threshold).parse_pages(pages)


def parse_fragment_sequence(lines: Iterable[str]) -> ParseOutcome:
    """
    Line-sequence fallback for fragments without usable bounding boxes.

    Reads text lines in recognition order. A row label sets the week/day;
    after it, cells are read as consecutive subject / teacher / room triples.
    Lines that do not start a valid triple are skipped one at a time. Empty
    cells leave no trace in this mode, so slots are numbered by the cells
    actually found.

    Args:
        lines: Text lines in reading order

    Returns:
        ParseOutcome with the entries found (errors always empty)
    """
    entries: List[ScheduleEntry] = []
    considered = 0

    def flush(label: Optional[Tuple[WeekCycle, DayOfWeek]], buffer: List[str]) -> None:
        nonlocal considered
        if label is None:
            return
        week, day = label
        index = 0
        i = 0
        while i < len(buffer):
            window = buffer[i:i + MIN_CELL_LINES]
            entry = build_cell_entry(window, index, week, day)
            if entry is None:
                i += 1
                continue
            considered += 1
            entries.append(entry)
            index += 1
            i += MIN_CELL_LINES

    label: Optional[Tuple[WeekCycle, DayOfWeek]] = None
    buffer: List[str] = []

    for line in lines:
        text = (line or "").strip()
        if not text:
            continue
        parsed = parse_row_label(text)
        if parsed is not None:
            flush(label, buffer)
            label, buffer = parsed, []
            continue
        buffer.append(text)

    flush(label, buffer)
    return ParseOutcome(valid_entries=entries, total_rows_considered=considered)
