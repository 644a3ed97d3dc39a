"""Core execution logic for the timetable engine."""

import json
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from .config import DEFAULT_COLUMN_GAP_THRESHOLD, EngineSettings, get_settings
from .csv_parser import parse_csv
from .errors import SourceReadError
from .grid_parser import GridParser, parse_fragment_sequence
from .log import get_logger
from .models import (
    DayOfWeek,
    Fragment,
    ParseError,
    ParseOutcome,
    ScheduleEntry,
    ValidationReport,
    WeekCycle,
)
from .preprocessor import DocumentPreprocessor
from .text_parser import parse_text
from .utils import (
    CSV_EXTENSIONS,
    PDF_EXTENSIONS,
    TEXT_EXTENSIONS,
    format_validation_report,
    sanitize_text,
    validate_entries,
    validate_file_path,
)

logger = get_logger(__name__)

ENCODING_ERROR_MESSAGE = "The file encoding is not supported. Please use UTF-8 encoded files."


def process_timetable(
    file_path: Union[str, Path],
    settings: Optional[EngineSettings] = None,
    recognizer: Any = None,
) -> ParseOutcome:
    """
    Process a single timetable file and extract schedule entries.

    The ingest path is chosen by file extension: CSV exports, plain text,
    PDFs (text layer, with OCR for pages that have none) and scanned images.

    Args:
        file_path: Absolute or relative path to the timetable file
        settings: Engine settings (defaults to environment-based settings)
        recognizer: Object exposing ``extract_fragments(image)``; an
            OCRExtractor is created on first use when omitted

    Returns:
        ParseOutcome with the entries found and any row-level errors

    Raises:
        FileNotFoundError: If the file does not exist
        UnsupportedFileError: If the file format is not supported
        OCRUnavailableError: If a page needs OCR and paddleocr is missing
    """
    settings = settings or get_settings()

    try:
        file_path = validate_file_path(file_path)
        suffix = file_path.suffix.lower()

        print(f"▶ Processing Timetable: {file_path.name}")

        print("\n[1/3] Reading source...")
        if suffix in CSV_EXTENSIONS:
            print("  → CSV export")
            outcome = import_csv_file(file_path)
        elif suffix in TEXT_EXTENSIONS:
            print("  → Plain text")
            outcome = import_text_file(file_path)
        elif suffix in PDF_EXTENSIONS:
            print("  → PDF document")
            outcome = import_pdf(file_path, settings=settings, recognizer=recognizer)
        else:
            print("  → Scanned image")
            outcome = import_image(file_path, settings=settings, recognizer=recognizer)
        print(f"✓ Examined {outcome.total_rows_considered} row(s)")

        print("\n[2/3] Validating entries...")
        report = validate_entries(outcome.valid_entries)
        print(f"✓ {len(report.issues)} issue(s), {len(report.warnings)} warning(s)")

        print("\n[3/3] Extraction Summary")
        print(f"{'─'*60}")
        _print_outcome_summary(outcome)

        print(f"\n{'='*60}")
        print("✓ Timetable processing completed")
        print(f"{'='*60}\n")

        logger.info(
            "timetable_processed",
            path=str(file_path),
            entries=outcome.success_count,
            errors=outcome.error_count,
        )
        return outcome

    except (FileNotFoundError, ValueError) as e:
        print(f"\n✗ Validation error: {str(e)}")
        raise


def import_csv_file(file_path: Union[str, Path]) -> ParseOutcome:
    """
    Read and parse a CSV export.

    Args:
        file_path: Path to the CSV file

    Returns:
        ParseOutcome; a file that is not valid UTF-8 yields a single row-0 error
    """
    raw = Path(file_path).read_bytes()
    try:
        content = raw.decode('utf-8-sig')
    except UnicodeDecodeError:
        logger.warning("csv_decode_failed", path=str(file_path))
        return ParseOutcome(errors=[ParseError(row=0, message=ENCODING_ERROR_MESSAGE)])
    return parse_csv(content)


def import_text_file(file_path: Union[str, Path]) -> ParseOutcome:
    """Read and parse a plain-text timetable dump."""
    try:
        content = Path(file_path).read_text(encoding='utf-8-sig')
    except UnicodeDecodeError:
        logger.warning("text_decode_failed", path=str(file_path))
        return ParseOutcome()
    return parse_text(sanitize_text(content))


def import_pdf(
    file_path: Union[str, Path],
    settings: Optional[EngineSettings] = None,
    recognizer: Any = None,
    preprocessor: Optional[DocumentPreprocessor] = None,
) -> ParseOutcome:
    """
    Parse a PDF page by page.

    Pages with a text layer go through the text-layout parser. Pages without
    one are rendered and handed to the OCR recognizer, then to the grid
    parser. Each page starts with a fresh week/day context.

    Args:
        file_path: Path to the PDF
        settings: Engine settings
        recognizer: OCR recognizer for scanned pages
        preprocessor: Document preprocessor (created from settings if omitted)

    Returns:
        Combined ParseOutcome in page order; an unreadable PDF yields an
        empty outcome
    """
    settings = settings or get_settings()
    preprocessor = preprocessor or DocumentPreprocessor(
        dpi=settings.pdf_dpi,
        max_dimension=settings.max_image_dimension,
    )

    try:
        pages = preprocessor.extract_pdf_text(file_path)
    except SourceReadError as e:
        logger.warning("pdf_unreadable", path=str(file_path), error=str(e))
        return ParseOutcome()

    outcomes = []
    for page_number, page_text in enumerate(pages, 1):
        if page_text.strip():
            print(f"  → Page {page_number}/{len(pages)}: text layer")
            outcomes.append(parse_text(sanitize_text(page_text)))
            continue

        print(f"  → Page {page_number}/{len(pages)}: no text layer, running OCR")
        try:
            image = preprocessor.render_pdf_page(file_path, page_number)
        except SourceReadError as e:
            logger.warning("pdf_page_render_failed", page=page_number, error=str(e))
            outcomes.append(ParseOutcome())
            continue

        recognizer = recognizer or _create_recognizer(settings)
        fragments = recognizer.extract_fragments(image)
        print(f"    Recognized {len(fragments)} text fragment(s)")
        outcomes.append(import_fragments(fragments, settings.column_gap_threshold))

    return ParseOutcome.combine(outcomes)


def import_image(
    file_path: Union[str, Path],
    settings: Optional[EngineSettings] = None,
    recognizer: Any = None,
    preprocessor: Optional[DocumentPreprocessor] = None,
) -> ParseOutcome:
    """
    OCR a scanned timetable image and rebuild its grid.

    Args:
        file_path: Path to the image
        settings: Engine settings
        recognizer: OCR recognizer
        preprocessor: Document preprocessor (created from settings if omitted)

    Returns:
        ParseOutcome; an undecodable image yields an empty outcome
    """
    settings = settings or get_settings()
    preprocessor = preprocessor or DocumentPreprocessor(
        dpi=settings.pdf_dpi,
        max_dimension=settings.max_image_dimension,
    )

    try:
        image = preprocessor.load_image(file_path)
    except SourceReadError as e:
        logger.warning("image_unreadable", path=str(file_path), error=str(e))
        return ParseOutcome()

    recognizer = recognizer or _create_recognizer(settings)
    fragments = recognizer.extract_fragments(image)
    print(f"  → Recognized {len(fragments)} text fragment(s)")
    return import_fragments(fragments, settings.column_gap_threshold)


def import_fragments(
    fragments: Iterable[Fragment],
    column_gap_threshold: float = DEFAULT_COLUMN_GAP_THRESHOLD,
) -> ParseOutcome:
    """
    Parse the OCR fragments of one page.

    Fragments with real bounding boxes are laid out geometrically. When
    every box is degenerate (zero width and height) the recognizer gave no
    usable positions, and the line-sequence reader is used instead.

    Args:
        fragments: Fragments of a single page
        column_gap_threshold: Column split distance for the grid parser

    Returns:
        ParseOutcome for the page
    """
    fragments = list(fragments)
    if not fragments:
        return ParseOutcome()

    if any(f.bbox.width > 0 or f.bbox.height > 0 for f in fragments):
        return GridParser(column_gap_threshold=column_gap_threshold).parse_page(fragments)

    logger.debug("fragments_without_geometry", fragments=len(fragments))
    return parse_fragment_sequence(f.text for f in fragments)


def _create_recognizer(settings: EngineSettings):
    from .ocr_extractor import OCRExtractor

    print("  → Loading PaddleOCR...")
    return OCRExtractor(use_gpu=settings.use_gpu, lang=settings.ocr_lang)


def save_to_json(
    outcome: ParseOutcome,
    output_path: Union[str, Path],
    report: Optional[ValidationReport] = None,
    source: Optional[str] = None,
) -> None:
    """
    Save a parse outcome and its validation report to a JSON file.

    Args:
        outcome: ParseOutcome to save
        output_path: Path to output JSON file
        report: Validation report (computed from the outcome if omitted)
        source: Path of the file the outcome came from
    """
    report = report or validate_entries(outcome.valid_entries)

    data = {
        'source': source,
        'summary': {
            'total_rows_considered': outcome.total_rows_considered,
            'valid_entries': outcome.success_count,
            'errors': outcome.error_count,
        },
        'entries': [entry.to_dict() for entry in outcome.valid_entries],
        'errors': [{'row': error.row, 'message': error.message} for error in outcome.errors],
        'validation': report.to_dict(),
    }

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)

    print(f"✓ Saved to: {output_path}")


def _print_outcome_summary(outcome: ParseOutcome) -> None:
    """Print a summary of the parse outcome."""

    print(f"  Rows Examined: {outcome.total_rows_considered}")
    print(f"  Valid Entries: {outcome.success_count}")
    print(f"  Errors: {outcome.error_count}")

    for week in WeekCycle:
        week_entries = [e for e in outcome.valid_entries if e.week is week]
        if not week_entries:
            continue
        print(f"\n  {week.label}:")
        for day in DayOfWeek:
            count = sum(1 for e in week_entries if e.day is day)
            if count:
                print(f"    {day.value}: {count} entries")

    if outcome.errors:
        print("\n  Errors:")
        for error in outcome.errors[:5]:
            print(f"    {error}")
        if outcome.error_count > 5:
            print(f"    ... and {outcome.error_count - 5} more errors")

    if outcome.valid_entries:
        print("\n  Sample Entries:")
        for i, entry in enumerate(outcome.valid_entries[:3], 1):
            subject = entry.subject[:40] + "..." if len(entry.subject) > 40 else entry.subject
            print(f"    {i}. {entry.week.label} | {entry.day.value} | {entry.period_label} | {subject}")

        if outcome.success_count > 3:
            print(f"    ... and {outcome.success_count - 3} more entries")
    else:
        print("\n  No entries could be extracted; enter the timetable manually.")


def print_validation_report(entries: Iterable[ScheduleEntry]) -> ValidationReport:
    """Validate entries, print the report and return it."""
    report = validate_entries(entries)
    print(format_validation_report(report))
    return report
