"""Command line interface for the timetable engine."""

import argparse
import dataclasses
import sys
from pathlib import Path
from typing import List, Optional

from .config import get_settings
from .errors import ExtractionError
from .log import setup_logging
from .main import print_validation_report, process_timetable, save_to_json
from .utils import SUPPORTED_EXTENSIONS, merge_duplicate_entries


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="timetable-extract",
        description="Extract a two-week school timetable from CSV, PDF or scanned images",
        epilog=f"Supported formats: {', '.join(sorted(SUPPORTED_EXTENSIONS))}",
    )
    parser.add_argument("file", help="Path to timetable file")
    parser.add_argument(
        "--output",
        "-o",
        help="Output JSON file path (default: <file stem>_extracted.json)",
    )
    parser.add_argument("--gpu", action="store_true", help="Use GPU acceleration for OCR")
    parser.add_argument(
        "--column-gap",
        type=float,
        help="Column gap threshold for scanned grids (0-1, normalized page width)",
    )
    parser.add_argument(
        "--dedupe",
        action="store_true",
        help="Drop entries that are identical in every field",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 1 when validation finds issues",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    settings = get_settings()
    overrides = {}
    if args.gpu:
        overrides["use_gpu"] = True
    if args.column_gap is not None:
        if not 0.0 < args.column_gap < 1.0:
            print(f"\n✗ Error: --column-gap must be between 0 and 1, got {args.column_gap}")
            return 2
        overrides["column_gap_threshold"] = args.column_gap
    if args.verbose:
        overrides["log_level"] = "DEBUG"
    if args.json_logs:
        overrides["log_json"] = True
    if overrides:
        settings = settings.model_copy(update=overrides)

    setup_logging(json_output=settings.log_json, log_level=settings.log_level)

    output_path = args.output or Path(args.file).stem + "_extracted.json"

    try:
        outcome = process_timetable(args.file, settings=settings)
    except FileNotFoundError as e:
        print(f"\n✗ File Error: {e}")
        return 1
    except ValueError as e:
        print(f"\n✗ Validation Error: {e}")
        return 1
    except ExtractionError as e:
        print(f"\n✗ Processing Error: {e}")
        return 1

    if args.dedupe:
        entries = merge_duplicate_entries(outcome.valid_entries)
        dropped = outcome.success_count - len(entries)
        outcome = dataclasses.replace(outcome, valid_entries=entries)
        print(f"✓ Removed {dropped} duplicate entr{'y' if dropped == 1 else 'ies'}")

    print("\n" + "=" * 70)
    print("VALIDATION")
    print("=" * 70)
    report = print_validation_report(outcome.valid_entries)

    print("\n" + "=" * 70)
    print("SAVING RESULTS")
    print("=" * 70)
    save_to_json(outcome, output_path, report=report, source=str(args.file))

    if args.strict and not report.is_valid:
        print("\n✗ Validation issues found (--strict)")
        return 1

    print("\n✓ Processing completed successfully!")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
