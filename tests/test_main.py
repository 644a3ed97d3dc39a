import json

import numpy as np
import pytest

from timetable_engine.config import EngineSettings
from timetable_engine.errors import SourceReadError, UnsupportedFileError
from timetable_engine.main import (
    ENCODING_ERROR_MESSAGE,
    import_fragments,
    process_timetable,
    save_to_json,
)
from timetable_engine.models import DayOfWeek, ParseError, WeekCycle
from timetable_engine.preprocessor import DocumentPreprocessor


@pytest.fixture
def settings():
    return EngineSettings(column_gap_threshold=0.04, use_gpu=False)


def scanned_page(make_fragment):
    size = dict(width=0.04, height=0.01)
    return [
        make_fragment("2 Wed", 0.05, 0.5, **size),
        make_fragment("Science", 0.2, 0.52, **size),
        make_fragment("DMA", 0.2, 0.50, **size),
        make_fragment("Room 7", 0.2, 0.48, **size),
    ]


def test_process_csv_file(tmp_path, sample_csv, settings, capsys):
    path = tmp_path / "timetable.csv"
    path.write_text(sample_csv, encoding="utf-8")

    outcome = process_timetable(path, settings=settings)

    assert outcome.success_count == 2
    assert outcome.errors[0].row == 4
    output = capsys.readouterr().out
    assert "Processing Timetable: timetable.csv" in output
    assert "Valid Entries: 2" in output


def test_csv_with_byte_order_mark(tmp_path, sample_csv, settings):
    path = tmp_path / "bom.csv"
    path.write_bytes(b"\xef\xbb\xbf" + sample_csv.encode("utf-8"))

    outcome = process_timetable(path, settings=settings)

    assert outcome.success_count == 2
    assert all(error.row != 1 for error in outcome.errors)


def test_undecodable_csv_reports_row_zero(tmp_path, settings):
    path = tmp_path / "latin1.csv"
    path.write_bytes("Week,Day,Period,Subject,Teacher,Room\n1,Monday,1,Fran\xe7ais,ABC,1\n".encode("latin-1"))

    outcome = process_timetable(path, settings=settings)

    assert outcome.valid_entries == ()
    assert outcome.errors == (ParseError(row=0, message=ENCODING_ERROR_MESSAGE),)


def test_process_text_file(tmp_path, settings):
    path = tmp_path / "timetable.txt"
    path.write_text("Week 2\nThursday\nPeriod 4 13:00-13:50 History R9 HTR\n", encoding="utf-8")

    outcome = process_timetable(path, settings=settings)

    (entry,) = outcome.valid_entries
    assert (entry.week, entry.day, entry.period, entry.subject, entry.room, entry.teacher) == (
        WeekCycle.WEEK_2, DayOfWeek.THURSDAY, 4, "History", "9", "HTR",
    )


def test_missing_file(tmp_path, settings):
    with pytest.raises(FileNotFoundError):
        process_timetable(tmp_path / "nope.csv", settings=settings)


def test_unsupported_file(tmp_path, settings):
    path = tmp_path / "timetable.docx"
    path.write_bytes(b"PK")
    with pytest.raises(UnsupportedFileError):
        process_timetable(path, settings=settings)


def test_pdf_uses_text_layer_then_ocr(tmp_path, settings, monkeypatch, make_fragment, fake_recognizer, blank_image):
    path = tmp_path / "timetable.pdf"
    path.write_bytes(b"%PDF-1.4")
    monkeypatch.setattr(
        DocumentPreprocessor,
        "extract_pdf_text",
        lambda self, file_path: ["Week 1\nMonday\n1 Maths R1 ABC", "   "],
    )
    rendered = []

    def render(self, file_path, page_number):
        rendered.append(page_number)
        return blank_image

    monkeypatch.setattr(DocumentPreprocessor, "render_pdf_page", render)
    recognizer = fake_recognizer(scanned_page(make_fragment))

    outcome = process_timetable(path, settings=settings, recognizer=recognizer)

    assert rendered == [2]
    assert recognizer.calls == 1
    assert [(e.week, e.day, e.period, e.subject) for e in outcome.valid_entries] == [
        (WeekCycle.WEEK_1, DayOfWeek.MONDAY, 1, "Maths"),
        (WeekCycle.WEEK_2, DayOfWeek.WEDNESDAY, 1, "Science"),
    ]


def test_unreadable_pdf_yields_empty_outcome(tmp_path, settings, monkeypatch):
    path = tmp_path / "broken.pdf"
    path.write_bytes(b"not a pdf")

    def fail(self, file_path):
        raise SourceReadError("broken")

    monkeypatch.setattr(DocumentPreprocessor, "extract_pdf_text", fail)

    outcome = process_timetable(path, settings=settings)

    assert outcome.valid_entries == ()
    assert outcome.errors == ()


def test_failed_page_render_skips_page(tmp_path, settings, monkeypatch, fake_recognizer):
    path = tmp_path / "scan.pdf"
    path.write_bytes(b"%PDF-1.4")
    monkeypatch.setattr(DocumentPreprocessor, "extract_pdf_text", lambda self, file_path: [""])

    def fail(self, file_path, page_number):
        raise SourceReadError("poppler missing")

    monkeypatch.setattr(DocumentPreprocessor, "render_pdf_page", fail)
    recognizer = fake_recognizer()

    outcome = process_timetable(path, settings=settings, recognizer=recognizer)

    assert outcome.valid_entries == ()
    assert recognizer.calls == 0


def test_process_image(tmp_path, settings, monkeypatch, make_fragment, fake_recognizer, blank_image):
    path = tmp_path / "scan.png"
    path.write_bytes(b"\x89PNG")
    monkeypatch.setattr(DocumentPreprocessor, "load_image", lambda self, file_path: blank_image)

    outcome = process_timetable(
        path,
        settings=settings,
        recognizer=fake_recognizer(scanned_page(make_fragment)),
    )

    assert [e.subject for e in outcome.valid_entries] == ["Science"]


def test_import_fragments_without_geometry_reads_lines(make_fragment):
    fragments = [make_fragment(text, 0.0, 0.0) for text in ["1 Tue", "Art", "ABC", "Room 2"]]

    outcome = import_fragments(fragments)

    (entry,) = outcome.valid_entries
    assert (entry.day, entry.period, entry.subject) == (DayOfWeek.TUESDAY, 1, "Art")


def test_import_fragments_empty():
    assert import_fragments([]).valid_entries == ()


def test_save_to_json(tmp_path, sample_csv, settings):
    from timetable_engine.csv_parser import parse_csv

    outcome = parse_csv(sample_csv)
    output = tmp_path / "out.json"

    save_to_json(outcome, output, source="timetable.csv")

    data = json.loads(output.read_text(encoding="utf-8"))
    assert data['source'] == "timetable.csv"
    assert data['summary'] == {'total_rows_considered': 3, 'valid_entries': 2, 'errors': 1}
    assert data['entries'][0]['subject'] == "AM Registration"
    assert data['entries'][0]['period'] == 0
    assert data['errors'][0]['row'] == 4
    assert data['validation']['is_valid'] is True


def test_preprocessor_resize():
    image = np.zeros((4000, 2000, 3), dtype=np.uint8)
    assert DocumentPreprocessor.resize_for_ocr(image, 3000).shape[:2] == (3000, 1500)
    small = np.zeros((100, 50, 3), dtype=np.uint8)
    assert DocumentPreprocessor.resize_for_ocr(small, 3000) is small


def test_preprocessor_missing_image(tmp_path):
    with pytest.raises(SourceReadError):
        DocumentPreprocessor().load_image(tmp_path / "missing.png")


def test_preprocessor_unreadable_pdf(tmp_path):
    path = tmp_path / "garbage.pdf"
    path.write_bytes(b"this is not a pdf")
    with pytest.raises(SourceReadError):
        DocumentPreprocessor().extract_pdf_text(path)
