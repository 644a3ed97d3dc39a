import sys
import types

import numpy as np
import pytest

from timetable_engine.errors import OCRUnavailableError
from timetable_engine.ocr_extractor import OCRExtractor, pixel_box_to_normalized, polygon_bounds


class FakeEngine:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error

    def ocr(self, image):
        if self.error:
            raise self.error
        return self.result


def quad(x1, y1, x2, y2):
    return [[x1, y1], [x2, y1], [x2, y2], [x1, y2]]


def test_legacy_result_shape(blank_image):
    engine = FakeEngine([[
        [quad(10, 20, 110, 40), ("Maths", 0.98)],
        [quad(10, 60, 50, 80), ("KDN", 0.91)],
    ]])

    fragments = OCRExtractor(engine=engine).extract_fragments(blank_image)

    assert [f.text for f in fragments] == ["Maths", "KDN"]
    maths = fragments[0]
    assert maths.confidence == pytest.approx(0.98)
    assert maths.bbox.x == pytest.approx(0.05)
    assert maths.bbox.y == pytest.approx(0.6)
    assert maths.center_x == pytest.approx(0.3)
    assert maths.center_y == pytest.approx(0.7)


def test_pipeline_result_shape(blank_image):
    engine = FakeEngine([{
        'rec_texts': ['Room 8', '1 Mon'],
        'rec_scores': np.array([0.8, 0.95]),
        'rec_polys': [np.array(quad(100, 80, 150, 95)), np.array(quad(0, 10, 30, 20))],
    }])

    fragments = OCRExtractor(engine=engine).extract_fragments(blank_image)

    # Sorted top of page first
    assert [f.text for f in fragments] == ['1 Mon', 'Room 8']
    assert fragments[1].confidence == pytest.approx(0.8)


def test_pipeline_result_with_flat_boxes(blank_image):
    engine = FakeEngine([{
        'rec_texts': ['KCO'],
        'rec_scores': [0.5],
        'rec_boxes': np.array([[0, 0, 100, 50]]),
    }])

    (fragment,) = OCRExtractor(engine=engine).extract_fragments(blank_image)

    assert fragment.bbox.width == pytest.approx(0.5)
    assert fragment.bbox.y == pytest.approx(0.5)


def test_malformed_and_blank_lines_are_skipped(blank_image):
    engine = FakeEngine([[
        None,
        [quad(0, 0, 10, 10), ("   ", 0.9)],
        [quad(0, 0, 10, 10)],
        [quad(10, 10, 20, 20), ("ok", 0.9)],
    ]])

    fragments = OCRExtractor(engine=engine).extract_fragments(blank_image)

    assert [f.text for f in fragments] == ["ok"]


def test_recognition_failure_returns_no_fragments(blank_image):
    engine = FakeEngine(error=RuntimeError("model crashed"))
    assert OCRExtractor(engine=engine).extract_fragments(blank_image) == []


@pytest.mark.parametrize("image", [None, np.zeros((0, 0, 3), dtype=np.uint8), "not an image"])
def test_invalid_image_returns_no_fragments(image):
    assert OCRExtractor(engine=FakeEngine([])).extract_fragments(image) == []


def test_empty_result(blank_image):
    assert OCRExtractor(engine=FakeEngine([])).extract_fragments(blank_image) == []


def test_missing_paddleocr_raises(monkeypatch):
    monkeypatch.setitem(sys.modules, 'paddleocr', None)
    with pytest.raises(OCRUnavailableError):
        OCRExtractor()


def install_paddleocr(monkeypatch, accepts_use_gpu):
    created = []

    class PaddleOCR:
        def __init__(self, **kwargs):
            if "use_gpu" in kwargs and not accepts_use_gpu:
                raise ValueError("Unknown argument: use_gpu")
            self.kwargs = kwargs
            created.append(self)

    module = types.ModuleType("paddleocr")
    module.PaddleOCR = PaddleOCR
    monkeypatch.setitem(sys.modules, "paddleocr", module)
    return created


def test_gpu_falls_back_to_device_argument(monkeypatch):
    created = install_paddleocr(monkeypatch, accepts_use_gpu=False)

    extractor = OCRExtractor(use_gpu=True)

    assert extractor.ocr.kwargs["device"] == "gpu"
    assert "use_gpu" not in extractor.ocr.kwargs
    assert len(created) == 1


def test_gpu_flag_on_legacy_release(monkeypatch):
    install_paddleocr(monkeypatch, accepts_use_gpu=True)

    extractor = OCRExtractor(use_gpu=True)

    assert extractor.ocr.kwargs["use_gpu"] is True


def test_cpu_passes_no_device(monkeypatch):
    install_paddleocr(monkeypatch, accepts_use_gpu=False)

    extractor = OCRExtractor()

    assert "use_gpu" not in extractor.ocr.kwargs
    assert "device" not in extractor.ocr.kwargs


def test_polygon_bounds():
    assert polygon_bounds(quad(5, 6, 7, 8)) == (5.0, 6.0, 7.0, 8.0)
    assert polygon_bounds([7, 8, 5, 6]) == (5.0, 6.0, 7.0, 8.0)
    assert polygon_bounds("garbage") is None
    assert polygon_bounds([1, 2]) is None


def test_pixel_box_flips_y_axis():
    top = pixel_box_to_normalized(0, 0, 100, 10, 100, 100)
    bottom = pixel_box_to_normalized(0, 90, 100, 100, 100, 100)
    assert top.center_y > bottom.center_y
    assert top.y == pytest.approx(0.9)
    assert bottom.y == pytest.approx(0.0)
