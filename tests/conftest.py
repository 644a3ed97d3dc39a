import numpy as np
import pytest
import structlog

from timetable_engine.log import configure_default_logging
from timetable_engine.models import BoundingBox, Fragment


def _fragment(text, cx, cy, width=0.0, height=0.0):
    """Fragment centered on (cx, cy) in normalized page coordinates."""
    return Fragment(
        text=text,
        bbox=BoundingBox(x=cx - width / 2, y=cy - height / 2, width=width, height=height),
    )


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    structlog.reset_defaults()
    configure_default_logging()


@pytest.fixture
def make_fragment():
    return _fragment


@pytest.fixture
def blank_image():
    return np.zeros((100, 200, 3), dtype=np.uint8)


class FakeRecognizer:
    """Stands in for OCRExtractor; returns canned fragments per call."""

    def __init__(self, *pages):
        self.pages = list(pages)
        self.calls = 0

    def extract_fragments(self, image):
        self.calls += 1
        return self.pages.pop(0) if self.pages else []


@pytest.fixture
def fake_recognizer():
    return FakeRecognizer


SAMPLE_CSV = (
    "Week,Day,Period,Subject,Teacher,Room\n"
    "1,Monday,TUT,AM Registration,KCO,512\n"
    "1,Monday,1,Mathematics,KDN,113\n"
    "3,Tuesday,1,English,BBR,8\n"
)


@pytest.fixture
def sample_csv():
    return SAMPLE_CSV
