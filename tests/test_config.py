import pytest
from pydantic import ValidationError

from timetable_engine.config import DEFAULT_COLUMN_GAP_THRESHOLD, EngineSettings


def test_defaults(monkeypatch):
    monkeypatch.delenv("TIMETABLE_COLUMN_GAP_THRESHOLD", raising=False)
    settings = EngineSettings()
    assert settings.column_gap_threshold == DEFAULT_COLUMN_GAP_THRESHOLD
    assert settings.ocr_lang == "en"
    assert settings.use_gpu is False


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("TIMETABLE_COLUMN_GAP_THRESHOLD", "0.08")
    monkeypatch.setenv("TIMETABLE_USE_GPU", "true")

    settings = EngineSettings()

    assert settings.column_gap_threshold == 0.08
    assert settings.use_gpu is True


def test_threshold_must_be_a_fraction():
    with pytest.raises(ValidationError):
        EngineSettings(column_gap_threshold=1.5)
