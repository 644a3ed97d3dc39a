"""Engine configuration loaded from environment variables."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings

# Column gap tuned on the scanned school timetables the grid parser targets.
DEFAULT_COLUMN_GAP_THRESHOLD = 0.04


class EngineSettings(BaseSettings):
    """Settings for the extraction pipeline.

    Values come from ``TIMETABLE_*`` environment variables or a local .env
    file. The parsers never read these directly; the pipeline passes them in.
    """

    column_gap_threshold: float = Field(
        default=DEFAULT_COLUMN_GAP_THRESHOLD,
        gt=0.0,
        lt=1.0,
        description="Normalized x distance that separates two period columns",
    )

    # OCR fallback
    ocr_lang: str = Field(default="en", description="PaddleOCR language code")
    use_gpu: bool = Field(default=False, description="Run PaddleOCR on the GPU")
    pdf_dpi: int = Field(
        default=300,
        ge=72,
        description="Resolution used when rendering scanned PDF pages for OCR",
    )
    max_image_dimension: int = Field(
        default=3000,
        ge=500,
        description="Images larger than this (px) are downscaled before OCR",
    )

    # Logging
    log_json: bool = Field(default=False, description="Output logs in JSON format")
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "TIMETABLE_",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


_settings: Optional[EngineSettings] = None


def get_settings() -> EngineSettings:
    """Get the settings singleton.

    Returns:
        EngineSettings instance
    """
    global _settings
    if _settings is None:
        _settings = EngineSettings()
    return _settings
