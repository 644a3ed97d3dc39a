"""Exception hierarchy for the extraction pipeline.

The parsers themselves never raise for bad data; these are raised at the I/O
edge (reading files, invoking OCR) where a caller has to react.
"""


class ExtractionError(Exception):
    """Base exception for all extraction errors."""

    pass


class UnsupportedFileError(ExtractionError, ValueError):
    """The file extension is not one of the supported source kinds."""

    pass


class SourceReadError(ExtractionError):
    """The source exists but its bytes could not be read or decoded."""

    pass


class OCRUnavailableError(ExtractionError):
    """The OCR backend could not be loaded (missing paddleocr / paddlepaddle)."""

    pass
