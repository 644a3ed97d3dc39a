"""OCR extraction using PaddleOCR.

This is the text-recognition collaborator used for pages that have no text
layer. It produces Fragment objects in the coordinate system the grid parser
expects: normalized 0..1, origin bottom-left, larger y higher on the page.
"""

from typing import Any, List, Optional, Sequence

import numpy as np

from .errors import OCRUnavailableError
from .log import get_logger
from .models import BoundingBox, Fragment

logger = get_logger(__name__)


class OCRExtractor:
    """Handles OCR extraction from page images using PaddleOCR."""

    def __init__(self, use_gpu: bool = False, lang: str = 'en', engine: Any = None):
        """
        Initialize OCR extractor.

        Args:
            use_gpu: Whether to use GPU acceleration (requires paddlepaddle-gpu)
            lang: Language code for OCR (default: 'en')
            engine: Pre-built object exposing ``ocr(image)``; PaddleOCR is
                created when omitted

        Raises:
            OCRUnavailableError: If paddleocr cannot be imported
        """
        if engine is None:
            try:
                from paddleocr import PaddleOCR
            except ImportError as exc:
                raise OCRUnavailableError(
                    "paddleocr is required for scanned pages. "
                    "Install with: pip install 'timetable-engine[ocr]'"
                ) from exc

            options = dict(
                use_angle_cls=True,  # rotated text
                lang=lang,
                det_db_box_thresh=0.3,  # faint text
                det_db_unclip_ratio=2.0,  # expand detected boxes slightly
            )
            if use_gpu:
                try:
                    engine = PaddleOCR(use_gpu=True, **options)
                except (TypeError, ValueError):
                    # 3.x rejects use_gpu with ValueError and selects the device instead
                    engine = PaddleOCR(device='gpu', **options)
            else:
                engine = PaddleOCR(**options)
        self.ocr = engine

    def extract_fragments(self, image: np.ndarray) -> List[Fragment]:
        """
        Recognize text on one page image.

        Args:
            image: Page image as numpy array (BGR format from OpenCV)

        Returns:
            Fragments sorted top-to-bottom then left-to-right. An empty list
            when the image is unusable or recognition fails.
        """
        if image is None or not isinstance(image, np.ndarray) or image.size == 0:
            logger.warning("ocr_invalid_image", image_type=type(image).__name__)
            return []

        height, width = image.shape[:2]

        try:
            result = self.ocr.ocr(image)
        except Exception:
            # Recognition failure only costs this page its entries.
            logger.exception("ocr_failed")
            return []

        if not result:
            logger.info("ocr_no_results")
            return []

        fragments = self._to_fragments(result, width, height)
        fragments.sort(key=lambda f: (-f.center_y, f.center_x))
        logger.debug("ocr_extracted", fragments=len(fragments))
        return fragments

    def _to_fragments(self, result: Sequence[Any], width: int, height: int) -> List[Fragment]:
        """
        Normalize PaddleOCR output into fragments.

        PaddleOCR has shipped two result shapes: older versions return a list
        of ``(polygon, (text, confidence))`` pairs per page, newer pipelines a
        dict per page with ``rec_texts``, ``rec_scores`` and ``rec_polys`` (or
        ``rec_boxes``). Both are handled.
        """
        first = result[0]
        fragments: List[Fragment] = []

        if isinstance(first, dict) and 'rec_texts' in first:
            texts = first.get('rec_texts')
            texts = [] if texts is None else list(texts)
            scores = first.get('rec_scores')
            scores = [] if scores is None else list(scores)
            polys = first.get('rec_polys')
            if polys is None:
                polys = first.get('rec_boxes')

            for idx, text in enumerate(texts):
                poly = polys[idx] if polys is not None and idx < len(polys) else None
                confidence = float(scores[idx]) if idx < len(scores) else 0.0
                fragment = self._make_fragment(text, poly, confidence, width, height)
                if fragment is not None:
                    fragments.append(fragment)
            return fragments

        lines = first if isinstance(first, list) else result
        for line in lines or []:
            try:
                polygon, (text, confidence) = line[0], line[1]
                confidence = float(confidence)
            except (IndexError, TypeError, ValueError):
                logger.debug("ocr_malformed_line", line=repr(line)[:80])
                continue
            fragment = self._make_fragment(text, polygon, confidence, width, height)
            if fragment is not None:
                fragments.append(fragment)

        return fragments

    @staticmethod
    def _make_fragment(
        text: Any,
        points: Any,
        confidence: float,
        width: int,
        height: int,
    ) -> Optional[Fragment]:
        text = str(text).strip() if text is not None else ""
        if not text or points is None:
            return None

        bounds = polygon_bounds(points)
        if bounds is None:
            return None

        x1, y1, x2, y2 = bounds
        return Fragment(
            text=text,
            bbox=pixel_box_to_normalized(x1, y1, x2, y2, width, height),
            confidence=confidence,
        )


def polygon_bounds(points: Any) -> Optional[tuple]:
    """
    Axis-aligned bounds of an OCR polygon or box.

    Args:
        points: Four [x, y] points, or a flat [x1, y1, x2, y2] box

    Returns:
        (min_x, min_y, max_x, max_y) in pixels, or None if unreadable
    """
    try:
        array = np.asarray(points, dtype=float)
    except (TypeError, ValueError):
        return None

    if array.ndim == 1 and array.size == 4:
        x1, y1, x2, y2 = array.tolist()
        return min(x1, x2), min(y1, y2), max(x1, x2), max(y1, y2)

    if array.ndim == 2 and array.shape[0] >= 3 and array.shape[1] >= 2:
        xs, ys = array[:, 0], array[:, 1]
        return float(xs.min()), float(ys.min()), float(xs.max()), float(ys.max())

    return None


def pixel_box_to_normalized(
    x1: float,
    y1: float,
    x2: float,
    y2: float,
    width: int,
    height: int,
) -> BoundingBox:
    """
    Convert a pixel box (origin top-left) into a normalized bottom-left box.

    Args:
        x1, y1, x2, y2: Pixel bounds with y growing downwards
        width, height: Image size in pixels

    Returns:
        BoundingBox in 0..1 coordinates with y growing upwards
    """
    width = max(float(width), 1.0)
    height = max(float(height), 1.0)
    return BoundingBox(
        x=x1 / width,
        y=1.0 - (y2 / height),
        width=(x2 - x1) / width,
        height=(y2 - y1) / height,
    )
