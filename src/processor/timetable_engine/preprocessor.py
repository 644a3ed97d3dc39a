"""Document loading: PDF text layers and page images for OCR."""

from pathlib import Path
from typing import List, Union

import cv2
import numpy as np
import pdfplumber
from pdf2image import convert_from_path
from PIL import Image

from .errors import SourceReadError
from .log import get_logger

logger = get_logger(__name__)


class DocumentPreprocessor:
    """Reads PDF text and prepares page images for OCR."""

    def __init__(self, dpi: int = 300, max_dimension: int = 3000):
        """
        Initialize the document preprocessor.

        Args:
            dpi: Resolution for rendering PDF pages (300 gives good OCR quality)
            max_dimension: Larger images are scaled down to this width/height
        """
        self.dpi = dpi
        self.max_dimension = max_dimension

    def extract_pdf_text(self, file_path: Union[str, Path]) -> List[str]:
        """
        Extract the text layer of every page.

        Args:
            file_path: Path to PDF file

        Returns:
            One string per page; empty for pages without a text layer

        Raises:
            SourceReadError: If the PDF cannot be opened or parsed
        """
        try:
            with pdfplumber.open(str(file_path)) as pdf:
                pages = [page.extract_text() or "" for page in pdf.pages]
        except Exception as e:
            raise SourceReadError(f"Error reading PDF {file_path}: {e}") from e

        logger.debug("pdf_text_extracted", path=str(file_path), pages=len(pages))
        return pages

    def render_pdf_page(self, file_path: Union[str, Path], page_number: int) -> np.ndarray:
        """
        Render one PDF page to a preprocessed BGR image.

        Args:
            file_path: Path to PDF file
            page_number: 1-based page number

        Returns:
            Page image as numpy array (BGR)

        Raises:
            SourceReadError: If the page cannot be rendered
        """
        try:
            images = convert_from_path(
                str(file_path),
                dpi=self.dpi,
                first_page=page_number,
                last_page=page_number,
                fmt='RGB',
            )
        except Exception as e:
            raise SourceReadError(f"Error rendering page {page_number} of {file_path}: {e}") from e

        if not images:
            raise SourceReadError(f"Page {page_number} of {file_path} produced no image")

        # PIL gives RGB; OpenCV and PaddleOCR work in BGR
        img_bgr = cv2.cvtColor(np.array(images[0]), cv2.COLOR_RGB2BGR)
        return self._preprocess_image(img_bgr)

    def load_image(self, file_path: Union[str, Path]) -> np.ndarray:
        """
        Load and preprocess an image file.

        Args:
            file_path: Path to image file

        Returns:
            Preprocessed image (BGR)

        Raises:
            SourceReadError: If the image cannot be decoded
        """
        img_array = cv2.imread(str(file_path))

        if img_array is None:
            # OpenCV cannot read some TIFF variants; PIL takes the first frame
            try:
                with Image.open(file_path) as img:
                    img_array = cv2.cvtColor(np.array(img.convert('RGB')), cv2.COLOR_RGB2BGR)
            except (OSError, ValueError) as e:
                raise SourceReadError(f"Failed to load image: {file_path}") from e

        logger.debug("image_loaded", path=str(file_path), shape=img_array.shape)
        return self._preprocess_image(img_array)

    def _preprocess_image(self, image: np.ndarray) -> np.ndarray:
        """
        Apply preprocessing to improve OCR accuracy.

        Args:
            image: Input image as numpy array (BGR format from OpenCV)

        Returns:
            Preprocessed image (BGR format)
        """
        image = self.resize_for_ocr(image, self.max_dimension)

        denoised = cv2.fastNlMeansDenoisingColored(image, None, 10, 10, 7, 21)

        # Enhance contrast using CLAHE on the L channel
        lab = cv2.cvtColor(denoised, cv2.COLOR_BGR2LAB)
        l, a, b = cv2.split(lab)
        clahe = cv2.createCLAHE(clipLimit=3.0, tileGridSize=(8, 8))
        l = clahe.apply(l)
        enhanced = cv2.merge([l, a, b])
        return cv2.cvtColor(enhanced, cv2.COLOR_LAB2BGR)

    @staticmethod
    def resize_for_ocr(image: np.ndarray, max_dimension: int = 3000) -> np.ndarray:
        """
        Resize image if too large, maintaining aspect ratio.

        Args:
            image: Input image
            max_dimension: Maximum width or height

        Returns:
            Resized image
        """
        h, w = image.shape[:2]

        if max(h, w) > max_dimension:
            scale = max_dimension / max(h, w)
            new_w = int(w * scale)
            new_h = int(h * scale)
            return cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_AREA)

        return image
