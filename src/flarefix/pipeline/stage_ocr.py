"""OCR Stage - Recover page text from a rendered raster.

Uses Tesseract OCR. Each recognized text line is one region; regions are
joined with newlines in the order Tesseract reports them, which is its
detection order and not a verified reading order.
"""

import logging
from typing import Optional

import cv2
import numpy as np
import pytesseract
from PIL import Image

from flarefix.config import settings
from flarefix.errors import OCRFailure
from flarefix.models import Page

logger = logging.getLogger(__name__)


def to_ocr_image(image: np.ndarray) -> Image.Image:
    """Convert an RGB or grayscale raster to the 8-bit grayscale PIL image Tesseract reads.

    Args:
        image: Image as numpy array (H, W), (H, W, 3) or (H, W, 4).

    Returns:
        PIL image in mode "L".
    """
    if image.ndim == 2:
        gray = image
    elif image.ndim == 3 and image.shape[2] == 3:
        gray = cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)
    elif image.ndim == 3 and image.shape[2] == 4:
        gray = cv2.cvtColor(image, cv2.COLOR_RGBA2GRAY)
    else:
        raise ValueError(f"Unexpected image shape: {image.shape}")
    return Image.fromarray(gray.astype(np.uint8))


def preprocess_for_ocr(image: np.ndarray) -> np.ndarray:
    """Binarize and denoise a grayscale raster.

    Args:
        image: Grayscale image.

    Returns:
        Preprocessed image.
    """
    # Binarization using Otsu's method
    _, binary = cv2.threshold(
        image,
        0,
        255,
        cv2.THRESH_BINARY + cv2.THRESH_OTSU,
    )

    return cv2.fastNlMeansDenoising(binary, h=10)


class TesseractOCR:
    """OCR engine using Tesseract.

    Returns one string per recognized line, keeping Tesseract's output order.
    """

    def __init__(
        self,
        language: Optional[str] = None,
        psm: Optional[int] = None,
        oem: Optional[int] = None,
        config: Optional[str] = None,
    ):
        """Initialize Tesseract OCR.

        Args:
            language: Tesseract language code(s), e.g., 'eng', 'eng+deu'.
            psm: Page segmentation mode (3 = fully automatic).
            oem: OCR Engine mode (3 = default, based on what's available).
            config: Additional Tesseract config string.
        """
        self.language = language or settings.ocr_language
        self.psm = settings.ocr_psm if psm is None else psm
        self.oem = settings.ocr_oem if oem is None else oem
        self.config = config or ""

    def _build_config(self) -> str:
        """Build Tesseract configuration string."""
        config_parts = [
            f"--psm {self.psm}",
            f"--oem {self.oem}",
        ]
        if self.config:
            config_parts.append(self.config)
        return " ".join(config_parts)

    def recognize_regions(self, image: Image.Image) -> list[str]:
        """Recognize text lines in an image.

        Args:
            image: Grayscale PIL image.

        Returns:
            Line strings in engine order; empty if nothing was recognized.

        Raises:
            pytesseract.TesseractError: If Tesseract fails.
            pytesseract.TesseractNotFoundError: If Tesseract is not installed.
        """
        data = pytesseract.image_to_data(
            image,
            lang=self.language,
            config=self._build_config(),
            output_type=pytesseract.Output.DICT,
        )

        lines: dict[tuple[int, int, int], list[str]] = {}
        for i in range(len(data["text"])):
            word = str(data["text"][i]).strip()
            conf = float(data["conf"][i])

            # Skip layout rows and empty words
            if not word or conf < 0:
                continue

            key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
            lines.setdefault(key, []).append(word)

        # dicts keep insertion order, i.e. Tesseract's output order
        return [" ".join(words) for words in lines.values()]


class OCRService:
    """Recovers a page's text by rendering it and running OCR.

    Failures are per page: `recognize` returns None instead of raising.
    """

    def __init__(
        self,
        engine: Optional[TesseractOCR] = None,
        preprocess: Optional[bool] = None,
    ):
        """Initialize OCR service.

        Args:
            engine: Recognition engine with `recognize_regions(image)`.
            preprocess: Binarize/denoise before recognition (default from settings).
        """
        self.engine = engine or TesseractOCR()
        self.preprocess = settings.ocr_preprocess if preprocess is None else preprocess

    def recognize(self, page: Page, renderer) -> Optional[str]:
        """Render a page and recognize its text.

        Args:
            page: Page to recover.
            renderer: Object with `render_to_image(page) -> np.ndarray`.

        Returns:
            Recognized text, or None if nothing could be recognized.
        """
        try:
            image = renderer.render_to_image(page)
        except OCRFailure as exc:
            logger.warning("%s", exc)
            return None
        return self.recognize_image(page, image)

    def recognize_image(self, page: Page, image: np.ndarray) -> Optional[str]:
        """Recognize text in an already rendered page image.

        Safe to call from worker threads.

        Returns:
            Recognized text, or None if nothing could be recognized.
        """
        try:
            regions = self._run_engine(page, image)
        except OCRFailure as exc:
            logger.warning("%s", exc)
            return None

        if not regions:
            logger.info("Page %d: OCR recognized no text", page.page_number)
            return None

        return "\n".join(regions)

    def _run_engine(self, page: Page, image: np.ndarray) -> list[str]:
        try:
            pil_image = to_ocr_image(image)
            if self.preprocess:
                pil_image = Image.fromarray(preprocess_for_ocr(np.asarray(pil_image)))
            return self.engine.recognize_regions(pil_image)
        except (
            pytesseract.TesseractError,
            pytesseract.TesseractNotFoundError,
            RuntimeError,
            ValueError,
        ) as exc:
            raise OCRFailure(page.index, str(exc)) from exc
