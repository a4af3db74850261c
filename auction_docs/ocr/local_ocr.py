"""
Local OCR implementation using Tesseract.

Runs without external API dependencies; the Tesseract language pack for
the configured language must be installed.
"""

import logging
from typing import Optional

from PIL import Image

from ..errors import OcrError
from .base import OCRBase, OCRResult

logger = logging.getLogger(__name__)


class TesseractOCR(OCRBase):
    """OCR using Tesseract (pytesseract)."""

    def __init__(self, language: str = "slv", config: str = ""):
        """
        Initialize Tesseract OCR.

        Args:
            language: Tesseract language code
            config: Additional Tesseract configuration
        """
        super().__init__(language)
        self.config = config
        self._pytesseract: Optional[object] = None

    def _get_tesseract(self):
        """Lazy load pytesseract."""
        if self._pytesseract is None:
            try:
                import pytesseract

                self._pytesseract = pytesseract
            except ImportError:
                raise ImportError(
                    "pytesseract is required for Tesseract OCR. "
                    "Install with: pip install pytesseract"
                )
        return self._pytesseract

    def is_available(self) -> bool:
        """Check if Tesseract is available."""
        try:
            pytesseract = self._get_tesseract()
            pytesseract.get_tesseract_version()
            return True
        except Exception:
            return False

    def extract_text(self, image: Image.Image) -> OCRResult:
        """Extract text using Tesseract."""
        pytesseract = self._get_tesseract()

        try:
            data = pytesseract.image_to_data(
                image,
                lang=self.language,
                config=self.config,
                output_type=pytesseract.Output.DICT,
            )
        except pytesseract.TesseractError as e:
            raise OcrError(f"Tesseract failed: {e}") from e

        words = []
        lines: dict[tuple[int, int, int], list[str]] = {}
        total_conf = 0.0
        for i, raw in enumerate(data["text"]):
            text = raw.strip()
            conf = float(data["conf"][i])
            if not text or conf < 0:
                continue
            key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
            lines.setdefault(key, []).append(text)
            words.append(text)
            total_conf += conf

        full_text = "\n".join(" ".join(line) for line in lines.values())
        avg_confidence = total_conf / len(words) / 100.0 if words else 0.0

        logger.debug(f"Tesseract recognized {len(words)} words (conf={avg_confidence:.2f})")
        return OCRResult(
            full_text=full_text.strip(),
            language=self.language,
            confidence=avg_confidence,
        )
