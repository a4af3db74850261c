"""OCR engines and the scanned-PDF fallback."""

from .base import OCRBase, OCRResult
from .local_ocr import TesseractOCR
from .google_vision import GoogleVisionOCR
from .fallback import OcrFallbackEngine, OcrOutcome, OcrState, create_ocr_engine

__all__ = [
    "OCRBase",
    "OCRResult",
    "TesseractOCR",
    "GoogleVisionOCR",
    "OcrFallbackEngine",
    "OcrOutcome",
    "OcrState",
    "create_ocr_engine",
]
