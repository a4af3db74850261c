"""
OCR fallback for scanned PDFs.

Direct text extraction is tried first; only when it yields too little text
are the pages rasterized and run through OCR. Each step is a strategy that
returns an outcome or ``None`` to hand over to the next one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from PIL import Image
from tqdm import tqdm

from ..config import IngestConfig, OCRBackend
from ..errors import ConversionError, OcrError
from ..ingest.text_extractor import pdf_to_text
from ..utils import stripped_length
from .base import OCRBase
from .google_vision import GoogleVisionOCR
from .local_ocr import TesseractOCR

try:
    import fitz  # PyMuPDF
except ImportError:
    fitz = None

logger = logging.getLogger(__name__)


class OcrState(Enum):
    """Conversion states of one document."""

    TEXT_EXTRACTED = "text_extracted"
    DONE = "done"
    NEEDS_OCR = "needs_ocr"
    OCR_RUNNING = "ocr_running"
    OCR_DONE = "ocr_done"
    OCR_FAILED = "ocr_failed"


@dataclass
class OcrOutcome:
    """Final text of a conversion and how it was produced."""

    text: str
    ocr_used: bool
    state: OcrState
    pages_recognized: int = 0

    @property
    def transitions(self) -> list[OcrState]:
        """States the conversion went through to reach its final state."""
        if self.state == OcrState.DONE:
            return [OcrState.TEXT_EXTRACTED, OcrState.DONE]
        return [OcrState.TEXT_EXTRACTED, OcrState.NEEDS_OCR, OcrState.OCR_RUNNING, self.state]


def accept_direct_text(text: str, min_chars: int) -> Optional[OcrOutcome]:
    """Accept extracted text if it has more than ``min_chars`` visible characters."""
    if stripped_length(text) > min_chars:
        return OcrOutcome(text=text, ocr_used=False, state=OcrState.DONE)
    return None


def create_ocr_engine(config: IngestConfig) -> OCRBase:
    """Create a fresh OCR engine for the configured backend."""
    if config.ocr_backend == OCRBackend.TESSERACT:
        return TesseractOCR(language=config.ocr_language)
    elif config.ocr_backend == OCRBackend.GOOGLE_VISION:
        return GoogleVisionOCR(
            language=config.ocr_language,
            credentials_path=config.google_credentials_path,
        )
    raise ValueError(f"Unknown OCR backend: {config.ocr_backend}")


class OcrFallbackEngine:
    """Convert PDF bytes to text, falling back to OCR for scanned documents."""

    def __init__(
        self,
        config: Optional[IngestConfig] = None,
        engine_factory: Optional[Callable[[], OCRBase]] = None,
    ):
        """
        Initialize the fallback engine.

        Args:
            config: Ingestion configuration (OCR backend, language, scale)
            engine_factory: Creates one OCR engine per conversion; defaults
                to the configured backend
        """
        if fitz is None:
            raise ImportError(
                "PyMuPDF is required for PDF rasterization. "
                "Install with: pip install PyMuPDF"
            )
        self.config = config or IngestConfig()
        self.engine_factory = engine_factory or (lambda: create_ocr_engine(self.config))

    def convert(self, data: bytes) -> OcrOutcome:
        """
        Convert a PDF to text.

        Args:
            data: Raw PDF file bytes

        Returns:
            OcrOutcome; ``ocr_used`` is True only if OCR produced the text
        """
        try:
            direct_text = pdf_to_text(data)
        except ConversionError as e:
            logger.warning(f"Direct text extraction failed, treating as empty: {e}")
            direct_text = ""

        strategies: list[Callable[[bytes, str], Optional[OcrOutcome]]] = [
            lambda _, text: accept_direct_text(text, self.config.policy.ocr_min_text_chars),
            self._recognize_pages,
        ]
        for strategy in strategies:
            outcome = strategy(data, direct_text)
            if outcome is not None:
                return outcome

        return OcrOutcome(text=direct_text, ocr_used=False, state=OcrState.OCR_FAILED)

    def _recognize_pages(self, data: bytes, direct_text: str) -> Optional[OcrOutcome]:
        logger.info("PDF without text, performing OCR...")
        try:
            pages = self.ocr_pages(data)
        except Exception as e:
            logger.warning(f"OCR error: {e}")
            return None

        if not pages:
            logger.warning("OCR found no text")
            return None

        logger.info(f"OCR successful, {len(pages)} page(s) recognized")
        return OcrOutcome(
            text="\n\n".join(pages),
            ocr_used=True,
            state=OcrState.OCR_DONE,
            pages_recognized=len(pages),
        )

    def ocr_pages(self, data: bytes) -> list[str]:
        """
        Rasterize every page and OCR it with a dedicated engine instance.

        Pages are rendered and released one at a time.

        Returns:
            Non-empty page texts in page order

        Raises:
            OcrError: If the PDF cannot be opened for rasterization
        """
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            raise OcrError(f"Cannot open PDF for OCR: {e}") from e

        scale = self.config.ocr_scale
        texts = []
        try:
            with self.engine_factory() as engine:
                for page_num in tqdm(
                    range(doc.page_count), desc="OCR", disable=not self.config.verbose
                ):
                    logger.debug(f"OCR processing page {page_num + 1}/{doc.page_count}")
                    pix = doc.load_page(page_num).get_pixmap(matrix=fitz.Matrix(scale, scale))
                    image = Image.frombytes("RGB", (pix.width, pix.height), pix.samples)
                    pix = None

                    text = engine.extract_text(image).full_text
                    image.close()
                    if text.strip():
                        texts.append(text)
        finally:
            doc.close()

        return texts
