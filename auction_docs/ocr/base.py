"""
Base OCR interface.

Defines the abstract base class for OCR engines. An engine instance is
scoped to a single document conversion: create it, recognize every page,
then close it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from PIL import Image


@dataclass
class OCRResult:
    """Result from OCR processing of one page image."""

    full_text: str
    language: str = "slv"
    confidence: float = 0.0


class OCRBase(ABC):
    """Abstract base class for OCR implementations."""

    def __init__(self, language: str = "slv"):
        """
        Initialize the OCR engine.

        Args:
            language: Language code for OCR, fixed per deployment
        """
        self.language = language

    @abstractmethod
    def extract_text(self, image: Image.Image) -> OCRResult:
        """
        Extract text from an image.

        Args:
            image: PIL Image to process

        Returns:
            OCRResult with extracted text and metadata
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this OCR backend is available."""
        pass

    def close(self) -> None:
        """Release engine resources. Engines are never reused after closing."""

    def __enter__(self) -> "OCRBase":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
