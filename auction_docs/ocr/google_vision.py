"""
Google Cloud Vision OCR implementation.

Managed OCR for deployments without a local Tesseract install.
"""

import io
from typing import Optional

from PIL import Image

from ..errors import OcrError
from .base import OCRBase, OCRResult


class GoogleVisionOCR(OCRBase):
    """OCR using Google Cloud Vision API."""

    def __init__(self, language: str = "slv", credentials_path: Optional[str] = None):
        """
        Initialize Google Vision OCR.

        Args:
            language: Language hint for OCR (Tesseract-style code)
            credentials_path: Path to service account credentials JSON
        """
        super().__init__(language)
        self.credentials_path = credentials_path
        self._client: Optional[object] = None

    def _get_client(self):
        """Lazy load Google Cloud Vision client."""
        if self._client is None:
            try:
                from google.cloud import vision

                if self.credentials_path:
                    self._client = vision.ImageAnnotatorClient.from_service_account_json(
                        self.credentials_path
                    )
                else:
                    # Use default credentials (ADC)
                    self._client = vision.ImageAnnotatorClient()
            except ImportError:
                raise ImportError(
                    "google-cloud-vision is required for Google Vision OCR. "
                    "Install with: pip install google-cloud-vision"
                )
        return self._client

    def is_available(self) -> bool:
        """Check if Google Vision is available."""
        try:
            self._get_client()
            return True
        except Exception:
            return False

    def extract_text(self, image: Image.Image) -> OCRResult:
        """Extract text using document text detection."""
        from google.cloud import vision

        client = self._get_client()

        buffer = io.BytesIO()
        image.save(buffer, format="PNG")

        response = client.document_text_detection(
            image=vision.Image(content=buffer.getvalue()),
            image_context=vision.ImageContext(
                language_hints=[self._map_language_code(self.language)]
            ),
        )

        if response.error.message:
            raise OcrError(f"Google Vision API error: {response.error.message}")

        full_text = response.full_text_annotation.text if response.full_text_annotation else ""
        return OCRResult(
            full_text=full_text.strip(),
            language=self.language,
            confidence=1.0 if full_text else 0.0,
        )

    def close(self) -> None:
        """Close the underlying gRPC transport."""
        if self._client is not None:
            self._client.transport.close()
            self._client = None

    def _map_language_code(self, lang: str) -> str:
        """Map Tesseract-style language codes to Google Vision codes."""
        lang_map = {
            "slv": "sl",
            "hrv": "hr",
            "eng": "en",
            "deu": "de",
            "ita": "it",
        }
        return lang_map.get(lang, lang)
