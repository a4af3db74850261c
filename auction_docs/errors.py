"""Exceptions raised while ingesting auction documents."""

from typing import Optional


class IngestError(Exception):
    """Base class for document ingestion errors."""


class DownloadError(IngestError):
    """A document could not be downloaded (network failure or non-2xx)."""

    def __init__(self, url: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{message}: {url}")
        self.url = url
        self.status_code = status_code


class ConversionError(IngestError):
    """Document bytes could not be converted to text."""


class OcrError(IngestError):
    """The OCR engine failed or recognized no text."""


class PhotoDecodeError(IngestError):
    """A single embedded image could not be decoded."""


class PhotoExtractionError(IngestError):
    """The PDF structure could not be walked for images."""
