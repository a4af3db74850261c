"""
Auction document ingestion.

Turns the attachments of real-estate auction announcements into usable
material by:
1. Downloading PDF/DOCX attachments and extracting their text
2. Falling back to OCR for scanned PDFs when the listing needs it
3. Extracting embedded color photographs, splitting composite images
"""

from .config import IngestConfig, OCRBackend
from .models import DocumentLink, ExtractedPhoto, FetchedDocument
from .orchestrator import DocumentPipeline
from .run import ProcessingRun

__all__ = [
    "IngestConfig",
    "OCRBackend",
    "DocumentLink",
    "ExtractedPhoto",
    "FetchedDocument",
    "DocumentPipeline",
    "ProcessingRun",
]
