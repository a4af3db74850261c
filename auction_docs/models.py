"""
Data models for document ingestion.

Plain dataclasses passed between the fetcher, extractors and the pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


class DocumentKind(Enum):
    """Format of a fetched attachment."""

    PDF = "pdf"
    DOCX = "docx"
    UNKNOWN = "unknown"

    @property
    def content_type(self) -> str:
        if self is DocumentKind.DOCX:
            return "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
        return "application/pdf"

    @property
    def extension(self) -> str:
        return "docx" if self is DocumentKind.DOCX else "pdf"


@dataclass(frozen=True)
class DocumentLink:
    """Reference to an attachment of an auction announcement."""

    description: str
    url: str


@dataclass
class FetchedDocument:
    """A downloaded and converted attachment, valid for one processing run."""

    description: str
    url: str
    stored_ref: str
    kind: DocumentKind
    text: Optional[str] = None
    ocr_used: bool = False
    temp_path: Optional[Path] = None  # Released when the run closes
    size_bytes: int = 0

    @property
    def document_id(self) -> str:
        """Stable identifier derived from the stored reference."""
        return Path(self.stored_ref).stem


@dataclass
class ExtractedPhoto:
    """A photograph extracted from a PDF and written to blob storage."""

    stored_ref: str
    width: int
    height: int
    index: int


@dataclass
class CanvasAnalysis:
    """Pixel statistics of one raster sample."""

    is_photo: bool
    has_color: bool
    avg_brightness: float
    variance: float
    avg_saturation: float


@dataclass(frozen=True)
class PhotoRegion:
    """A span along one axis of an image."""

    offset: int
    length: int

    @property
    def end(self) -> int:
        return self.offset + self.length


@dataclass
class FetchResult:
    """Documents that were fetched successfully for one listing."""

    documents: list[FetchedDocument] = field(default_factory=list)
    failed_urls: list[str] = field(default_factory=list)


@dataclass
class ComposedListing:
    """Listing narrative with the document text that was chosen for it."""

    markdown: str
    used_urls: list[str] = field(default_factory=list)
    unused_urls: list[str] = field(default_factory=list)
    ocr_urls: list[str] = field(default_factory=list)


@dataclass
class ListingDocuments:
    """Everything the document subsystem produces for one listing."""

    composed: ComposedListing
    documents: list[FetchedDocument] = field(default_factory=list)
    photos: dict[str, list[ExtractedPhoto]] = field(default_factory=dict)
