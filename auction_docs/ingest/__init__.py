"""Document download, text extraction and photo extraction."""

from .fetcher import DocumentFetcher, classify_document
from .photo_extractor import PhotoExtractor
from .raster import PhotoFilter, FilterReason, split_into_photos, trim_white_borders
from .text_extractor import docx_to_text, pdf_to_text, extract_text

__all__ = [
    "DocumentFetcher",
    "classify_document",
    "PhotoExtractor",
    "PhotoFilter",
    "FilterReason",
    "split_into_photos",
    "trim_white_borders",
    "docx_to_text",
    "pdf_to_text",
    "extract_text",
]
