"""
Photo extraction module using PyMuPDF.

Walks the embedded raster images of a PDF, keeps real color photographs,
splits composite images into their parts and uploads the results as JPEG.
"""

import io
import logging
from typing import Iterator, Optional

import numpy as np
from PIL import Image

from ..config import IngestConfig
from ..errors import PhotoDecodeError, PhotoExtractionError
from ..models import ExtractedPhoto
from ..storage import BlobStore
from .raster import FilterReason, PhotoFilter, split_into_photos, to_rgba

try:
    import fitz  # PyMuPDF
except ImportError:
    fitz = None

logger = logging.getLogger(__name__)


class PhotoExtractor:
    """Extract qualifying photographs embedded in PDF documents."""

    def __init__(self, blob_store: BlobStore, config: Optional[IngestConfig] = None):
        """
        Initialize the photo extractor.

        Args:
            blob_store: Sink the JPEG outputs are written to
            config: Thresholds for filtering, splitting and encoding
        """
        if fitz is None:
            raise ImportError(
                "PyMuPDF is required for PDF photo extraction. "
                "Install with: pip install PyMuPDF"
            )
        self.blob_store = blob_store
        self.config = config or IngestConfig()
        self.photo_filter = PhotoFilter(self.config.photo_filter, self.config.classification)

    def extract(self, data: bytes, document_id: str) -> list[ExtractedPhoto]:
        """
        Extract photos from PDF bytes.

        Args:
            data: Raw PDF file bytes
            document_id: Identifier of the owning document, used in storage keys

        Returns:
            Extracted photos in document order; empty if the PDF is unreadable
        """
        logger.info(f"Extracting photos from PDF {document_id}")
        photos: list[ExtractedPhoto] = []

        try:
            for rgba in self._iter_photos(data, document_id):
                try:
                    photos.append(self._store(rgba, document_id, len(photos)))
                except Exception as e:
                    logger.warning(f"Failed to store photo from {document_id}: {e}")
        except Exception as e:
            logger.warning(f"Failed to extract photos from PDF {document_id}: {e}")
            return []

        logger.info(f"PDF photo extraction complete for {document_id}: {len(photos)} photo(s)")
        return photos

    def _open(self, data: bytes) -> "fitz.Document":
        try:
            return fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            raise PhotoExtractionError(f"Cannot open PDF: {e}") from e

    def _iter_photos(self, data: bytes, document_id: str) -> Iterator[np.ndarray]:
        """Yield RGBA arrays of qualifying photos, one page at a time."""
        doc = self._open(data)
        try:
            seen: set[int] = set()
            for page_num in range(doc.page_count):
                try:
                    candidates = self._page_image_refs(doc, page_num, seen)
                except Exception as e:
                    logger.warning(
                        f"Error reading images of page {page_num + 1} in {document_id}: {e}"
                    )
                    continue

                for xref in candidates:
                    try:
                        photos = self._process_image(doc, xref, page_num, document_id)
                    except Exception as e:
                        # A broken image never aborts the page
                        logger.debug(f"Skipping image xref={xref} on page {page_num + 1}: {e}")
                        continue
                    yield from photos
        finally:
            doc.close()

    def _page_image_refs(
        self, doc: "fitz.Document", page_num: int, seen: set[int]
    ) -> list[int]:
        """Collect unseen image xrefs of a page that pass the size pre-filter."""
        page = doc.load_page(page_num)
        refs = []
        for img_info in page.get_images(full=True):
            xref, width, height = img_info[0], img_info[2], img_info[3]
            if xref in seen:
                continue
            seen.add(xref)

            reason = self.photo_filter.check_size(width, height)
            if reason is not FilterReason.PASSED:
                logger.debug(f"Image xref={xref} {width}x{height}: SKIP ({reason.value})")
                continue
            refs.append(xref)
        return refs

    def _process_image(
        self, doc: "fitz.Document", xref: int, page_num: int, document_id: str
    ) -> list[np.ndarray]:
        rgba = self._decode(doc, xref)

        analysis = self.photo_filter.analyze(rgba)
        if not (analysis.is_photo and analysis.has_color):
            logger.debug(
                f"Image xref={xref}: not a color photo "
                f"(variance={analysis.variance:.0f}, brightness={analysis.avg_brightness:.0f}, "
                f"saturation={analysis.avg_saturation:.0f})"
            )
            return []

        parts = split_into_photos(rgba, self.config.split)
        kept = []
        for part in parts:
            height, width = part.shape[:2]
            if self.photo_filter.check_size(width, height) is FilterReason.PASSED:
                kept.append(part)

        logger.info(
            f"Found color photo in PDF {document_id} page {page_num + 1}: "
            f"variance={analysis.variance:.0f}, brightness={analysis.avg_brightness:.0f}, "
            f"saturation={analysis.avg_saturation:.0f}, split={len(parts)}, kept={len(kept)}"
        )
        return kept

    def _decode(self, doc: "fitz.Document", xref: int) -> np.ndarray:
        """Decode an embedded image into an RGBA array."""
        try:
            pix = fitz.Pixmap(doc, xref)
            if pix.alpha:
                pix = fitz.Pixmap(pix, 0)
            if pix.colorspace is not None and pix.colorspace.n > 3:
                pix = fitz.Pixmap(fitz.csRGB, pix)
            width, height, samples = pix.width, pix.height, pix.samples
        except Exception as e:
            raise PhotoDecodeError(f"Cannot decode image xref={xref}: {e}") from e
        finally:
            pix = None

        return to_rgba(samples, width, height)

    def _store(self, rgba: np.ndarray, document_id: str, index: int) -> ExtractedPhoto:
        height, width = rgba.shape[:2]
        jpeg = encode_jpeg(rgba, self.config.jpeg_quality)
        key = f"images/{document_id}-photo-{index}.jpg"
        stored_ref = self.blob_store.put(jpeg, key, "image/jpeg")
        return ExtractedPhoto(stored_ref=stored_ref, width=width, height=height, index=index)


def encode_jpeg(rgba: np.ndarray, quality: int = 90) -> bytes:
    """Encode an RGBA array as JPEG (alpha is dropped)."""
    image = Image.fromarray(np.ascontiguousarray(rgba[..., :3]))
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()
