"""Shared fixtures for auction document tests."""

import io

import fitz
import numpy as np
import pytest
from PIL import Image

from auction_docs.ocr.base import OCRBase, OCRResult
from auction_docs.storage import MemoryBlobStore


def png_bytes(array: np.ndarray) -> bytes:
    """Encode an RGB or grayscale uint8 array as PNG."""
    buffer = io.BytesIO()
    Image.fromarray(array).save(buffer, format="PNG")
    return buffer.getvalue()


def noise_rgb(width: int, height: int, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)


def noise_gray(width: int, height: int, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(height, width), dtype=np.uint8)


def composite_with_strip(seed: int = 0) -> np.ndarray:
    """
    1300x600 image: a 600x600 noise photo, a 20 column white gap, then a
    680 wide area that is colored only in its top 100 rows.
    """
    image = np.full((600, 1300, 3), 255, dtype=np.uint8)
    image[:, :600] = noise_rgb(600, 600, seed)
    image[:100, 620:] = (200, 30, 30)
    return image


class PdfBuilder:
    """Small helper for building test PDFs in memory."""

    def __init__(self):
        self.doc = fitz.open()

    def text_page(self, text: str) -> "PdfBuilder":
        page = self.doc.new_page()
        page.insert_text((72, 72), text)
        return self

    def image_page(self, array: np.ndarray) -> "PdfBuilder":
        page = self.doc.new_page()
        page.insert_image(fitz.Rect(72, 72, 372, 372), stream=png_bytes(array))
        return self

    def shared_image_pages(self, array: np.ndarray, count: int) -> "PdfBuilder":
        """Add pages that all reference one embedded image object."""
        first = self.doc.new_page()
        xref = first.insert_image(fitz.Rect(72, 72, 372, 372), stream=png_bytes(array))
        for _ in range(count - 1):
            self.doc.new_page().insert_image(fitz.Rect(72, 72, 372, 372), xref=xref)
        return self

    def build(self) -> bytes:
        data = self.doc.tobytes()
        self.doc.close()
        return data


class FakeOCR(OCRBase):
    """OCR engine returning canned page texts in order."""

    instances = []

    def __init__(self, pages=None, error=None):
        super().__init__(language="slv")
        self.pages = list(pages or [])
        self.error = error
        self.calls = 0
        self.closed = False
        FakeOCR.instances.append(self)

    def extract_text(self, image):
        if self.error is not None:
            raise self.error
        text = self.pages[self.calls] if self.calls < len(self.pages) else ""
        self.calls += 1
        return OCRResult(full_text=text)

    def is_available(self):
        return True

    def close(self):
        self.closed = True


@pytest.fixture
def blob_store():
    return MemoryBlobStore()


@pytest.fixture
def pdf_builder():
    return PdfBuilder


@pytest.fixture
def fake_ocr():
    FakeOCR.instances = []
    return FakeOCR


@pytest.fixture
def photo_pdf():
    """Three pages: a text layer long enough to skip OCR, a color photo and a grayscale scan."""
    return (
        PdfBuilder()
        .text_page("Cenitveno porocilo o vrednosti stanovanjske nepremicnine v Ljubljani")
        .image_page(noise_rgb(600, 600, seed=1))
        .image_page(noise_gray(600, 600, seed=2))
        .build()
    )


@pytest.fixture
def rgb_noise():
    return noise_rgb


@pytest.fixture
def gray_noise():
    return noise_gray


@pytest.fixture
def strip_composite():
    return composite_with_strip
