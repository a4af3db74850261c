"""Tests for the OCR fallback engine."""

from unittest.mock import Mock

import pytest
from PIL import Image

from auction_docs.config import IngestConfig, OCRBackend
from auction_docs.errors import OcrError
from auction_docs.ocr import GoogleVisionOCR, TesseractOCR
from auction_docs.ocr.fallback import (
    OcrFallbackEngine,
    OcrState,
    accept_direct_text,
    create_ocr_engine,
)


@pytest.fixture
def scanned_pdf(pdf_builder, gray_noise):
    """Two image-only pages without a text layer."""
    return (
        pdf_builder()
        .image_page(gray_noise(300, 300, seed=1))
        .image_page(gray_noise(300, 300, seed=2))
        .build()
    )


class TestAcceptDirectText:
    """Tests for the direct text threshold."""

    def test_above_threshold(self):
        outcome = accept_direct_text("x" * 51, 50)
        assert outcome.state == OcrState.DONE
        assert not outcome.ocr_used

    def test_at_threshold(self):
        assert accept_direct_text("x" * 50, 50) is None

    def test_whitespace_is_not_counted(self):
        assert accept_direct_text("x " * 50 + "\n\n\n", 50) is None


class TestOcrFallbackEngine:
    """Tests for OcrFallbackEngine.convert."""

    def test_text_pdf_skips_ocr(self, pdf_builder, fake_ocr):
        pdf = pdf_builder().text_page("A" * 51).build()
        engine = OcrFallbackEngine(engine_factory=lambda: fake_ocr(["unused"]))

        outcome = engine.convert(pdf)

        assert outcome.text == "A" * 51
        assert not outcome.ocr_used
        assert outcome.state == OcrState.DONE
        assert outcome.transitions == [OcrState.TEXT_EXTRACTED, OcrState.DONE]
        assert fake_ocr.instances == []

    def test_short_text_triggers_ocr(self, pdf_builder, fake_ocr):
        pdf = pdf_builder().text_page("A" * 50).build()
        engine = OcrFallbackEngine(engine_factory=lambda: fake_ocr(["recognized text"]))

        outcome = engine.convert(pdf)

        assert outcome.ocr_used
        assert outcome.text == "recognized text"
        assert outcome.state == OcrState.OCR_DONE

    def test_scanned_pages_joined(self, scanned_pdf, fake_ocr):
        engine = OcrFallbackEngine(engine_factory=lambda: fake_ocr(["page one", "page two"]))

        outcome = engine.convert(scanned_pdf)

        assert outcome.ocr_used
        assert outcome.text == "page one\n\npage two"
        assert outcome.pages_recognized == 2
        assert outcome.transitions == [
            OcrState.TEXT_EXTRACTED,
            OcrState.NEEDS_OCR,
            OcrState.OCR_RUNNING,
            OcrState.OCR_DONE,
        ]

    def test_blank_pages_are_skipped(self, scanned_pdf, fake_ocr):
        engine = OcrFallbackEngine(engine_factory=lambda: fake_ocr(["  \n", "only page"]))

        outcome = engine.convert(scanned_pdf)

        assert outcome.text == "only page"
        assert outcome.pages_recognized == 1

    def test_ocr_without_text_fails(self, scanned_pdf, fake_ocr):
        engine = OcrFallbackEngine(engine_factory=lambda: fake_ocr([]))

        outcome = engine.convert(scanned_pdf)

        assert outcome.text == ""
        assert not outcome.ocr_used
        assert outcome.state == OcrState.OCR_FAILED

    def test_ocr_error_keeps_direct_text(self, pdf_builder, fake_ocr):
        pdf = pdf_builder().text_page("short").build()
        engine = OcrFallbackEngine(
            engine_factory=lambda: fake_ocr(error=OcrError("engine crashed"))
        )

        outcome = engine.convert(pdf)

        assert outcome.text == "short"
        assert not outcome.ocr_used
        assert outcome.state == OcrState.OCR_FAILED

    def test_unreadable_pdf_fails(self, fake_ocr):
        engine = OcrFallbackEngine(engine_factory=lambda: fake_ocr(["never"]))

        outcome = engine.convert(b"garbage")

        assert outcome.state == OcrState.OCR_FAILED
        assert outcome.text == ""

    def test_engine_per_conversion_is_closed(self, scanned_pdf, fake_ocr):
        engine = OcrFallbackEngine(engine_factory=lambda: fake_ocr(["a", "b"]))

        engine.convert(scanned_pdf)
        engine.convert(scanned_pdf)

        assert len(fake_ocr.instances) == 2
        assert all(instance.closed for instance in fake_ocr.instances)
        assert fake_ocr.instances[0] is not fake_ocr.instances[1]

    def test_custom_threshold(self, pdf_builder, fake_ocr):
        config = IngestConfig()
        config.policy.ocr_min_text_chars = 3
        pdf = pdf_builder().text_page("abcd").build()
        engine = OcrFallbackEngine(config, engine_factory=lambda: fake_ocr(["x"]))

        assert engine.convert(pdf).state == OcrState.DONE


class TestCreateOcrEngine:
    """Tests for backend selection."""

    def test_tesseract_backend(self):
        engine = create_ocr_engine(IngestConfig(ocr_language="eng"))
        assert isinstance(engine, TesseractOCR)
        assert engine.language == "eng"

    def test_google_vision_backend(self):
        config = IngestConfig(ocr_backend=OCRBackend.GOOGLE_VISION)
        engine = create_ocr_engine(config)
        assert isinstance(engine, GoogleVisionOCR)
        assert engine.language == "slv"


class TestTesseractOCR:
    """Tests for TesseractOCR word grouping."""

    def test_words_grouped_into_lines(self):
        engine = TesseractOCR()
        engine._pytesseract = Mock()
        engine._pytesseract.image_to_data.return_value = {
            "text": ["Cenitveno", "poročilo", "", "Ljubljana"],
            "conf": ["90", "80", "-1", "70"],
            "block_num": [1, 1, 1, 2],
            "par_num": [1, 1, 1, 1],
            "line_num": [1, 1, 1, 1],
        }

        result = engine.extract_text(Image.new("RGB", (10, 10)))

        assert result.full_text == "Cenitveno poročilo\nLjubljana"
        assert result.confidence == pytest.approx(0.8)
        assert result.language == "slv"

    def test_available_when_binary_responds(self):
        engine = TesseractOCR()
        engine._pytesseract = Mock()
        engine._pytesseract.get_tesseract_version.return_value = "5.3.0"

        assert engine.is_available()

    def test_unavailable_when_binary_missing(self):
        engine = TesseractOCR()
        engine._pytesseract = Mock()
        engine._pytesseract.get_tesseract_version.side_effect = OSError("tesseract not found")

        assert not engine.is_available()
