"""
Ingestion configuration module.

Defines thresholds and settings for document ingestion and photo extraction.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


class OCRBackend(Enum):
    """OCR backend options."""

    TESSERACT = "tesseract"
    GOOGLE_VISION = "google_vision"


@dataclass
class PhotoFilterThresholds:
    """Size and shape limits applied before and after splitting."""

    min_width: int = 200
    min_height: int = 200
    max_aspect_ratio: float = 4.0  # Rejects strips and banner logos
    min_pixels: int = 100_000


@dataclass
class ClassificationThresholds:
    """Thresholds for telling color photographs from scans and blanks."""

    sample_step: int = 40  # Every Nth pixel is sampled
    min_variance: float = 1500.0
    max_brightness: float = 240.0
    min_saturation: float = 5.0


@dataclass
class SplitThresholds:
    """Thresholds for splitting composites and trimming white borders."""

    separator_brightness: float = 240.0
    min_separator_rows: int = 5
    min_photo_height: int = 50
    min_separator_cols: int = 3
    min_photo_width: int = 100

    trim_brightness: float = 245.0
    min_content_ratio: float = 0.05
    trim_tolerance: int = 4  # Skip trimming if already this tight


@dataclass
class PolicyThresholds:
    """Thresholds for the document inclusion policy."""

    ocr_min_text_chars: int = 50  # Direct text must exceed this to skip OCR
    sufficient_content_chars: int = 100
    short_listing_chars: int = 3000
    authoritative_markers: tuple[str, ...] = ("cenitveno poročilo",)


@dataclass
class IngestConfig:
    """Configuration for the auction document ingestion pipeline."""

    # OCR settings
    ocr_backend: OCRBackend = OCRBackend.TESSERACT
    ocr_language: str = "slv"
    ocr_scale: float = 2.0
    google_credentials_path: Optional[str] = None

    # Download settings
    request_timeout: float = 60.0
    max_workers: int = 4
    user_agent: str = "auction-docs/0.1"

    # Blob storage
    storage_dir: Path = field(default_factory=lambda: Path("storage"))

    # Photo extraction
    photo_filter: PhotoFilterThresholds = field(default_factory=PhotoFilterThresholds)
    classification: ClassificationThresholds = field(
        default_factory=ClassificationThresholds
    )
    split: SplitThresholds = field(default_factory=SplitThresholds)
    jpeg_quality: int = 90

    # Inclusion policy
    policy: PolicyThresholds = field(default_factory=PolicyThresholds)
    section_label: str = "Dokument"

    # Debug/logging
    verbose: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        if isinstance(self.storage_dir, str):
            self.storage_dir = Path(self.storage_dir)
        if isinstance(self.ocr_backend, str):
            self.ocr_backend = OCRBackend(self.ocr_backend)

        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if not 1 <= self.jpeg_quality <= 100:
            raise ValueError("jpeg_quality must be between 1 and 100")
        if self.ocr_scale <= 0:
            raise ValueError("ocr_scale must be positive")

    @classmethod
    def from_env(cls, **kwargs) -> "IngestConfig":
        """
        Create configuration from environment variables.

        Recognized variables: OCR_BACKEND, OCR_LANGUAGE, STORAGE_DIR,
        REQUEST_TIMEOUT, MAX_WORKERS, GOOGLE_APPLICATION_CREDENTIALS.
        Explicit keyword arguments win over the environment.
        """
        env = {}
        if os.getenv("OCR_BACKEND"):
            env["ocr_backend"] = OCRBackend(os.environ["OCR_BACKEND"].lower())
        if os.getenv("OCR_LANGUAGE"):
            env["ocr_language"] = os.environ["OCR_LANGUAGE"]
        if os.getenv("STORAGE_DIR"):
            env["storage_dir"] = Path(os.environ["STORAGE_DIR"])
        if os.getenv("REQUEST_TIMEOUT"):
            env["request_timeout"] = float(os.environ["REQUEST_TIMEOUT"])
        if os.getenv("MAX_WORKERS"):
            env["max_workers"] = int(os.environ["MAX_WORKERS"])
        if os.getenv("GOOGLE_APPLICATION_CREDENTIALS"):
            env["google_credentials_path"] = os.environ["GOOGLE_APPLICATION_CREDENTIALS"]
        env.update(kwargs)
        return cls(**env)
