"""
Pixel heuristics for embedded PDF images.

Decides whether a raster is a color photograph, splits composite images
on near-white separator bands and trims white borders. Everything works on
RGBA ``numpy.uint8`` arrays of shape ``(height, width, 4)``.
"""

import logging
from enum import Enum
from typing import Optional

import numpy as np

from ..config import ClassificationThresholds, PhotoFilterThresholds, SplitThresholds
from ..errors import PhotoDecodeError
from ..models import CanvasAnalysis, PhotoRegion

logger = logging.getLogger(__name__)

LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float32)


class FilterReason(Enum):
    """Reason for rejecting an image on size or shape."""

    PASSED = "passed"
    TOO_SMALL = "too_small"
    ASPECT_RATIO = "aspect_ratio_too_extreme"
    TOO_FEW_PIXELS = "too_few_pixels"


def to_rgba(samples: bytes, width: int, height: int) -> np.ndarray:
    """
    Convert raw image samples to a uniform RGBA array.

    The channel count is inferred from the buffer length: 1 channel is
    grayscale, 3 channels RGB and 4 channels RGBA.

    Raises:
        PhotoDecodeError: If the buffer does not match any supported layout
    """
    if width <= 0 or height <= 0:
        raise PhotoDecodeError(f"Invalid image size {width}x{height}")

    arr = np.frombuffer(samples, dtype=np.uint8)
    pixels = width * height

    if arr.size == pixels * 4:
        return arr.reshape(height, width, 4).copy()

    rgba = np.empty((height, width, 4), dtype=np.uint8)
    rgba[..., 3] = 255
    if arr.size == pixels * 3:
        rgba[..., :3] = arr.reshape(height, width, 3)
    elif arr.size == pixels:
        rgba[..., :3] = arr.reshape(height, width, 1)
    else:
        raise PhotoDecodeError(
            f"Unsupported sample layout: {arr.size} bytes for {width}x{height}"
        )
    return rgba


def luma(rgba: np.ndarray) -> np.ndarray:
    """Per-pixel luma (0.299R + 0.587G + 0.114B) as float32."""
    return rgba[..., :3] @ LUMA_WEIGHTS


class PhotoFilter:
    """
    Classify rasters as color photographs using local heuristics.

    - Size and aspect ratio limits (cheap, metadata only)
    - Luma variance and brightness (photo vs. blank/scan)
    - Average saturation (color vs. grayscale)
    """

    def __init__(
        self,
        size: Optional[PhotoFilterThresholds] = None,
        classification: Optional[ClassificationThresholds] = None,
    ):
        self.size = size or PhotoFilterThresholds()
        self.classification = classification or ClassificationThresholds()

    def check_size(self, width: int, height: int) -> FilterReason:
        """Check dimensions before any pixel work."""
        if width < self.size.min_width or height < self.size.min_height:
            return FilterReason.TOO_SMALL

        aspect_ratio = max(width, height) / min(width, height)
        if aspect_ratio > self.size.max_aspect_ratio:
            return FilterReason.ASPECT_RATIO

        if width * height < self.size.min_pixels:
            return FilterReason.TOO_FEW_PIXELS

        return FilterReason.PASSED

    def analyze(self, rgba: np.ndarray) -> CanvasAnalysis:
        """
        Compute sampled pixel statistics of an RGBA array.

        Every ``sample_step``-th pixel in row-major order is sampled.
        """
        samples = rgba.reshape(-1, 4)[:: self.classification.sample_step, :3]
        samples = samples.astype(np.float64)

        gray = samples @ LUMA_WEIGHTS
        avg_brightness = float(gray.mean())
        variance = float((gray * gray).mean() - avg_brightness * avg_brightness)
        avg_saturation = float((samples.max(axis=1) - samples.min(axis=1)).mean())

        return CanvasAnalysis(
            is_photo=(
                variance > self.classification.min_variance
                and avg_brightness < self.classification.max_brightness
            ),
            has_color=avg_saturation > self.classification.min_saturation,
            avg_brightness=avg_brightness,
            variance=variance,
            avg_saturation=avg_saturation,
        )


def detect_regions(
    profile: np.ndarray,
    separator_brightness: float,
    min_separator: int,
    min_length: int,
) -> list[PhotoRegion]:
    """
    Find content spans along one axis of a brightness profile.

    A position is a separator candidate if its average luma is at least
    ``separator_brightness``. A run of ``min_separator`` candidates closes
    the current span; spans shorter than ``min_length`` are dropped.
    """
    regions = []
    start = -1
    separator_count = 0

    for pos, value in enumerate(profile):
        if value >= separator_brightness:
            separator_count += 1
            if start != -1 and separator_count >= min_separator:
                length = pos - separator_count + 1 - start
                if length >= min_length:
                    regions.append(PhotoRegion(offset=start, length=length))
                start = -1
        else:
            separator_count = 0
            if start == -1:
                start = pos

    if start != -1:
        length = len(profile) - start
        if length >= min_length:
            regions.append(PhotoRegion(offset=start, length=length))

    return regions


def trim_white_borders(
    rgba: np.ndarray, thresholds: Optional[SplitThresholds] = None
) -> np.ndarray:
    """
    Shrink an image to its content bounding box.

    A row counts as content if at least ``min_content_ratio`` of its pixels
    are darker than ``trim_brightness``; columns are judged only within the
    content rows. The input is returned unchanged when the box is within
    ``trim_tolerance`` pixels of the full size.
    """
    t = thresholds or SplitThresholds()
    height, width = rgba.shape[:2]
    dark = luma(rgba) < t.trim_brightness

    content_rows = np.flatnonzero(dark.mean(axis=1) >= t.min_content_ratio)
    top, bottom = (content_rows[0], content_rows[-1]) if content_rows.size else (0, height - 1)

    content_cols = np.flatnonzero(
        dark[top : bottom + 1].mean(axis=0) >= t.min_content_ratio
    )
    left, right = (content_cols[0], content_cols[-1]) if content_cols.size else (0, width - 1)

    new_width = max(1, right - left + 1)
    new_height = max(1, bottom - top + 1)

    if new_width >= width - t.trim_tolerance and new_height >= height - t.trim_tolerance:
        return rgba

    return rgba[top : bottom + 1, left : right + 1]


def split_into_photos(
    rgba: np.ndarray, thresholds: Optional[SplitThresholds] = None
) -> list[np.ndarray]:
    """
    Split a composite image into individual photos.

    Horizontal strips are cut on bands of near-white rows; each strip is
    then cut on bands of near-white columns. A strip yields one output per
    vertical region when at least two are found, otherwise itself. Every
    output is border-trimmed.
    """
    t = thresholds or SplitThresholds()
    height = rgba.shape[0]

    row_profile = luma(rgba).mean(axis=1)
    h_regions = detect_regions(
        row_profile, t.separator_brightness, t.min_separator_rows, t.min_photo_height
    ) or [PhotoRegion(offset=0, length=height)]

    photos = []
    for h_region in h_regions:
        strip = rgba[h_region.offset : h_region.end]

        col_profile = luma(strip).mean(axis=0)
        v_regions = detect_regions(
            col_profile, t.separator_brightness, t.min_separator_cols, t.min_photo_width
        )

        if len(v_regions) > 1:
            for v_region in v_regions:
                photos.append(trim_white_borders(strip[:, v_region.offset : v_region.end], t))
        else:
            photos.append(trim_white_borders(strip, t))

    logger.debug(f"Split {rgba.shape[1]}x{height} image into {len(photos)} photo(s)")
    return photos
