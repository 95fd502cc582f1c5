"""
Line and word segmentation for normalized pages.

Provides:
- Horizontal projection profiles
- Line boundary detection from the profile
- Baseline estimation per line
- Word box estimation from decoded text
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple, Dict, Any
import numpy as np

from .errors import NoLinesDetected
from .images import PixelBuffer, BoundingBox

logger = logging.getLogger(__name__)

DEFAULT_MIN_LINE_HEIGHT = 10
DEFAULT_PROFILE_FRACTION = 0.05


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class LineRegion:
    """A text line found on the page."""
    bbox: BoundingBox
    image: PixelBuffer  # Crop handed to recognition
    baseline: int  # Row within the crop

    def to_dict(self) -> Dict[str, Any]:
        return {"bbox": self.bbox.to_dict(), "baseline": self.baseline}


@dataclass
class WordBox:
    """Estimated position of one word inside a line."""
    text: str
    bbox: BoundingBox
    confidence: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "bbox": self.bbox.to_dict(),
            "confidence": round(self.confidence, 4),
        }


# ============================================================================
# Projection Profiles
# ============================================================================

def projection_profile(buffer: PixelBuffer, dark_threshold: int = 128) -> np.ndarray:
    """Count dark pixels in each row."""
    return np.count_nonzero(buffer.red < dark_threshold, axis=1)


def find_line_boundaries(
    profile: np.ndarray,
    min_line_height: int = DEFAULT_MIN_LINE_HEIGHT,
    fraction: float = DEFAULT_PROFILE_FRACTION
) -> List[Tuple[int, int]]:
    """
    Find runs of rows whose ink count exceeds ``fraction`` of the peak.

    Args:
        profile: Per-row dark pixel counts
        min_line_height: Shorter runs are discarded
        fraction: Threshold as a fraction of the profile maximum

    Returns:
        List of (start, end) row ranges, end exclusive
    """
    profile = np.asarray(profile)
    if profile.size == 0:
        return []

    threshold = profile.max() * fraction
    boundaries = []
    in_line = False
    line_start = 0

    for y, count in enumerate(profile):
        if not in_line and count > threshold:
            in_line = True
            line_start = y
        elif in_line and count <= threshold:
            in_line = False
            if y - line_start >= min_line_height:
                boundaries.append((line_start, y))

    # Run reaching the bottom edge
    if in_line and len(profile) - line_start >= min_line_height:
        boundaries.append((line_start, len(profile)))

    return boundaries


def estimate_baseline(crop: PixelBuffer, dark_threshold: int = 128) -> int:
    """
    Estimate the baseline row of a line crop.

    The baseline is the row with the most ink in the lower half of the
    crop. Without any ink it defaults to 70% of the crop height.
    """
    height = crop.height
    baseline = int(height * 0.7)
    start = int(height * 0.5)

    densities = projection_profile(crop, dark_threshold)[start:]
    if densities.size and densities.max() > 0:
        baseline = start + int(np.argmax(densities))

    return baseline


# ============================================================================
# Segmentation
# ============================================================================

def detect_lines(
    binary: PixelBuffer,
    source: Optional[PixelBuffer] = None,
    min_line_height: int = DEFAULT_MIN_LINE_HEIGHT,
    fraction: float = DEFAULT_PROFILE_FRACTION,
    dark_threshold: int = 128
) -> List[LineRegion]:
    """
    Split a binarized page into text lines.

    Lines are found on ``binary``; crops are taken from ``source`` when
    given (it must have the same size), otherwise from ``binary``.

    Args:
        binary: Binarized, deskewed page
        source: Page to crop recognition images from
        min_line_height: Minimum line height in pixels
        fraction: Profile threshold fraction
        dark_threshold: Intensity below which a pixel counts as ink

    Returns:
        Lines in top-to-bottom order

    Raises:
        NoLinesDetected: If no row run qualifies as a line
    """
    if source is not None and source.size != binary.size:
        raise ValueError(f"Source size {source.size} does not match page size {binary.size}")

    profile = projection_profile(binary, dark_threshold)
    boundaries = find_line_boundaries(profile, min_line_height, fraction)
    if not boundaries:
        raise NoLinesDetected(f"No text lines found in {binary.width}x{binary.height} page")

    crop_source = source if source is not None else binary
    lines = []

    for start, end in boundaries:
        bbox = BoundingBox(x=0, y=start, width=binary.width, height=end - start)
        lines.append(LineRegion(
            bbox=bbox,
            image=crop_source.crop(bbox),
            baseline=estimate_baseline(binary.crop(bbox), dark_threshold)
        ))

    logger.info(f"Detected {len(lines)} text lines")
    return lines


def segment_words(text: str, bbox: BoundingBox, confidence: float = 0.0) -> List[WordBox]:
    """
    Apportion a line's width evenly across the words of its text.

    The boxes are estimates: every word gets the same share of the line
    width regardless of its length.
    """
    words = text.split()
    if not words:
        return []

    count = len(words)
    boxes = []
    for i, word in enumerate(words):
        left = bbox.x + (i * bbox.width) // count
        right = bbox.x + ((i + 1) * bbox.width) // count
        boxes.append(WordBox(
            text=word,
            bbox=BoundingBox(x=left, y=bbox.y, width=right - left, height=bbox.height),
            confidence=confidence
        ))

    return boxes
