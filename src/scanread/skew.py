"""
Skew detection and correction for scanned pages.

The skew angle is found by a projection-profile search: dark pixels are
rotated back about the page center for each candidate angle and counted
per row, each pixel split between the two rows it falls between. Text
lines that line up with the rows give a sharply peaked profile, so the
angle whose profile has the largest variance wins.

Angles use the convention of rotate_image: a page produced by
rotate_image(page, a) has a skew of a, and rotate_image(page, -a) undoes it.
"""

import logging
import math
from typing import Tuple
import numpy as np

from .images import PixelBuffer

logger = logging.getLogger(__name__)

DEFAULT_MAX_ANGLE = 15.0
DEFAULT_ANGLE_STEP = 0.5
MIN_CORRECTION_ANGLE = 0.5


def _candidate_angles(max_angle: float, step: float) -> np.ndarray:
    count = int(round(2 * max_angle / step))
    return -max_angle + step * np.arange(count + 1)


def detect_skew_angle(
    buffer: PixelBuffer,
    max_angle: float = DEFAULT_MAX_ANGLE,
    step: float = DEFAULT_ANGLE_STEP,
    dark_threshold: int = 128
) -> float:
    """
    Detect the skew angle of a page in degrees.

    Candidate angles run from -max_angle to +max_angle in ``step``
    increments. When several angles give the same variance, the first one
    in scan order is kept. Splitting each pixel between rows means any
    tilt spreads a level line over more rows, so level lines report 0.

    Args:
        buffer: Grayscale or binarized page
        max_angle: Largest angle to test, in degrees
        step: Angle increment, in degrees
        dark_threshold: Intensity below which a pixel counts as ink

    Returns:
        Detected angle in [-max_angle, max_angle]; 0.0 for a blank page
    """
    if max_angle <= 0 or step <= 0:
        raise ValueError("max_angle and step must be positive")

    height, width = buffer.height, buffer.width
    ys, xs = np.nonzero(buffer.red < dark_threshold)
    if ys.size == 0:
        return 0.0

    cx = width / 2
    cy = height / 2
    dx = xs - cx
    dy = ys - cy

    best_angle = 0.0
    max_variance = -1.0

    for angle in _candidate_angles(max_angle, step):
        radians = math.radians(angle)
        rotated_y = -dx * math.sin(radians) + dy * math.cos(radians) + cy
        lower = np.floor(rotated_y)
        upper_weight = rotated_y - lower
        lower = lower.astype(np.int64)

        rows = np.concatenate([lower, lower + 1])
        weights = np.concatenate([1.0 - upper_weight, upper_weight])
        inside = (rows >= 0) & (rows < height)
        profile = np.bincount(rows[inside], weights=weights[inside], minlength=height)
        variance = float(np.var(profile))

        if variance > max_variance:
            max_variance = variance
            best_angle = float(angle)

    logger.debug(f"Detected skew angle: {best_angle:.1f} degrees")
    return best_angle


def rotate_image(buffer: PixelBuffer, degrees: float) -> PixelBuffer:
    """
    Rotate an image about its center, keeping its size.

    Positive angles turn the content clockwise on screen (y axis pointing
    down). Pixels are sampled with nearest-neighbor lookup; pixels whose
    source falls outside the image become opaque white.

    Args:
        buffer: Input image
        degrees: Rotation angle in degrees

    Returns:
        Rotated image of the same dimensions
    """
    import cv2

    if buffer.is_empty:
        return PixelBuffer(np.full_like(buffer.data, 255))

    height, width = buffer.height, buffer.width
    center = (width / 2, height / 2)
    # OpenCV treats positive angles as counter-clockwise
    matrix = cv2.getRotationMatrix2D(center, -degrees, 1.0)
    rotated = cv2.warpAffine(
        np.ascontiguousarray(buffer.data), matrix, (width, height),
        flags=cv2.INTER_NEAREST,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=(255, 255, 255, 255)
    )

    return PixelBuffer(rotated)


def correct_skew(
    buffer: PixelBuffer,
    max_angle: float = DEFAULT_MAX_ANGLE,
    step: float = DEFAULT_ANGLE_STEP,
    min_correction: float = MIN_CORRECTION_ANGLE,
    dark_threshold: int = 128
) -> Tuple[PixelBuffer, float]:
    """
    Detect and undo page skew.

    Angles smaller than ``min_correction`` are ignored and the input comes
    back unchanged with an angle of 0.

    Returns:
        Tuple of (deskewed image, detected angle in degrees)
    """
    angle = detect_skew_angle(buffer, max_angle=max_angle, step=step, dark_threshold=dark_threshold)

    if abs(angle) < min_correction:
        return buffer, 0.0

    logger.info(f"Correcting skew of {angle:.1f} degrees")
    return rotate_image(buffer, -angle), angle
