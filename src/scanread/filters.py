"""
Pixel filters for the scanread pipeline.

Every filter takes a PixelBuffer and returns a new one of the same size;
the input is never modified. Filters that work on intensity read the red
channel (the image is expected to be grayscale already) and write the
result to R, G and B, leaving alpha untouched.

Provides:
- Grayscale conversion
- Median denoising and 3x3 sharpening
- Contrast/brightness adjustment and CLAHE
- Adaptive (integral image), Otsu and global thresholding
- Morphological dilation and inversion
"""

import logging
import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from .images import PixelBuffer

logger = logging.getLogger(__name__)

# Luminosity weights for R, G, B
LUMA_WEIGHTS = (0.299, 0.587, 0.114)

DEFAULT_CLAHE_TILE = 64
DEFAULT_ADAPTIVE_C = 5


def _round_half_up(values: np.ndarray) -> np.ndarray:
    return np.floor(values + 0.5)


def _to_uint8(values: np.ndarray) -> np.ndarray:
    return np.clip(values, 0, 255).astype(np.uint8)


# ============================================================================
# Color / Intensity
# ============================================================================

def grayscale(buffer: PixelBuffer) -> PixelBuffer:
    """
    Convert to grayscale using the luminosity formula.

    gray = round(0.299 R + 0.587 G + 0.114 B), written to all three color
    channels. Applying it twice gives the same result as applying it once.
    """
    rgb = buffer.data[:, :, :3].astype(np.float64)
    r_w, g_w, b_w = LUMA_WEIGHTS
    gray = _round_half_up(r_w * rgb[:, :, 0] + g_w * rgb[:, :, 1] + b_w * rgb[:, :, 2])
    return buffer.with_gray(_to_uint8(gray))


def invert(buffer: PixelBuffer) -> PixelBuffer:
    """Invert the color channels (255 - value)."""
    return buffer.with_rgb(255 - buffer.data[:, :, :3])


def adjust_contrast(
    buffer: PixelBuffer,
    contrast: float = 1.0,
    brightness: float = 1.0
) -> PixelBuffer:
    """
    Stretch contrast around mid-gray, then scale brightness.

    Args:
        buffer: Input image
        contrast: Contrast multiplier (1.0 = unchanged)
        brightness: Brightness multiplier (1.0 = unchanged)

    Returns:
        Adjusted image
    """
    rgb = buffer.data[:, :, :3].astype(np.float64)
    values = ((rgb / 255.0 - 0.5) * contrast + 0.5) * 255.0
    values *= brightness
    return buffer.with_rgb(_to_uint8(_round_half_up(values)))


# ============================================================================
# Neighborhood Filters
# ============================================================================

def median_filter(buffer: PixelBuffer, radius: int = 1) -> PixelBuffer:
    """
    Replace each pixel with the median of its (2r+1)^2 neighborhood.

    Pixels closer than ``radius`` to an edge have no full neighborhood and
    pass through unchanged.

    Args:
        buffer: Grayscale input image
        radius: Neighborhood radius in pixels

    Returns:
        Denoised image
    """
    if radius < 0:
        raise ValueError(f"radius must be >= 0, got {radius}")

    k = 2 * radius + 1
    if radius == 0 or buffer.height < k or buffer.width < k:
        return buffer.copy()

    windows = sliding_window_view(buffer.red, (k, k))
    medians = np.median(windows, axis=(2, 3))

    out = buffer.data.copy()
    out[radius:buffer.height - radius, radius:buffer.width - radius, :3] = \
        medians.astype(np.uint8)[:, :, np.newaxis]

    logger.debug(f"Applied median filter (radius={radius})")
    return PixelBuffer(out)


def sharpen(buffer: PixelBuffer, strength: float = 1.0) -> PixelBuffer:
    """
    Sharpen with a 3x3 kernel: center 1 + 4s, edge neighbors -s.

    Border pixels are left unchanged; output is clamped to [0, 255].
    """
    if buffer.height < 3 or buffer.width < 3:
        return buffer.copy()

    plane = buffer.red.astype(np.float64)
    center = 1.0 + 4.0 * strength
    neighbors = plane[:-2, 1:-1] + plane[2:, 1:-1] + plane[1:-1, :-2] + plane[1:-1, 2:]
    total = center * plane[1:-1, 1:-1] - strength * neighbors

    out = buffer.data.copy()
    out[1:-1, 1:-1, :3] = _to_uint8(_round_half_up(total))[:, :, np.newaxis]
    return PixelBuffer(out)


def dilate(buffer: PixelBuffer, radius: int = 1) -> PixelBuffer:
    """
    Morphological dilation: each pixel becomes the maximum of its neighborhood.

    Border pixels within ``radius`` of an edge are left unchanged.
    """
    if radius < 0:
        raise ValueError(f"radius must be >= 0, got {radius}")

    k = 2 * radius + 1
    if radius == 0 or buffer.height < k or buffer.width < k:
        return buffer.copy()

    windows = sliding_window_view(buffer.red, (k, k))
    maxima = windows.max(axis=(2, 3))

    out = buffer.data.copy()
    out[radius:buffer.height - radius, radius:buffer.width - radius, :3] = maxima[:, :, np.newaxis]
    return PixelBuffer(out)


# ============================================================================
# Histogram Equalization
# ============================================================================

def clahe_enhance(
    buffer: PixelBuffer,
    clip_limit: float = 2.0,
    tile_size: int = DEFAULT_CLAHE_TILE
) -> PixelBuffer:
    """
    Contrast Limited Adaptive Histogram Equalization.

    Each tile_size x tile_size tile is equalized independently: its
    histogram is clipped at clip_limit * pixels / 256, the clipped excess is
    spread evenly over all 256 bins, and pixels are mapped through the
    normalized cumulative distribution.

    Args:
        buffer: Grayscale input image
        clip_limit: Histogram clip factor (higher = more contrast)
        tile_size: Tile edge length in pixels

    Returns:
        Locally equalized image
    """
    if clip_limit <= 0:
        raise ValueError(f"clip_limit must be positive, got {clip_limit}")
    if tile_size < 1:
        raise ValueError(f"tile_size must be >= 1, got {tile_size}")

    plane = buffer.red
    result = plane.copy()
    height, width = plane.shape

    for ty in range(0, height, tile_size):
        for tx in range(0, width, tile_size):
            tile = plane[ty:ty + tile_size, tx:tx + tile_size]
            pixel_count = tile.size

            histogram = np.bincount(tile.ravel(), minlength=256).astype(np.int64)

            clip_value = max(1, int(clip_limit * pixel_count / 256))
            excess = int(np.maximum(histogram - clip_value, 0).sum())
            histogram = np.minimum(histogram, clip_value)
            histogram += excess // 256

            cdf = np.cumsum(histogram)
            nonzero = cdf[cdf > 0]
            cdf_min = int(nonzero[0]) if nonzero.size else 0
            denominator = pixel_count - cdf_min
            if denominator <= 0:
                continue

            lut = _to_uint8(_round_half_up((cdf - cdf_min) * (255.0 / denominator)))
            result[ty:ty + tile_size, tx:tx + tile_size] = lut[tile]

    logger.debug(f"Applied CLAHE (clip={clip_limit}, tile={tile_size})")
    return buffer.with_gray(result)


# ============================================================================
# Thresholding
# ============================================================================

def adaptive_threshold(
    buffer: PixelBuffer,
    block_size: int = 15,
    c: float = DEFAULT_ADAPTIVE_C
) -> PixelBuffer:
    """
    Binarize against the local mean of a block_size x block_size window.

    The window sum comes from a summed-area table built once, so each pixel
    costs O(1). Windows are clipped at the image border. A pixel becomes 0
    when it is darker than (local mean - c), otherwise 255.

    Args:
        buffer: Grayscale input image
        block_size: Window edge length in pixels
        c: Constant subtracted from the local mean

    Returns:
        Binary image with color channels in {0, 255}
    """
    if block_size < 1:
        raise ValueError(f"block_size must be >= 1, got {block_size}")
    if buffer.is_empty:
        return buffer.copy()

    plane = buffer.red.astype(np.int64)
    height, width = plane.shape
    half = block_size // 2

    integral = np.zeros((height + 1, width + 1), dtype=np.int64)
    integral[1:, 1:] = plane.cumsum(axis=0).cumsum(axis=1)

    rows = np.arange(height)
    cols = np.arange(width)
    y1 = np.maximum(rows - half, 0)
    y2 = np.minimum(rows + half, height - 1)
    x1 = np.maximum(cols - half, 0)
    x2 = np.minimum(cols + half, width - 1)

    sums = (
        integral[np.ix_(y2 + 1, x2 + 1)]
        - integral[np.ix_(y2 + 1, x1)]
        - integral[np.ix_(y1, x2 + 1)]
        + integral[np.ix_(y1, x1)]
    )
    counts = np.outer(y2 - y1 + 1, x2 - x1 + 1)
    mean = sums / counts

    binary = np.where(plane < mean - c, 0, 255).astype(np.uint8)
    logger.debug(f"Applied adaptive threshold (block={block_size}, c={c})")
    return buffer.with_gray(binary)


def otsu_threshold(buffer: PixelBuffer) -> int:
    """
    Find the global threshold maximizing between-class variance.

    Returns:
        Cutoff t such that intensities below t form the dark class, i.e.
        one past the last intensity of the dark class; 128 when the image
        has a single intensity
    """
    plane = buffer.red
    total = int(plane.size)
    if total == 0:
        return 128

    histogram = np.bincount(plane.ravel(), minlength=256).tolist()
    sum_all = sum(i * count for i, count in enumerate(histogram))

    sum_b = 0
    weight_b = 0
    max_variance = 0.0
    threshold = 128

    for t in range(256):
        weight_b += histogram[t]
        if weight_b == 0:
            continue
        weight_f = total - weight_b
        if weight_f == 0:
            break

        sum_b += t * histogram[t]
        mean_b = sum_b / weight_b
        mean_f = (sum_all - sum_b) / weight_f

        variance = weight_b * weight_f * (mean_b - mean_f) ** 2
        if variance > max_variance:
            max_variance = variance
            threshold = t + 1

    return threshold


def global_threshold(buffer: PixelBuffer, threshold: int = None) -> PixelBuffer:
    """
    Binarize with a single cutoff (Otsu's when ``threshold`` is None).
    """
    if threshold is None:
        threshold = otsu_threshold(buffer)
    binary = np.where(buffer.red < threshold, 0, 255).astype(np.uint8)
    return buffer.with_gray(binary)
