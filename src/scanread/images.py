"""
Image containers and page normalization for the scanread pipeline.

Provides:
- PixelBuffer (RGBA, row-major) and BoundingBox
- Conversion from OpenCV/numpy arrays
- Page normalization (grayscale, denoise, binarize, deskew)
- Image statistics and debug visualization
"""

import logging
from dataclasses import dataclass, field
from typing import Tuple, Optional, List, Dict, Any
import numpy as np

from .errors import InvalidBuffer, EmptyInput

logger = logging.getLogger(__name__)

BYTES_PER_PIXEL = 4


# ============================================================================
# Data Classes
# ============================================================================

@dataclass(eq=False)
class PixelBuffer:
    """
    RGBA image owned by whichever pipeline stage currently holds it.

    The pixel array has shape (height, width, 4) and dtype uint8. Filters
    never write into a buffer they received; they return a new one.
    """
    data: np.ndarray

    def __post_init__(self):
        if not isinstance(self.data, np.ndarray):
            raise InvalidBuffer(f"Expected numpy array, got {type(self.data).__name__}")
        if self.data.ndim != 3 or self.data.shape[2] != BYTES_PER_PIXEL:
            raise InvalidBuffer(f"Expected (height, width, 4) RGBA data, got shape {self.data.shape}")
        if self.data.dtype != np.uint8:
            raise InvalidBuffer(f"Expected uint8 pixel data, got {self.data.dtype}")

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    @property
    def red(self) -> np.ndarray:
        """Red channel, used as the intensity plane once an image is grayscale."""
        return self.data[:, :, 0]

    @property
    def alpha(self) -> np.ndarray:
        return self.data[:, :, 3]

    def require_non_empty(self) -> None:
        if self.is_empty:
            raise EmptyInput(f"Image has degenerate size {self.width}x{self.height}")

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self.data.copy())

    def with_gray(self, gray: np.ndarray) -> "PixelBuffer":
        """Return a new buffer with R, G and B set to ``gray`` and alpha kept."""
        out = self.data.copy()
        out[:, :, :3] = np.asarray(gray, dtype=np.uint8)[:, :, np.newaxis]
        return PixelBuffer(out)

    def with_rgb(self, rgb: np.ndarray) -> "PixelBuffer":
        out = self.data.copy()
        out[:, :, :3] = np.asarray(rgb, dtype=np.uint8)
        return PixelBuffer(out)

    def crop(self, box: "BoundingBox") -> "PixelBuffer":
        """Copy the region covered by ``box``."""
        if not box.fits(self.width, self.height):
            raise ValueError(f"Box {box.to_tuple()} exceeds image size {self.width}x{self.height}")
        region = self.data[box.y:box.bottom, box.x:box.right]
        return PixelBuffer(region.copy())

    def to_bgr(self) -> np.ndarray:
        """Convert to a 3-channel BGR array for OpenCV."""
        import cv2
        return cv2.cvtColor(self.data, cv2.COLOR_RGBA2BGR)

    @classmethod
    def blank(cls, width: int, height: int, value: int = 255) -> "PixelBuffer":
        data = np.full((height, width, BYTES_PER_PIXEL), value, dtype=np.uint8)
        data[:, :, 3] = 255
        return cls(data)

    @classmethod
    def from_gray(cls, gray: np.ndarray, alpha: int = 255) -> "PixelBuffer":
        gray = np.asarray(gray)
        if gray.ndim != 2:
            raise InvalidBuffer(f"Expected 2-D grayscale array, got shape {gray.shape}")
        gray = np.clip(gray, 0, 255).astype(np.uint8)
        data = np.empty(gray.shape + (BYTES_PER_PIXEL,), dtype=np.uint8)
        data[:, :, :3] = gray[:, :, np.newaxis]
        data[:, :, 3] = alpha
        return cls(data)

    @classmethod
    def from_array(cls, image: np.ndarray, color_order: str = "bgr") -> "PixelBuffer":
        """
        Build a buffer from a decoded image array.

        Args:
            image: Grayscale (H, W), 3-channel or 4-channel uint8 array
            color_order: 'bgr' for OpenCV-decoded images, 'rgb' otherwise

        Returns:
            RGBA PixelBuffer
        """
        import cv2

        if not isinstance(image, np.ndarray):
            raise InvalidBuffer(f"Expected numpy array, got {type(image).__name__}")
        if image.dtype != np.uint8:
            raise InvalidBuffer(f"Expected uint8 image, got {image.dtype}")
        if color_order not in ("bgr", "rgb"):
            raise ValueError(f"Unknown color order: {color_order}")

        if image.ndim == 2:
            return cls.from_gray(image)
        if image.ndim == 3:
            channels = image.shape[2]
            if channels == 1:
                return cls.from_gray(image[:, :, 0])
            if channels == 3:
                code = cv2.COLOR_BGR2RGBA if color_order == "bgr" else cv2.COLOR_RGB2RGBA
                return cls(cv2.cvtColor(image, code))
            if channels == 4:
                if color_order == "bgr":
                    return cls(cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA))
                return cls(image.copy())

        raise InvalidBuffer(f"Unexpected image shape: {image.shape}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return np.array_equal(self.data, other.data)


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in source-image pixel coordinates."""
    x: int
    y: int
    width: int
    height: int

    def __post_init__(self):
        if self.x < 0 or self.y < 0:
            raise ValueError(f"Box origin must be non-negative, got ({self.x}, {self.y})")
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Box size must be non-negative, got {self.width}x{self.height}")

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def area(self) -> int:
        return self.width * self.height

    def fits(self, image_width: int, image_height: int) -> bool:
        return self.right <= image_width and self.bottom <= image_height

    def to_tuple(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.width, self.height)

    def to_corners(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.right, self.bottom)

    def to_dict(self) -> Dict[str, int]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass
class PreprocessingResult:
    """Result of page normalization."""
    image: PixelBuffer  # Binarized (if enabled) and deskewed page
    gray: PixelBuffer  # Deskewed grayscale page, used as the recognition source
    original_size: Tuple[int, int]
    deskew_angle: float = 0.0
    transformations: List[str] = field(default_factory=list)


@dataclass
class ImageStats:
    """Statistics about an image."""
    height: int
    width: int
    mean_intensity: float
    std_intensity: float
    dark_ratio: float
    is_binary: bool = False


# ============================================================================
# Page Normalization
# ============================================================================

def preprocess_image(buffer: PixelBuffer, config=None) -> PreprocessingResult:
    """
    Normalize a scanned page for segmentation and recognition.

    Steps: grayscale -> median denoise -> adaptive threshold -> skew
    correction. The grayscale page is rotated by the same angle so that
    line crops taken from it line up with the binarized page.

    Args:
        buffer: Input page
        config: ImageConfig (defaults used when None)

    Returns:
        PreprocessingResult with the normalized and grayscale pages
    """
    from .config import ImageConfig
    from .filters import grayscale, median_filter, adaptive_threshold
    from .skew import correct_skew, rotate_image

    config = config or ImageConfig()
    buffer.require_non_empty()

    transformations = ["grayscale"]
    gray = grayscale(buffer)
    processed = gray

    if config.denoise_enabled and config.denoise_radius > 0:
        processed = median_filter(processed, config.denoise_radius)
        transformations.append(f"median_r{config.denoise_radius}")

    if config.binarize_enabled:
        processed = adaptive_threshold(
            processed,
            block_size=config.adaptive_block_size,
            c=config.adaptive_c
        )
        transformations.append(f"adaptive_threshold_b{config.adaptive_block_size}")

    angle = 0.0
    if config.deskew_enabled:
        processed, angle = correct_skew(
            processed,
            max_angle=config.skew_max_angle,
            step=config.skew_step,
            min_correction=config.min_skew_correction,
            dark_threshold=config.dark_threshold
        )
        if angle != 0.0:
            gray = rotate_image(gray, -angle)
            transformations.append(f"deskew_{angle:.1f}deg")

    logger.info(f"Preprocessing complete: {' -> '.join(transformations)}")

    return PreprocessingResult(
        image=processed,
        gray=gray,
        original_size=buffer.size,
        deskew_angle=angle,
        transformations=transformations
    )


def get_image_stats(buffer: PixelBuffer, dark_threshold: int = 128) -> ImageStats:
    """
    Calculate statistics about an image's intensity plane.

    Args:
        buffer: Input image (assumed grayscale)
        dark_threshold: Intensity below which a pixel counts as ink

    Returns:
        ImageStats with image properties
    """
    plane = buffer.red
    if buffer.is_empty:
        return ImageStats(height=buffer.height, width=buffer.width,
                          mean_intensity=0.0, std_intensity=0.0, dark_ratio=0.0)

    unique_values = np.unique(plane)
    return ImageStats(
        height=buffer.height,
        width=buffer.width,
        mean_intensity=float(np.mean(plane)),
        std_intensity=float(np.std(plane)),
        dark_ratio=float(np.mean(plane < dark_threshold)),
        is_binary=bool(np.all(np.isin(unique_values, (0, 255))))
    )


# ============================================================================
# Debug Visualization
# ============================================================================

def draw_debug_image(
    buffer: PixelBuffer,
    boxes: List[BoundingBox],
    labels: Optional[List[str]] = None,
    line_width: int = 1
) -> np.ndarray:
    """
    Draw bounding boxes on a page for debugging.

    Args:
        buffer: Page image
        boxes: Boxes to outline
        labels: Optional labels drawn above each box
        line_width: Line thickness

    Returns:
        BGR image with drawn boxes
    """
    import cv2

    debug_img = buffer.to_bgr()

    default_colors = [
        (255, 0, 0),    # Blue
        (0, 160, 0),    # Green
        (0, 0, 255),    # Red
        (255, 0, 255),  # Magenta
    ]

    for i, box in enumerate(boxes):
        color = default_colors[i % len(default_colors)]
        x1, y1, x2, y2 = box.to_corners()
        cv2.rectangle(debug_img, (x1, y1), (max(x1, x2 - 1), max(y1, y2 - 1)), color, line_width)

        if labels and i < len(labels):
            cv2.putText(
                debug_img,
                labels[i],
                (x1, max(10, y1 - 3)),
                cv2.FONT_HERSHEY_SIMPLEX,
                0.4,
                color,
                1
            )

    return debug_img


def stats_to_dict(stats: ImageStats) -> Dict[str, Any]:
    return {
        "width": stats.width,
        "height": stats.height,
        "mean_intensity": round(stats.mean_intensity, 2),
        "std_intensity": round(stats.std_intensity, 2),
        "dark_ratio": round(stats.dark_ratio, 4),
        "is_binary": stats.is_binary,
    }
