"""
I/O utilities for the scanread pipeline.

Handles:
- Image loading into PixelBuffers
- Image saving (arrays and PixelBuffers)
- JSON serialization of results
- Directory management and input type detection
"""

import json
import logging
from dataclasses import asdict
from enum import Enum
from pathlib import Path
from typing import List, Union, Any, Tuple

import numpy as np

from .images import PixelBuffer

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.tiff', '.tif', '.bmp')


# ============================================================================
# Image Loading
# ============================================================================

def load_image(image_path: Union[str, Path]) -> PixelBuffer:
    """
    Load an image file as an RGBA PixelBuffer.

    Args:
        image_path: Path to the image file

    Returns:
        PixelBuffer holding the decoded image

    Raises:
        FileNotFoundError: If image file doesn't exist
        ValueError: If image cannot be decoded
    """
    import cv2

    image_path = Path(image_path)
    if not image_path.exists():
        raise FileNotFoundError(f"Image file not found: {image_path}")

    img = cv2.imread(str(image_path), cv2.IMREAD_UNCHANGED)
    if img is None:
        raise ValueError(f"Could not decode image: {image_path}")

    # 16-bit scans are scaled down to 8 bits
    if img.dtype == np.uint16:
        img = (img // 257).astype(np.uint8)

    logger.debug(f"Loaded image: {image_path}, shape: {img.shape}")
    return PixelBuffer.from_array(img, color_order="bgr")


def load_images_from_folder(
    folder_path: Union[str, Path],
    extensions: tuple = IMAGE_EXTENSIONS
) -> List[Tuple[Path, PixelBuffer]]:
    """
    Load all images from a folder, sorted by file name.

    Files that fail to decode are logged and skipped.

    Returns:
        List of (path, PixelBuffer) pairs
    """
    folder_path = Path(folder_path)
    if not folder_path.is_dir():
        raise NotADirectoryError(f"Not a directory: {folder_path}")

    image_files = sorted(
        f for f in folder_path.iterdir()
        if f.suffix.lower() in extensions
    )
    logger.info(f"Found {len(image_files)} images in {folder_path}")

    images = []
    for img_path in image_files:
        try:
            images.append((img_path, load_image(img_path)))
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load {img_path}: {e}")

    return images


def save_image(
    image: Union[PixelBuffer, np.ndarray],
    output_path: Union[str, Path],
    quality: int = 95
) -> Path:
    """
    Save an image to file.

    Args:
        image: PixelBuffer, or BGR/grayscale array as used by OpenCV
        output_path: Path to save the image
        quality: JPEG quality (1-100)

    Returns:
        Path to the saved image
    """
    import cv2

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if isinstance(image, PixelBuffer):
        image = cv2.cvtColor(image.data, cv2.COLOR_RGBA2BGRA)

    if output_path.suffix.lower() in ('.jpg', '.jpeg'):
        ok = cv2.imwrite(str(output_path), image, [cv2.IMWRITE_JPEG_QUALITY, quality])
    else:
        ok = cv2.imwrite(str(output_path), image)
    if not ok:
        raise ValueError(f"Could not write image: {output_path}")

    logger.debug(f"Saved image: {output_path}")
    return output_path


# ============================================================================
# JSON Serialization
# ============================================================================

class EnhancedJSONEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy values, enums and result objects."""

    def default(self, obj):
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, Enum):
            return obj.value
        if hasattr(obj, 'to_dict'):
            return obj.to_dict()
        if hasattr(obj, '__dataclass_fields__'):
            return asdict(obj)
        if isinstance(obj, Path):
            return str(obj)
        return super().default(obj)


def save_json(
    data: Any,
    output_path: Union[str, Path],
    indent: int = 2,
    ensure_ascii: bool = False
) -> Path:
    """
    Save data to a JSON file.

    Args:
        data: Data to serialize (dict, list, result object, etc.)
        output_path: Path to save the JSON file
        indent: Indentation level for pretty printing
        ensure_ascii: If True, escape non-ASCII characters

    Returns:
        Path to the saved file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent, ensure_ascii=ensure_ascii, cls=EnhancedJSONEncoder)

    logger.debug(f"Saved JSON: {output_path}")
    return output_path


def load_json(json_path: Union[str, Path]) -> Any:
    """Load data from a JSON file."""
    json_path = Path(json_path)
    if not json_path.exists():
        raise FileNotFoundError(f"JSON file not found: {json_path}")

    with open(json_path, 'r', encoding='utf-8') as f:
        return json.load(f)


# ============================================================================
# Directory Management
# ============================================================================

def ensure_dir(path: Union[str, Path]) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def detect_input_type(input_path: Union[str, Path]) -> str:
    """
    Detect the type of input file or directory.

    Returns:
        One of: 'image', 'image_folder', 'unknown'
    """
    input_path = Path(input_path)

    if input_path.is_dir():
        has_images = any(
            f.suffix.lower() in IMAGE_EXTENSIONS
            for f in input_path.iterdir()
        )
        return 'image_folder' if has_images else 'unknown'

    if input_path.is_file() and input_path.suffix.lower() in IMAGE_EXTENSIONS:
        return 'image'

    return 'unknown'
