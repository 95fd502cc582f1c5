"""
Recognition variants: differently preprocessed copies of one image.

Running the recognizer on several variants of the same line and merging
the transcripts recovers words that any single preprocessing loses.
Variants are named and ordered; the order is used for tie-breaking and
for choosing which variants run when fewer passes are allowed.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .images import PixelBuffer
from . import filters

logger = logging.getLogger(__name__)


# ============================================================================
# Variant Definitions
# ============================================================================

@dataclass(frozen=True)
class VariantSpec:
    """Named filter-parameter set. Unset parameters skip their filter."""
    name: str
    contrast: Optional[float] = None
    brightness: float = 1.0
    median_radius: int = 0
    sharpen: float = 0.0
    clahe_clip: Optional[float] = None
    adaptive_block: Optional[int] = None
    otsu: bool = False
    dilate_radius: int = 0
    invert: bool = False
    aggressive: bool = False  # Skipped when aggressive enhancement is off


@dataclass
class RecognitionVariant:
    """A preprocessed image ready for one recognition pass."""
    name: str
    image: PixelBuffer
    filters: List[str] = field(default_factory=list)


VARIANT_SPECS = (
    VariantSpec("original"),
    VariantSpec("high-contrast", contrast=2.0, brightness=1.1),
    VariantSpec("extreme-contrast", contrast=3.0, brightness=1.2, otsu=True, aggressive=True),
    VariantSpec("inverted", contrast=1.5, invert=True),
    VariantSpec("sharpened", contrast=1.5, sharpen=2.0),
    VariantSpec("denoised", contrast=1.8, median_radius=3),
    VariantSpec("adaptive-threshold", adaptive_block=15),
    VariantSpec("clahe", clahe_clip=3.0),
    VariantSpec("morphological", contrast=2.0, dilate_radius=1),
    VariantSpec(
        "ultra-enhancement",
        contrast=4.0, sharpen=3.0, median_radius=2, otsu=True, aggressive=True
    ),
)

# Single-pass variants
ENHANCED_SPEC = VariantSpec(
    "enhanced", contrast=2.5, sharpen=2.0, median_radius=2, adaptive_block=11, aggressive=True
)
ORIGINAL_SPEC = VARIANT_SPECS[0]

VARIANT_ADAPTIVE_C = 5


# ============================================================================
# Variant Generation
# ============================================================================

def apply_variant(
    buffer: PixelBuffer,
    spec: VariantSpec,
    adaptive_c: float = VARIANT_ADAPTIVE_C,
    clahe_tile_size: int = filters.DEFAULT_CLAHE_TILE
) -> RecognitionVariant:
    """
    Apply one variant's filters to a copy of ``buffer``.

    Filter order: grayscale, contrast/brightness, median, sharpen, CLAHE,
    adaptive threshold, Otsu threshold (only without adaptive), dilate,
    invert.

    Args:
        buffer: Line or page image
        spec: Variant parameters
        adaptive_c: Constant for the adaptive threshold
        clahe_tile_size: Tile size for CLAHE

    Returns:
        RecognitionVariant with the processed image and the filters applied
    """
    image = filters.grayscale(buffer)
    applied = ["grayscale"]

    if spec.contrast is not None:
        image = filters.adjust_contrast(image, spec.contrast, spec.brightness)
        applied.append(f"contrast_{spec.contrast:g}_{spec.brightness:g}")

    if spec.median_radius > 0:
        image = filters.median_filter(image, spec.median_radius)
        applied.append(f"median_r{spec.median_radius}")

    if spec.sharpen > 0:
        image = filters.sharpen(image, spec.sharpen)
        applied.append(f"sharpen_{spec.sharpen:g}")

    if spec.clahe_clip is not None:
        image = filters.clahe_enhance(image, spec.clahe_clip, clahe_tile_size)
        applied.append(f"clahe_{spec.clahe_clip:g}")

    if spec.adaptive_block is not None:
        image = filters.adaptive_threshold(image, spec.adaptive_block, adaptive_c)
        applied.append(f"adaptive_threshold_b{spec.adaptive_block}")
    elif spec.otsu:
        threshold = filters.otsu_threshold(image)
        image = filters.global_threshold(image, threshold)
        applied.append(f"otsu_{threshold}")

    if spec.dilate_radius > 0:
        image = filters.dilate(image, spec.dilate_radius)
        applied.append(f"dilate_r{spec.dilate_radius}")

    if spec.invert:
        image = filters.invert(image)
        applied.append("invert")

    return RecognitionVariant(name=spec.name, image=image, filters=applied)


def select_variant_specs(config=None) -> List[VariantSpec]:
    """
    Choose which variants to run for a recognition configuration.

    Multi-pass mode takes the first ``max_passes`` variants in table order
    (clamped to the table size). Single-pass mode runs one variant.

    Args:
        config: RecognitionConfig (defaults used when None)

    Returns:
        Ordered list of variant specs
    """
    from .config import RecognitionConfig

    config = config or RecognitionConfig()

    if not config.enable_multi_pass:
        return [ENHANCED_SPEC if config.aggressive_enhancement else ORIGINAL_SPEC]

    specs = [
        spec for spec in VARIANT_SPECS
        if config.aggressive_enhancement or not spec.aggressive
    ]
    selected = specs[:min(config.max_passes, len(specs))]
    logger.debug(f"Selected variants: {[spec.name for spec in selected]}")
    return selected


def generate_variants(
    buffer: PixelBuffer,
    specs: Optional[List[VariantSpec]] = None,
    adaptive_c: float = VARIANT_ADAPTIVE_C,
    clahe_tile_size: int = filters.DEFAULT_CLAHE_TILE
) -> List[RecognitionVariant]:
    """Apply every spec (all variants when None) to the same image, in order."""
    if specs is None:
        specs = VARIANT_SPECS
    return [apply_variant(buffer, spec, adaptive_c, clahe_tile_size) for spec in specs]
