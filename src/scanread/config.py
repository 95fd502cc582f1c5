"""
Configuration and constants for the scanread pipeline.

This module provides:
- Image normalization settings
- Line segmentation settings
- Multi-pass recognition options
- Environment variable overrides
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)


# ============================================================================
# Processing Configuration
# ============================================================================

@dataclass
class ImageConfig:
    """Page normalization configuration."""
    deskew_enabled: bool = True
    denoise_enabled: bool = True
    binarize_enabled: bool = True
    denoise_radius: int = 1
    adaptive_block_size: int = 15
    adaptive_c: int = 10
    dark_threshold: int = 128  # Pixels below this count as ink
    skew_max_angle: float = 15.0
    skew_step: float = 0.5
    min_skew_correction: float = 0.5  # Smaller angles are left alone
    clahe_tile_size: int = 64

    def __post_init__(self):
        if self.denoise_radius < 0:
            raise ValueError(f"denoise_radius must be >= 0, got {self.denoise_radius}")
        if self.adaptive_block_size < 1:
            raise ValueError(f"adaptive_block_size must be >= 1, got {self.adaptive_block_size}")
        if not 0 <= self.dark_threshold <= 255:
            raise ValueError(f"dark_threshold must be in [0, 255], got {self.dark_threshold}")
        if self.skew_max_angle <= 0 or self.skew_step <= 0:
            raise ValueError("skew_max_angle and skew_step must be positive")
        if self.clahe_tile_size < 1:
            raise ValueError(f"clahe_tile_size must be >= 1, got {self.clahe_tile_size}")


@dataclass
class SegmentationConfig:
    """Line segmentation configuration."""
    min_line_height: int = 10
    profile_fraction: float = 0.05  # Row threshold as a fraction of the profile peak
    segment_lines: bool = True  # False = recognize the page as a single region

    def __post_init__(self):
        if self.min_line_height < 1:
            raise ValueError(f"min_line_height must be >= 1, got {self.min_line_height}")
        if not 0.05 <= self.profile_fraction <= 0.1:
            raise ValueError(
                f"profile_fraction must be in [0.05, 0.1], got {self.profile_fraction}"
            )


@dataclass
class RecognitionConfig:
    """Multi-pass recognition configuration."""
    max_passes: int = 5  # Clamped to the number of available variants
    enable_multi_pass: bool = True
    language: str = "eng"
    medical_mode: bool = False  # Widens the accepted-word vocabulary
    aggressive_enhancement: bool = True
    # Post-processing
    spell_check: bool = False
    contextual_correction: bool = True
    ocr_character_fixes: bool = True
    # Concurrency
    max_workers: int = 4
    engine_concurrency: int = 1  # Max simultaneous engine invocations
    engine_timeout: Optional[float] = 30.0  # Seconds, None = wait forever

    def __post_init__(self):
        if self.max_passes < 1:
            raise ValueError(f"max_passes must be >= 1, got {self.max_passes}")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.engine_concurrency < 1:
            raise ValueError(f"engine_concurrency must be >= 1, got {self.engine_concurrency}")
        if self.engine_timeout is not None and self.engine_timeout <= 0:
            raise ValueError(f"engine_timeout must be positive, got {self.engine_timeout}")
        if not self.language:
            raise ValueError("language must be a non-empty tag")


@dataclass
class PipelineConfig:
    """Main pipeline configuration."""
    image: ImageConfig = field(default_factory=ImageConfig)
    segmentation: SegmentationConfig = field(default_factory=SegmentationConfig)
    recognition: RecognitionConfig = field(default_factory=RecognitionConfig)

    debug_mode: bool = False


# ============================================================================
# Default Configuration Instance
# ============================================================================

def _env_flag(name: str) -> Optional[bool]:
    value = os.environ.get(name)
    if value is None:
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


def get_config() -> PipelineConfig:
    """Get the default pipeline configuration with environment overrides."""
    config = PipelineConfig()
    recognition = config.recognition

    max_passes = os.environ.get("SCANREAD_MAX_PASSES")
    if max_passes:
        try:
            recognition.max_passes = max(1, int(max_passes))
        except ValueError:
            logger.warning(f"Ignoring invalid SCANREAD_MAX_PASSES={max_passes!r}")

    multi_pass = _env_flag("SCANREAD_MULTI_PASS")
    if multi_pass is not None:
        recognition.enable_multi_pass = multi_pass

    language = os.environ.get("SCANREAD_LANGUAGE")
    if language:
        recognition.language = language

    if _env_flag("SCANREAD_MEDICAL_MODE"):
        recognition.medical_mode = True

    timeout = os.environ.get("SCANREAD_ENGINE_TIMEOUT")
    if timeout:
        try:
            value = float(timeout)
            recognition.engine_timeout = value if value > 0 else None
        except ValueError:
            logger.warning(f"Ignoring invalid SCANREAD_ENGINE_TIMEOUT={timeout!r}")

    if _env_flag("SCANREAD_DEBUG"):
        config.debug_mode = True

    return config
