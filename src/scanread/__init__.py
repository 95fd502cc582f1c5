"""
Scanread
========

Image normalization and multi-pass recognition consensus for scanned
documents. Turns a page image into a single transcript with a calibrated
confidence score.

Main components:
- Pixel filters (grayscale, denoise, sharpen, CLAHE, thresholding)
- Skew detection and correction
- Line and word segmentation
- Multi-pass recognition over preprocessed variants
- CTC decoding of raw engine probabilities
- Consensus merging, corrections and confidence scoring
"""

__version__ = "1.0.0"
__author__ = "Scanread Team"

from .config import PipelineConfig, ImageConfig, SegmentationConfig, RecognitionConfig, get_config
from .engines import (
    RecognitionEngine, CallableEngine, TesseractEngine, EasyOCREngine,
    TextPrediction, ProbabilityPrediction, create_engine,
)
from .errors import (
    ScanReadError, InvalidBuffer, EmptyInput, EngineUnavailable,
    PassFailed, NoLinesDetected, RecognitionFailed,
)
from .images import PixelBuffer, BoundingBox, preprocess_image
from .pipeline import ScanRecognizer, RecognitionResult, LineResult
from .recognition import PassResult
from .corrections import CorrectionRecord, CorrectionReason

__all__ = [
    # Config
    "PipelineConfig", "ImageConfig", "SegmentationConfig", "RecognitionConfig", "get_config",
    # Engines
    "RecognitionEngine", "CallableEngine", "TesseractEngine", "EasyOCREngine",
    "TextPrediction", "ProbabilityPrediction", "create_engine",
    # Errors
    "ScanReadError", "InvalidBuffer", "EmptyInput", "EngineUnavailable",
    "PassFailed", "NoLinesDetected", "RecognitionFailed",
    # Images
    "PixelBuffer", "BoundingBox", "preprocess_image",
    # Results
    "ScanRecognizer", "RecognitionResult", "LineResult", "PassResult",
    "CorrectionRecord", "CorrectionReason",
]
