"""
Exception taxonomy for the scanread pipeline.

Only EngineUnavailable, InvalidBuffer and RecognitionFailed reach callers of
ScanRecognizer.recognize(); the others are raised by lower layers and
recovered inside the pipeline.
"""

from typing import Optional


class ScanReadError(Exception):
    """Base class for all scanread errors."""


class InvalidBuffer(ScanReadError, ValueError):
    """Pixel data has the wrong rank, channel count or dtype."""


class EmptyInput(ScanReadError):
    """Image has zero width or height."""


class EngineUnavailable(ScanReadError):
    """The recognition engine could not be initialized."""


class PassFailed(ScanReadError):
    """A single recognition pass raised or timed out."""

    def __init__(self, variant: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"Pass '{variant}' failed: {message}")
        self.variant = variant
        self.cause = cause


class NoLinesDetected(ScanReadError):
    """Line segmentation found no candidate text lines."""


class RecognitionFailed(ScanReadError):
    """Every recognition pass failed, so there is nothing to merge."""
