"""
Recognition engines.

An engine takes a cropped PixelBuffer and returns either finished text with
a confidence (TextPrediction) or a per-timestep class probability matrix
(ProbabilityPrediction). Engines are created by the caller and passed into
the pipeline; nothing here keeps a shared global instance.

Supports:
- Tesseract (via pytesseract)
- EasyOCR
- Any callable returning one of the two output shapes
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Any
import numpy as np

from .errors import EngineUnavailable
from .images import PixelBuffer

logger = logging.getLogger(__name__)


# ============================================================================
# Output Shapes
# ============================================================================

@dataclass
class TextPrediction:
    """Finished transcript from an engine."""
    text: str
    confidence: float


@dataclass
class ProbabilityPrediction:
    """Raw per-timestep class probabilities (timesteps x vocabulary)."""
    probabilities: np.ndarray
    vocabulary: Optional[Sequence[str]] = None  # Engine vocabulary when used


# ============================================================================
# Engine Base
# ============================================================================

class RecognitionEngine:
    """
    Base class for recognition engines.

    Subclasses implement ``recognize``. ``initialize`` is called once before
    the first pass and should raise EngineUnavailable when the backend
    cannot be loaded. Engines that can safely serve several threads at once
    set ``reentrant = True``.
    """

    name = "engine"
    reentrant = False
    vocabulary: Optional[Sequence[str]] = None

    def __init__(self):
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        if not self._initialized:
            self._load()
            self._initialized = True

    def _load(self) -> None:
        """Load backend resources. Override in subclasses."""

    def recognize(self, buffer: PixelBuffer) -> Any:
        raise NotImplementedError


class CallableEngine(RecognitionEngine):
    """Wrap a plain function as an engine."""

    name = "callable"

    def __init__(
        self,
        func: Callable[[PixelBuffer], Any],
        vocabulary: Optional[Sequence[str]] = None,
        reentrant: bool = False,
        name: str = "callable"
    ):
        super().__init__()
        self.func = func
        self.vocabulary = vocabulary
        self.reentrant = reentrant
        self.name = name

    def recognize(self, buffer: PixelBuffer) -> Any:
        return self.func(buffer)


# ============================================================================
# Tesseract Engine
# ============================================================================

class TesseractEngine(RecognitionEngine):
    """Recognition using Tesseract."""

    name = "tesseract"

    def __init__(self, language: str = "eng", config: str = "--oem 3 --psm 7"):
        super().__init__()
        self.language = language
        self.config = config
        self.pytesseract = None

    def _load(self) -> None:
        try:
            import pytesseract

            # Test that tesseract is installed
            pytesseract.get_tesseract_version()
        except Exception as e:
            logger.error(f"Tesseract not available: {e}")
            raise EngineUnavailable(
                f"Tesseract not available: {e}\n"
                "Install with: pip install pytesseract\n"
                "Also install Tesseract: https://github.com/tesseract-ocr/tesseract"
            ) from e

        self.pytesseract = pytesseract

    def recognize(self, buffer: PixelBuffer) -> TextPrediction:
        """Recognize text in a line crop."""
        import cv2

        if self.pytesseract is None:
            self.initialize()

        gray = cv2.cvtColor(buffer.to_bgr(), cv2.COLOR_BGR2GRAY)

        # Resize if too small (helps OCR accuracy)
        h = gray.shape[0]
        if 0 < h < 30:
            scale = 30.0 / h
            gray = cv2.resize(gray, None, fx=scale, fy=scale, interpolation=cv2.INTER_CUBIC)

        data = self.pytesseract.image_to_data(
            gray,
            lang=self.language,
            config=self.config,
            output_type=self.pytesseract.Output.DICT
        )

        words = []
        confidences = []
        current_line = None

        for i in range(len(data['text'])):
            text = data['text'][i].strip()
            conf = float(data['conf'][i])

            if conf < 0 or not text:  # -1 means no valid confidence
                continue

            line_key = (data['block_num'][i], data['par_num'][i], data['line_num'][i])
            if current_line is not None and line_key != current_line:
                words.append("\n")
            current_line = line_key

            words.append(text)
            confidences.append(conf / 100.0)

        full_text = " ".join(words).replace(" \n ", "\n")
        avg_confidence = float(np.mean(confidences)) if confidences else 0.0

        return TextPrediction(text=full_text, confidence=avg_confidence)


# ============================================================================
# EasyOCR Engine
# ============================================================================

class EasyOCREngine(RecognitionEngine):
    """Recognition using EasyOCR."""

    name = "easyocr"

    # Map language codes
    LANGUAGE_MAP = {"eng": "en", "chi_sim": "ch_sim", "chi_tra": "ch_tra"}

    def __init__(self, language: str = "eng", use_gpu: bool = False):
        super().__init__()
        self.language = language
        self.use_gpu = use_gpu
        self.reader = None

    def _load(self) -> None:
        try:
            import easyocr

            self.reader = easyocr.Reader(
                [self.LANGUAGE_MAP.get(self.language, self.language)],
                gpu=self.use_gpu,
                verbose=False
            )
        except Exception as e:
            logger.error(f"EasyOCR not available: {e}")
            raise EngineUnavailable(
                f"EasyOCR not available: {e}\n"
                "Install with: pip install easyocr"
            ) from e

    def recognize(self, buffer: PixelBuffer) -> TextPrediction:
        """Recognize text in a line crop."""
        if self.reader is None:
            self.initialize()

        result = self.reader.readtext(buffer.to_bgr())

        # Sort detections top-to-bottom, then left-to-right
        detections = sorted(
            result,
            key=lambda d: (min(p[1] for p in d[0]), min(p[0] for p in d[0]))
        )

        texts = [text for _, text, _ in detections]
        confidences = [float(conf) for _, _, conf in detections]

        return TextPrediction(
            text=" ".join(texts),
            confidence=float(np.mean(confidences)) if confidences else 0.0
        )


# ============================================================================
# Factory
# ============================================================================

ENGINES = {
    "tesseract": TesseractEngine,
    "easyocr": EasyOCREngine,
}


def create_engine(name: str, language: str = "eng") -> RecognitionEngine:
    """Create an engine by name."""
    if name not in ENGINES:
        raise ValueError(f"Unknown engine: {name} (choose from {', '.join(ENGINES)})")
    return ENGINES[name](language=language)
