"""
End-to-end recognition of scanned pages.

ScanRecognizer coordinates:
- Page normalization (grayscale, denoise, binarize, deskew)
- Line segmentation
- Multi-pass recognition of each line over several variants
- Consensus merging and post-processing corrections
- Confidence scoring
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Callable, Sequence
import numpy as np

from .config import PipelineConfig, get_config
from .consensus import combine_passes
from .corrections import CorrectionRecord, post_process
from .engines import RecognitionEngine
from .errors import EmptyInput, EngineUnavailable, InvalidBuffer, NoLinesDetected, RecognitionFailed
from .images import PixelBuffer, BoundingBox, preprocess_image, draw_debug_image, get_image_stats, stats_to_dict
from .lexicon import SpellChecker, build_vocabulary
from .recognition import PassResult, RecognitionAdapter, run_passes
from .scoring import score_confidence
from .segmentation import LineRegion, WordBox, detect_lines, estimate_baseline, segment_words
from .variants import select_variant_specs, VARIANT_ADAPTIVE_C

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, str], None]


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class LineResult:
    """Merged recognition of one text line."""
    index: int
    bbox: BoundingBox
    baseline: int
    text: str
    confidence: float
    passes: List[PassResult] = field(default_factory=list)
    words: List[WordBox] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "bbox": self.bbox.to_dict(),
            "baseline": self.baseline,
            "text": self.text,
            "confidence": round(self.confidence, 4),
            "words": [w.to_dict() for w in self.words],
        }


@dataclass
class RecognitionResult:
    """Final result of one recognition call."""
    text: str
    confidence: float
    passes: List[PassResult] = field(default_factory=list)
    corrections: List[CorrectionRecord] = field(default_factory=list)
    processing_time_ms: float = 0.0
    lines: List[LineResult] = field(default_factory=list)
    skew_angle: float = 0.0
    cancelled: bool = False
    debug_image: Optional[np.ndarray] = None  # BGR page with line boxes, debug mode only

    @property
    def is_empty(self) -> bool:
        return not self.text

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "confidence": round(self.confidence, 4),
            "passes": [p.to_dict() for p in self.passes],
            "corrections": [c.to_dict() for c in self.corrections],
            "processing_time_ms": round(self.processing_time_ms, 2),
            "lines": [line.to_dict() for line in self.lines],
            "skew_angle": self.skew_angle,
            "cancelled": self.cancelled,
        }


# ============================================================================
# Recognizer
# ============================================================================

class ScanRecognizer:
    """
    Recognizes text on scanned pages with an injected engine.

    Each call to ``recognize`` is independent. All calls made through one
    recognizer share its engine adapter, so the engine-capacity bound
    (``engine_concurrency``) holds across concurrent calls.

    Usage:
        with ScanRecognizer(TesseractEngine()) as recognizer:
            result = recognizer.recognize(PixelBuffer.from_array(image))
            print(result.text, result.confidence)
    """

    def __init__(
        self,
        engine: RecognitionEngine,
        config: Optional[PipelineConfig] = None,
        spell_checker: Optional[SpellChecker] = None
    ):
        self.engine = engine
        self.config = config or get_config()
        self.spell_checker = spell_checker

        recognition = self.config.recognition
        self.adapter = RecognitionAdapter(
            engine,
            concurrency=recognition.engine_concurrency,
            timeout=recognition.engine_timeout
        )
        self._init_lock = threading.Lock()

    def close(self) -> None:
        self.adapter.close()

    def __enter__(self) -> "ScanRecognizer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _initialize_engine(self) -> None:
        with self._init_lock:
            try:
                self.engine.initialize()
            except EngineUnavailable:
                raise
            except Exception as e:
                logger.error(f"Engine '{self.engine.name}' failed to initialize: {e}")
                raise EngineUnavailable(f"Engine '{self.engine.name}' failed to initialize: {e}") from e

    def recognize(
        self,
        buffer: PixelBuffer,
        cancel_event: Optional[threading.Event] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> RecognitionResult:
        """
        Recognize all text on a page.

        Args:
            buffer: RGBA page image
            cancel_event: When set, no new passes start and the result is
                built from the passes completed so far
            on_progress: Called with (fraction done, stage message)

        Returns:
            RecognitionResult; empty with confidence 0 for a degenerate
            image or a page without text lines

        Raises:
            InvalidBuffer: If ``buffer`` is not a PixelBuffer
            EngineUnavailable: If the engine cannot be initialized
            RecognitionFailed: If every recognition pass failed
        """
        start_time = time.time()

        def elapsed_ms() -> float:
            return (time.time() - start_time) * 1000.0

        def report(fraction: float, message: str) -> None:
            if on_progress is not None:
                on_progress(fraction, message)

        if not isinstance(buffer, PixelBuffer):
            raise InvalidBuffer(f"Expected PixelBuffer, got {type(buffer).__name__}")

        try:
            buffer.require_non_empty()
        except EmptyInput as e:
            logger.info(f"Empty input: {e}")
            return RecognitionResult(text="", confidence=0.0, processing_time_ms=elapsed_ms())

        self._initialize_engine()
        logger.info(f"Recognizing page ({buffer.width}x{buffer.height})")

        # 1. Normalize page
        report(0.0, "Normalizing page")
        prep = preprocess_image(buffer, self.config.image)
        if self.config.debug_mode:
            logger.debug(f"Page stats: {stats_to_dict(get_image_stats(prep.gray))}")

        # 2. Segment lines
        report(0.1, "Detecting lines")
        try:
            regions = self._segment(prep)
        except NoLinesDetected as e:
            logger.info(str(e))
            return RecognitionResult(
                text="",
                confidence=0.0,
                processing_time_ms=elapsed_ms(),
                skew_angle=prep.deskew_angle
            )

        # 3. Recognize each line over its variants
        recognition = self.config.recognition
        specs = select_variant_specs(recognition)
        vocabulary = build_vocabulary(recognition.medical_mode)
        logger.info(f"Running {len(specs)} pass(es) on {len(regions)} line(s)")

        lines: List[LineResult] = []
        all_passes: List[PassResult] = []

        for i, region in enumerate(regions):
            if cancel_event is not None and cancel_event.is_set():
                break

            report(0.1 + 0.8 * i / len(regions), f"Recognizing line {i + 1}/{len(regions)}")
            line = self.recognize_line(region, i, specs, vocabulary, cancel_event)
            if line is None:
                continue

            lines.append(line)
            all_passes.extend(line.passes)

        cancelled = cancel_event is not None and cancel_event.is_set()

        if not all_passes:
            if cancelled:
                logger.info("Recognition cancelled before any pass completed")
                return RecognitionResult(
                    text="",
                    confidence=0.0,
                    processing_time_ms=elapsed_ms(),
                    skew_angle=prep.deskew_angle,
                    cancelled=True
                )
            logger.error("All recognition passes failed")
            raise RecognitionFailed(f"All passes failed on {len(regions)} line(s)")

        # 4. Merge lines and correct
        report(0.9, "Post-processing")
        merged_text = "\n".join(line.text for line in lines)
        text, corrections = post_process(merged_text, recognition, self.spell_checker, vocabulary)

        confidence = score_confidence(
            text,
            [p.confidence for p in all_passes],
            corrections_count=len(corrections),
            merged=any(len(line.passes) > 1 for line in lines),
            vocabulary=vocabulary
        )

        debug_image = None
        if self.config.debug_mode:
            debug_image = draw_debug_image(
                prep.image,
                [line.bbox for line in lines],
                labels=[f"{line.index}: {line.confidence:.2f}" for line in lines]
            )

        result = RecognitionResult(
            text=text,
            confidence=confidence,
            passes=all_passes,
            corrections=corrections,
            processing_time_ms=elapsed_ms(),
            lines=lines,
            skew_angle=prep.deskew_angle,
            cancelled=cancelled,
            debug_image=debug_image
        )

        report(1.0, "Done")
        logger.info(
            f"Recognized {len(lines)} line(s) from {len(all_passes)} pass(es), "
            f"confidence {confidence:.2%} in {result.processing_time_ms:.0f}ms"
        )
        return result

    def _segment(self, prep) -> List[LineRegion]:
        segmentation = self.config.segmentation

        if not segmentation.segment_lines:
            page_box = BoundingBox(0, 0, prep.image.width, prep.image.height)
            return [LineRegion(
                bbox=page_box,
                image=prep.gray,
                baseline=estimate_baseline(prep.image, self.config.image.dark_threshold)
            )]

        return detect_lines(
            prep.image,
            source=prep.gray,
            min_line_height=segmentation.min_line_height,
            fraction=segmentation.profile_fraction,
            dark_threshold=self.config.image.dark_threshold
        )

    def recognize_line(
        self,
        region: LineRegion,
        index: int,
        specs: Sequence,
        vocabulary,
        cancel_event: Optional[threading.Event] = None
    ) -> Optional[LineResult]:
        """
        Run every variant pass on one line and merge the transcripts.

        Returns:
            LineResult, or None when no pass succeeded
        """
        recognition = self.config.recognition

        passes = run_passes(
            region.image,
            specs,
            self.adapter,
            max_workers=recognition.max_workers,
            cancel_event=cancel_event,
            line_index=index,
            adaptive_c=VARIANT_ADAPTIVE_C,
            clahe_tile_size=self.config.image.clahe_tile_size
        )
        if not passes:
            logger.warning(f"Line {index}: no successful pass")
            return None

        text = combine_passes(passes, vocabulary)
        confidence = score_confidence(
            text,
            [p.confidence for p in passes],
            merged=len(passes) > 1,
            vocabulary=vocabulary
        )

        return LineResult(
            index=index,
            bbox=region.bbox,
            baseline=region.baseline,
            text=text,
            confidence=confidence,
            passes=passes,
            words=segment_words(text, region.bbox, confidence)
        )

    def recognize_batch(
        self,
        buffers: Sequence[PixelBuffer],
        max_workers: int = 2,
        cancel_event: Optional[threading.Event] = None
    ) -> List[RecognitionResult]:
        """
        Recognize several independent pages in parallel.

        Results come back in input order. A page that raises propagates its
        exception once all pages have been submitted.
        """
        if not buffers:
            return []

        workers = max(1, min(max_workers, len(buffers)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="page") as executor:
            futures = [
                executor.submit(self.recognize, buffer, cancel_event)
                for buffer in buffers
            ]
            return [future.result() for future in futures]
