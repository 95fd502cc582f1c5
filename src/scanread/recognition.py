"""
Recognition passes: run the engine on each variant of a line.

Provides:
- PassResult, the immutable outcome of one pass
- Normalization of the engine output shapes to (text, confidence)
- RecognitionAdapter, which bounds concurrent engine calls and applies
  the per-call timeout
- run_passes, which fans the variants of one crop out over a worker pool
"""

import logging
import math
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout, as_completed
from dataclasses import dataclass, is_dataclass, asdict
from typing import List, Optional, Tuple, Dict, Any, Sequence
import numpy as np

from .decoding import decode_ctc, DEFAULT_VOCABULARY
from .engines import RecognitionEngine, TextPrediction, ProbabilityPrediction
from .errors import PassFailed
from .images import PixelBuffer
from .variants import VariantSpec, RecognitionVariant, apply_variant, VARIANT_ADAPTIVE_C
from .filters import DEFAULT_CLAHE_TILE

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass(frozen=True)
class PassResult:
    """Outcome of recognizing one variant."""
    variant: str
    text: str
    confidence: float
    filters: Tuple[str, ...] = ()
    line_index: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "variant": self.variant,
            "text": self.text,
            "confidence": round(self.confidence, 4),
            "filters": list(self.filters),
            "line_index": self.line_index,
        }


# ============================================================================
# Output Normalization
# ============================================================================

PERCENT_THRESHOLD = 1.5


def _normalize_confidence(value) -> float:
    confidence = float(value)
    if math.isnan(confidence):
        return 0.0
    # Percentages (e.g. Tesseract's 0-100 scale); values just above 1 are clamped
    if confidence > PERCENT_THRESHOLD:
        confidence /= 100.0
    return min(max(confidence, 0.0), 1.0)


def normalize_engine_output(
    raw: Any,
    vocabulary: Optional[Sequence[str]] = None
) -> Tuple[str, float]:
    """
    Convert any supported engine output to (text, confidence).

    Accepted shapes: TextPrediction, ProbabilityPrediction, a dict with
    'text'/'confidence' or 'probabilities', a (text, confidence) tuple, or
    a bare 2-D probability array. Probability outputs are CTC-decoded.

    Args:
        raw: Engine output
        vocabulary: Vocabulary for probability outputs that carry none

    Returns:
        Tuple of (text, confidence in [0, 1])
    """
    vocabulary = vocabulary or DEFAULT_VOCABULARY

    if isinstance(raw, ProbabilityPrediction):
        decoded = decode_ctc(raw.probabilities, raw.vocabulary or vocabulary)
        return decoded.text, decoded.confidence

    if isinstance(raw, TextPrediction):
        return raw.text or "", _normalize_confidence(raw.confidence)

    if is_dataclass(raw) and not isinstance(raw, type):
        raw = asdict(raw)

    if isinstance(raw, dict):
        if raw.get("probabilities") is not None:
            decoded = decode_ctc(raw["probabilities"], raw.get("vocabulary") or vocabulary)
            return decoded.text, decoded.confidence
        if "text" in raw:
            return str(raw["text"] or ""), _normalize_confidence(raw.get("confidence", 0.0))

    if isinstance(raw, tuple) and len(raw) == 2 and isinstance(raw[0], str):
        return raw[0], _normalize_confidence(raw[1])

    if isinstance(raw, (np.ndarray, list)):
        decoded = decode_ctc(raw, vocabulary)
        return decoded.text, decoded.confidence

    raise TypeError(f"Unsupported engine output: {type(raw).__name__}")


# ============================================================================
# Recognition Adapter
# ============================================================================

class RecognitionAdapter:
    """
    Calls the engine for one variant at a time, on behalf of many threads.

    At most ``concurrency`` engine calls run at once (always 1 for engines
    that are not re-entrant). Each call is bounded by ``timeout`` seconds;
    a call that overruns keeps its slot until the engine returns.

    Usage:
        with RecognitionAdapter(engine, concurrency=2, timeout=10) as adapter:
            text, confidence = adapter.recognize(variant)
    """

    def __init__(
        self,
        engine: RecognitionEngine,
        concurrency: int = 1,
        timeout: Optional[float] = None
    ):
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")

        self.engine = engine
        self.timeout = timeout
        self.concurrency = concurrency if getattr(engine, "reentrant", False) else 1

        self._slots = threading.BoundedSemaphore(self.concurrency)
        self._executor = ThreadPoolExecutor(
            max_workers=self.concurrency,
            thread_name_prefix="engine"
        )

    def recognize(self, variant: RecognitionVariant) -> Tuple[str, float]:
        """
        Recognize one variant.

        Raises:
            PassFailed: If the engine raised, timed out, or returned an
                unusable output
        """
        acquired = self._slots.acquire(timeout=self.timeout) if self.timeout else self._slots.acquire()
        if not acquired:
            raise PassFailed(variant.name, f"engine busy for more than {self.timeout}s")

        try:
            future = self._executor.submit(self.engine.recognize, variant.image)
        except Exception as e:
            self._slots.release()
            raise PassFailed(variant.name, str(e), cause=e) from e
        future.add_done_callback(lambda _: self._slots.release())

        try:
            raw = future.result(timeout=self.timeout)
        except FutureTimeout as e:
            raise PassFailed(variant.name, f"timed out after {self.timeout}s", cause=e) from e
        except Exception as e:
            raise PassFailed(variant.name, f"{type(e).__name__}: {e}", cause=e) from e

        try:
            return normalize_engine_output(raw, getattr(self.engine, "vocabulary", None))
        except (TypeError, ValueError) as e:
            raise PassFailed(variant.name, f"bad engine output: {e}", cause=e) from e

    def close(self) -> None:
        self._executor.shutdown(wait=False)

    def __enter__(self) -> "RecognitionAdapter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


# ============================================================================
# Pass Execution
# ============================================================================

def run_passes(
    crop: PixelBuffer,
    specs: Sequence[VariantSpec],
    adapter: RecognitionAdapter,
    max_workers: int = 4,
    cancel_event: Optional[threading.Event] = None,
    line_index: int = 0,
    adaptive_c: float = VARIANT_ADAPTIVE_C,
    clahe_tile_size: int = DEFAULT_CLAHE_TILE
) -> List[PassResult]:
    """
    Recognize every variant of one crop in parallel.

    Failed passes are logged and dropped. Once ``cancel_event`` is set, no
    new recognition starts and the passes finished so far are returned.

    Args:
        crop: Line (or page) image
        specs: Variants to run, in priority order
        adapter: Engine adapter
        max_workers: Worker threads for filtering and recognition
        cancel_event: Optional cancellation flag
        line_index: Index of the line, stored on each PassResult

    Returns:
        Successful passes in variant order
    """
    order = {spec.name: i for i, spec in enumerate(specs)}

    def run_one(spec: VariantSpec) -> Optional[PassResult]:
        if cancel_event is not None and cancel_event.is_set():
            return None
        variant = apply_variant(crop, spec, adaptive_c, clahe_tile_size)
        if cancel_event is not None and cancel_event.is_set():
            return None

        text, confidence = adapter.recognize(variant)
        logger.debug(f"Line {line_index} pass '{spec.name}': {text!r} ({confidence:.2f})")
        return PassResult(
            variant=spec.name,
            text=text,
            confidence=confidence,
            filters=tuple(variant.filters),
            line_index=line_index
        )

    results = []
    workers = max(1, min(max_workers, len(specs)))

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="pass") as executor:
        futures = {executor.submit(run_one, spec): spec for spec in specs}

        for future in as_completed(futures):
            spec = futures[future]
            try:
                result = future.result()
            except PassFailed as e:
                logger.warning(str(e))
                continue
            except Exception as e:
                logger.warning(f"Pass '{spec.name}' failed: {type(e).__name__}: {e}")
                continue

            if result is not None:
                results.append(result)

    if cancel_event is not None and cancel_event.is_set():
        logger.info(f"Line {line_index}: cancelled after {len(results)} passes")

    results.sort(key=lambda r: order[r.variant])
    return results
