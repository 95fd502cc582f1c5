"""
End-to-end integration tests for the scanread pipeline.
"""

import threading
import pytest
import numpy as np
import json
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


def make_config(**recognition):
    """Pipeline config independent of SCANREAD_* environment variables."""
    from scanread.config import PipelineConfig, RecognitionConfig
    return PipelineConfig(recognition=RecognitionConfig(**recognition))


def text_engine(text="Hello world", confidence=0.8, **kwargs):
    from scanread.engines import CallableEngine, TextPrediction
    return CallableEngine(lambda image: TextPrediction(text, confidence), **kwargs)


class TestEndToEnd:
    """End-to-end integration tests."""

    @pytest.fixture
    def band_page(self):
        """100x100 page with a dark horizontal band around row 50."""
        from scanread.images import PixelBuffer

        gray = np.full((100, 100), 255, dtype=np.uint8)
        gray[45:57, 10:91] = 0
        return PixelBuffer.from_gray(gray)

    @pytest.fixture
    def sample_document_image(self):
        """Create a page with three printed text lines."""
        import cv2
        from scanread.images import PixelBuffer

        img = np.ones((300, 500, 3), dtype=np.uint8) * 255

        cv2.putText(img, "SCANNED PAGE", (30, 70),
                    cv2.FONT_HERSHEY_SIMPLEX, 1.0, (0, 0, 0), 2)
        cv2.putText(img, "SECOND LINE HERE", (30, 150),
                    cv2.FONT_HERSHEY_SIMPLEX, 1.0, (0, 0, 0), 2)
        cv2.putText(img, "THIRD LINE", (30, 230),
                    cv2.FONT_HERSHEY_SIMPLEX, 1.0, (0, 0, 0), 2)

        return PixelBuffer.from_array(img)

    def test_band_page(self, band_page):
        """Test the single-band page gives one line of the band's height."""
        from scanread.pipeline import ScanRecognizer

        with ScanRecognizer(text_engine(), make_config()) as recognizer:
            result = recognizer.recognize(band_page)

        assert len(result.lines) == 1
        assert abs(result.lines[0].bbox.height - 12) <= 2
        assert abs(result.skew_angle) <= 5.0
        assert result.text == "Hello world"
        assert 0.0 <= result.confidence < 0.99
        assert len(result.passes) == 5
        assert not result.cancelled

    def test_printed_lines(self, sample_document_image):
        """Test that each printed line is recognized separately."""
        from scanread.pipeline import ScanRecognizer

        with ScanRecognizer(text_engine("line"), make_config(max_passes=2)) as recognizer:
            result = recognizer.recognize(sample_document_image)

        assert len(result.lines) == 3
        assert result.text == "line\nline\nline"
        tops = [line.bbox.y for line in result.lines]
        assert tops == sorted(tops)
        assert all(line.words[0].text == "line" for line in result.lines)

    def test_consensus_across_variants(self, band_page):
        """Test that variants disagreeing with the majority are outvoted."""
        from scanread.engines import CallableEngine, TextPrediction
        from scanread.pipeline import ScanRecognizer

        def engine_func(image):
            # Only the inverted variant has a dark background
            if image.red[0, 0] < 128:
                return TextPrediction("The qick fox", 0.95)
            return TextPrediction("The quick fox", 0.7)

        with ScanRecognizer(CallableEngine(engine_func), make_config()) as recognizer:
            result = recognizer.recognize(band_page)

        assert result.text == "The quick fox"
        assert max(p.confidence for p in result.passes) == pytest.approx(0.95)

    def test_single_pass(self, band_page):
        """Test that single-pass mode runs one variant per line."""
        from scanread.pipeline import ScanRecognizer

        config = make_config(enable_multi_pass=False)
        with ScanRecognizer(text_engine(), config) as recognizer:
            result = recognizer.recognize(band_page)

        assert [p.variant for p in result.passes] == ["enhanced"]

    def test_corrections_applied(self, band_page):
        """Test that post-processing corrections are reported."""
        from scanread.pipeline import ScanRecognizer

        with ScanRecognizer(text_engine("the the w0rld"), make_config()) as recognizer:
            result = recognizer.recognize(band_page)

        assert result.text == "the world"
        reasons = [c.reason.value for c in result.corrections]
        assert reasons == ["ocr-character-fix", "contextual"]

    def test_empty_input(self):
        """Test that a zero-size image gives an empty result."""
        from scanread.images import PixelBuffer
        from scanread.pipeline import ScanRecognizer

        with ScanRecognizer(text_engine(), make_config()) as recognizer:
            result = recognizer.recognize(PixelBuffer.blank(0, 10))

        assert result.is_empty
        assert result.confidence == 0.0

    def test_blank_page(self):
        """Test that a page without ink gives an empty result."""
        from scanread.images import PixelBuffer
        from scanread.pipeline import ScanRecognizer

        with ScanRecognizer(text_engine(), make_config()) as recognizer:
            result = recognizer.recognize(PixelBuffer.blank(80, 60))

        assert result.text == ""
        assert result.confidence == 0.0
        assert result.lines == []

    def test_invalid_buffer(self):
        from scanread.errors import InvalidBuffer
        from scanread.pipeline import ScanRecognizer

        with ScanRecognizer(text_engine(), make_config()) as recognizer:
            with pytest.raises(InvalidBuffer):
                recognizer.recognize(np.zeros((10, 10, 4), dtype=np.uint8))

    def test_engine_unavailable(self, band_page):
        """Test that an engine failing to load is reported."""
        from scanread.engines import RecognitionEngine
        from scanread.errors import EngineUnavailable
        from scanread.pipeline import ScanRecognizer

        class MissingEngine(RecognitionEngine):
            name = "missing"

            def _load(self):
                raise RuntimeError("model file not found")

        with ScanRecognizer(MissingEngine(), make_config()) as recognizer:
            with pytest.raises(EngineUnavailable):
                recognizer.recognize(band_page)

    def test_all_passes_failed(self, band_page):
        """Test that a page where every pass fails raises RecognitionFailed."""
        from scanread.engines import CallableEngine
        from scanread.errors import RecognitionFailed
        from scanread.pipeline import ScanRecognizer

        def broken(image):
            raise RuntimeError("inference error")

        with ScanRecognizer(CallableEngine(broken), make_config()) as recognizer:
            with pytest.raises(RecognitionFailed):
                recognizer.recognize(band_page)

    def test_cancelled_before_start(self, band_page):
        """Test that a pre-set cancel flag returns an empty cancelled result."""
        from scanread.pipeline import ScanRecognizer

        cancel = threading.Event()
        cancel.set()

        with ScanRecognizer(text_engine(), make_config()) as recognizer:
            result = recognizer.recognize(band_page, cancel_event=cancel)

        assert result.cancelled
        assert result.text == ""

    def test_progress_reported(self, band_page):
        from scanread.pipeline import ScanRecognizer

        progress = []
        with ScanRecognizer(text_engine(), make_config()) as recognizer:
            recognizer.recognize(band_page, on_progress=lambda f, m: progress.append(f))

        assert progress[0] == 0.0
        assert progress[-1] == 1.0
        assert progress == sorted(progress)

    def test_whole_page_region(self, band_page):
        """Test recognition without line segmentation."""
        from scanread.config import PipelineConfig, SegmentationConfig
        from scanread.pipeline import ScanRecognizer

        config = PipelineConfig(segmentation=SegmentationConfig(segment_lines=False))
        with ScanRecognizer(text_engine(), config) as recognizer:
            result = recognizer.recognize(band_page)

        assert len(result.lines) == 1
        assert result.lines[0].bbox.to_tuple() == (0, 0, 100, 100)

    def test_batch_keeps_order(self):
        """Test that batch results line up with their inputs."""
        from scanread.engines import CallableEngine, TextPrediction
        from scanread.images import PixelBuffer
        from scanread.pipeline import ScanRecognizer

        pages = []
        for width in (100, 140, 120):
            gray = np.full((60, width), 255, dtype=np.uint8)
            gray[20:35, 5:width - 5] = 0
            pages.append(PixelBuffer.from_gray(gray))

        engine = CallableEngine(lambda image: TextPrediction(str(image.width), 0.9))
        with ScanRecognizer(engine, make_config(max_passes=2)) as recognizer:
            results = recognizer.recognize_batch(pages, max_workers=3)

        assert [r.text for r in results] == ["100", "140", "120"]

    def test_debug_output(self, band_page):
        """Test the debug image and JSON-ready result."""
        from scanread.config import PipelineConfig
        from scanread.pipeline import ScanRecognizer

        config = PipelineConfig(debug_mode=True)
        with ScanRecognizer(text_engine(), config) as recognizer:
            result = recognizer.recognize(band_page)

        assert result.debug_image.shape == (100, 100, 3)

        data = result.to_dict()
        assert "debug_image" not in data
        assert data["text"] == "Hello world"
        assert data["lines"][0]["bbox"]["width"] == 100
        json.dumps(data)
