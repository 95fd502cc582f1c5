"""
Tests for line and word segmentation.
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


class TestSegmentation:
    """Test segmentation functions."""

    @pytest.fixture
    def three_line_page(self):
        """Create a binarized page with three text lines."""
        from scanread.images import PixelBuffer

        gray = np.full((150, 120), 255, dtype=np.uint8)
        gray[20:35, 10:110] = 0
        gray[60:72, 10:90] = 0
        gray[100:104, 10:100] = 0  # Too short to be a line
        gray[120:150, 10:60] = 0   # Runs to the bottom edge
        return PixelBuffer.from_gray(gray)

    def test_projection_profile(self, three_line_page):
        """Test dark pixel counts per row."""
        from scanread.segmentation import projection_profile

        profile = projection_profile(three_line_page)

        assert len(profile) == 150
        assert profile[25] == 100
        assert profile[65] == 80
        assert profile[0] == 0

    def test_find_line_boundaries(self):
        """Test run detection with minimum height and trailing run."""
        from scanread.segmentation import find_line_boundaries

        profile = np.array([0, 0, 50, 50, 50, 0, 0, 40, 40, 1, 60, 60, 60])

        boundaries = find_line_boundaries(profile, min_line_height=3, fraction=0.05)

        # Rows 7-8 are too short; row 9 (1 <= 3) ends them
        assert boundaries == [(2, 5), (10, 13)]

    def test_empty_profile(self):
        """Test that an empty profile has no lines."""
        from scanread.segmentation import find_line_boundaries

        assert find_line_boundaries(np.array([], dtype=int)) == []

    def test_detect_lines(self, three_line_page):
        """Test line regions on a page."""
        from scanread.segmentation import detect_lines

        lines = detect_lines(three_line_page, min_line_height=10)

        assert [line.bbox.to_tuple() for line in lines] == [
            (0, 20, 120, 15),
            (0, 60, 120, 12),
            (0, 120, 120, 30),
        ]
        for line in lines:
            assert line.image.size == (line.bbox.width, line.bbox.height)
            assert 0 <= line.baseline < line.bbox.height

    def test_detect_lines_crops_from_source(self, three_line_page):
        """Test that crops come from the source image when given."""
        from scanread.images import PixelBuffer
        from scanread.segmentation import detect_lines

        source = PixelBuffer.from_gray(np.full((150, 120), 77, dtype=np.uint8))

        lines = detect_lines(three_line_page, source=source)

        assert np.all(lines[0].image.red == 77)

    def test_detect_lines_size_mismatch(self, three_line_page):
        """Test that a source of another size is rejected."""
        from scanread.images import PixelBuffer
        from scanread.segmentation import detect_lines

        with pytest.raises(ValueError):
            detect_lines(three_line_page, source=PixelBuffer.blank(10, 10))

    def test_no_lines(self):
        """Test that a blank page raises NoLinesDetected."""
        from scanread.images import PixelBuffer
        from scanread.errors import NoLinesDetected
        from scanread.segmentation import detect_lines

        with pytest.raises(NoLinesDetected):
            detect_lines(PixelBuffer.blank(50, 50))

    def test_baseline_lower_half(self):
        """Test that the baseline is the densest row in the lower half."""
        from scanread.images import PixelBuffer
        from scanread.segmentation import estimate_baseline

        gray = np.full((20, 40), 255, dtype=np.uint8)
        gray[2:4, :] = 0      # Denser, but in the upper half
        gray[15, 5:30] = 0

        assert estimate_baseline(PixelBuffer.from_gray(gray)) == 15

    def test_baseline_default(self):
        """Test the default baseline of an empty crop."""
        from scanread.images import PixelBuffer
        from scanread.segmentation import estimate_baseline

        assert estimate_baseline(PixelBuffer.blank(40, 20)) == 14


class TestWordSegmentation:
    """Test word box estimation."""

    def test_even_split(self):
        """Test that words share the line width evenly."""
        from scanread.images import BoundingBox
        from scanread.segmentation import segment_words

        words = segment_words("The quick fox", BoundingBox(10, 5, 90, 20), confidence=0.8)

        assert [w.text for w in words] == ["The", "quick", "fox"]
        assert [w.bbox.to_tuple() for w in words] == [
            (10, 5, 30, 20),
            (40, 5, 30, 20),
            (70, 5, 30, 20),
        ]
        assert all(w.confidence == 0.8 for w in words)

    def test_boxes_cover_line(self):
        """Test that boxes tile the line without gaps."""
        from scanread.images import BoundingBox
        from scanread.segmentation import segment_words

        line = BoundingBox(0, 0, 100, 10)
        words = segment_words("a bb ccc dddd eeeee fffff g", line)

        assert words[0].bbox.x == line.x
        assert words[-1].bbox.right == line.right
        for left, right in zip(words, words[1:]):
            assert left.bbox.right == right.bbox.x

    def test_empty_text(self):
        """Test that blank text gives no boxes."""
        from scanread.images import BoundingBox
        from scanread.segmentation import segment_words

        assert segment_words("   ", BoundingBox(0, 0, 10, 10)) == []
