"""
Tests for image containers and page normalization.
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


class TestPixelBuffer:
    """Test the RGBA buffer."""

    def test_validation(self):
        """Test that malformed arrays are rejected."""
        from scanread.images import PixelBuffer
        from scanread.errors import InvalidBuffer

        with pytest.raises(InvalidBuffer):
            PixelBuffer(np.zeros((4, 4, 3), dtype=np.uint8))
        with pytest.raises(InvalidBuffer):
            PixelBuffer(np.zeros((4, 4, 4), dtype=np.float32))
        with pytest.raises(InvalidBuffer):
            PixelBuffer([[0, 0, 0, 0]])

    def test_invalid_buffer_is_value_error(self):
        from scanread.errors import InvalidBuffer

        assert issubclass(InvalidBuffer, ValueError)

    def test_from_array_bgr(self):
        """Test channel reordering from OpenCV's BGR."""
        from scanread.images import PixelBuffer

        bgr = np.zeros((2, 2, 3), dtype=np.uint8)
        bgr[:, :, 0] = 200  # Blue

        buffer = PixelBuffer.from_array(bgr)

        assert buffer.size == (2, 2)
        np.testing.assert_array_equal(buffer.data[0, 0], [0, 0, 200, 255])

    def test_from_array_gray(self):
        from scanread.images import PixelBuffer

        buffer = PixelBuffer.from_array(np.full((3, 5), 42, dtype=np.uint8))

        assert buffer.size == (5, 3)
        assert np.all(buffer.red == 42)
        assert np.all(buffer.alpha == 255)

    def test_crop(self):
        from scanread.images import PixelBuffer, BoundingBox

        gray = np.arange(100, dtype=np.uint8).reshape(10, 10)
        buffer = PixelBuffer.from_gray(gray)

        crop = buffer.crop(BoundingBox(2, 3, 4, 5))

        assert crop.size == (4, 5)
        assert crop.red[0, 0] == 32

        with pytest.raises(ValueError):
            buffer.crop(BoundingBox(8, 8, 5, 5))

    def test_require_non_empty(self):
        from scanread.images import PixelBuffer
        from scanread.errors import EmptyInput

        with pytest.raises(EmptyInput):
            PixelBuffer.blank(0, 5).require_non_empty()

    def test_bounding_box(self):
        from scanread.images import BoundingBox

        box = BoundingBox(10, 20, 30, 40)

        assert box.right == 40
        assert box.bottom == 60
        assert box.area == 1200
        assert box.to_corners() == (10, 20, 40, 60)
        assert box.fits(40, 60)
        assert not box.fits(39, 60)

        with pytest.raises(ValueError):
            BoundingBox(-1, 0, 5, 5)


class TestPreprocessing:
    """Test page normalization."""

    @pytest.fixture
    def sample_page(self):
        """Create a gray page with dark text strokes and noise."""
        from scanread.images import PixelBuffer

        rng = np.random.default_rng(5)
        gray = np.full((120, 160), 235, dtype=np.uint8)
        for y in (30, 60, 90):
            gray[y:y + 12, 15:145] = 30
        noise = rng.random(gray.shape) < 0.01
        gray[noise] = 0
        return PixelBuffer.from_gray(gray)

    def test_binarized_output(self, sample_page):
        from scanread.images import preprocess_image, get_image_stats

        result = preprocess_image(sample_page)

        assert result.image.size == sample_page.size
        assert result.gray.size == sample_page.size
        assert get_image_stats(result.image).is_binary
        assert result.original_size == (160, 120)
        assert result.transformations[:3] == ["grayscale", "median_r1", "adaptive_threshold_b15"]

    def test_noise_removed(self, sample_page):
        """Test that isolated dark specks do not survive."""
        from scanread.images import preprocess_image

        result = preprocess_image(sample_page)
        background = result.image.red[5:25, 20:140]

        assert np.mean(background == 255) > 0.98

    def test_disabled_steps(self, sample_page):
        from scanread.config import ImageConfig
        from scanread.images import preprocess_image

        config = ImageConfig(deskew_enabled=False, denoise_enabled=False, binarize_enabled=False)
        result = preprocess_image(sample_page, config)

        assert result.transformations == ["grayscale"]
        assert result.image == result.gray
        assert result.deskew_angle == 0.0

    def test_empty_page(self):
        from scanread.images import PixelBuffer, preprocess_image
        from scanread.errors import EmptyInput

        with pytest.raises(EmptyInput):
            preprocess_image(PixelBuffer.blank(10, 0))

    def test_deskews_rotated_page(self, sample_page):
        """Test that a rotated page is straightened."""
        from scanread.images import preprocess_image
        from scanread.skew import rotate_image, detect_skew_angle

        rotated = rotate_image(sample_page, 4.0)

        result = preprocess_image(rotated)

        assert abs(result.deskew_angle - 4.0) <= 1.0
        assert abs(detect_skew_angle(result.image)) <= 1.0


class TestStatsAndDebug:
    """Test image statistics and debug drawing."""

    def test_image_stats(self):
        from scanread.images import PixelBuffer, get_image_stats, stats_to_dict

        gray = np.full((10, 10), 255, dtype=np.uint8)
        gray[:2] = 0

        stats = get_image_stats(PixelBuffer.from_gray(gray))

        assert stats.dark_ratio == pytest.approx(0.2)
        assert stats.is_binary
        assert stats_to_dict(stats)["width"] == 10

    def test_draw_debug_image(self):
        from scanread.images import PixelBuffer, BoundingBox, draw_debug_image

        page = PixelBuffer.blank(50, 40)
        debug = draw_debug_image(page, [BoundingBox(5, 5, 20, 10)], labels=["0: 0.90"])

        assert debug.shape == (40, 50, 3)
        assert not np.all(debug == 255)
        assert np.all(page.red == 255)
