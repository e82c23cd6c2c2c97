"""Tests for ROI cropping, blur estimation, and enhancement."""

import numpy as np
import pytest

from tagscan.errors import BlurDetectedError, InvalidFrameError
from tagscan.preprocessing.binarize import binarize, stretch_contrast, to_luminance
from tagscan.preprocessing.blur import estimate_blur
from tagscan.preprocessing.geometry import DEFAULT_ROI, ROIRect
from tagscan.preprocessing.pipeline import (
    PreprocessingPipeline,
    PreprocessResult,
    calculate_contrast,
)
from tagscan.preprocessing.roi import crop_roi, roi_to_pixels
from tagscan.preprocessing.sharpen import sharpen, to_display_range
from tagscan.utils.config import PreprocessingConfig


def _stripes(height: int = 100, width: int = 200, low: int = 0, high: int = 255) -> np.ndarray:
    """Create a grayscale image of alternating one-pixel columns."""
    image = np.full((height, width), high, dtype=np.uint8)
    image[:, ::2] = low
    return image


def _black_and_white(height: int = 60, width: int = 80) -> np.ndarray:
    """Create a random pure black/white RGB image."""
    rng = np.random.default_rng(7)
    mono = rng.integers(0, 2, size=(height, width), dtype=np.uint8) * 255
    return np.repeat(mono[..., np.newaxis], 3, axis=2)


class TestCropROI:
    """Tests for ROI cropping and upscaling."""

    def test_crop_dimensions_match_fractions(self) -> None:
        frame = np.zeros((500, 1000, 3), dtype=np.uint8)
        result = crop_roi(frame, ROIRect(0.1, 0.2, 0.5, 0.3), min_width=1)
        assert result.shape == (150, 500, 3)

    def test_roi_to_pixels(self) -> None:
        assert roi_to_pixels(DEFAULT_ROI, 1000, 500) == (200, 150, 600, 200)

    def test_upscales_to_min_width(self) -> None:
        frame = np.zeros((500, 1000, 3), dtype=np.uint8)
        result = crop_roi(frame, DEFAULT_ROI, min_width=1200)
        assert result.shape == (400, 1200, 3)

    def test_upscale_preserves_aspect_ratio(self) -> None:
        frame = np.zeros((480, 640, 3), dtype=np.uint8)
        result = crop_roi(frame, ROIRect(0.25, 0.25, 0.5, 0.5), min_width=1200)
        crop_h, crop_w = 240, 320
        assert result.shape[1] == 1200
        assert result.shape[0] == round(crop_h * 1200 / crop_w)

    def test_wide_crop_not_rescaled(self) -> None:
        frame = np.zeros((1000, 3000, 3), dtype=np.uint8)
        result = crop_roi(frame, DEFAULT_ROI, min_width=1200)
        assert result.shape == (400, 1800, 3)

    @pytest.mark.parametrize(
        "roi, height, width",
        [
            (DEFAULT_ROI, 500, 1000),
            (ROIRect(0.13, 0.27, 0.41, 0.33), 481, 677),
            (ROIRect(0.5, 0.5, 0.5, 0.5), 375, 999),
            (ROIRect(0.011, 0.9, 0.333, 0.1), 301, 457),
            (ROIRect(0.7, 0.05, 0.29, 0.61), 1079, 1919),
        ],
    )
    def test_no_pixels_from_outside_roi(self, roi: ROIRect, height: int, width: int) -> None:
        cols = np.arange(width) + 0.5
        rows = np.arange(height) + 0.5
        inside_cols = (cols >= width * roi.x) & (cols <= width * (roi.x + roi.w))
        inside_rows = (rows >= height * roi.y) & (rows <= height * (roi.y + roi.h))
        frame = np.zeros((height, width, 3), dtype=np.uint8)
        frame[np.ix_(inside_rows, inside_cols)] = 200

        result = crop_roi(frame, roi, min_width=1200)

        assert result.size > 0
        assert np.all(result == 200)

    @pytest.mark.parametrize(
        "roi, height, width",
        [
            (ROIRect(0.13, 0.27, 0.41, 0.33), 481, 677),
            (ROIRect(0.011, 0.9, 0.333, 0.1), 301, 457),
        ],
    )
    def test_crop_edges_within_half_pixel(self, roi: ROIRect, height: int, width: int) -> None:
        x, y, crop_w, crop_h = roi_to_pixels(roi, width, height)
        assert abs(x - width * roi.x) <= 0.5
        assert abs(y - height * roi.y) <= 0.5
        assert abs(x + crop_w - width * (roi.x + roi.w)) <= 0.5
        assert abs(y + crop_h - height * (roi.y + roi.h)) <= 0.5

    def test_output_does_not_alias_frame(self) -> None:
        frame = np.zeros((1000, 3000, 3), dtype=np.uint8)
        result = crop_roi(frame, DEFAULT_ROI)
        result[:] = 99
        assert not np.any(frame == 99)

    def test_grayscale_frame(self) -> None:
        frame = np.zeros((500, 1000), dtype=np.uint8)
        assert crop_roi(frame, DEFAULT_ROI).shape == (400, 1200)

    def test_zero_size_frame_raises(self) -> None:
        with pytest.raises(InvalidFrameError):
            crop_roi(np.zeros((0, 0, 3), dtype=np.uint8), DEFAULT_ROI)

    def test_empty_roi_raises(self) -> None:
        frame = np.zeros((500, 1000, 3), dtype=np.uint8)
        with pytest.raises(InvalidFrameError, match="selects no pixels"):
            crop_roi(frame, ROIRect(0.5, 0.5, 0.0, 0.0))


class TestBlurEstimator:
    """Tests for the sampled edge-strength blur check."""

    def test_sharp_stripes_not_blurry(self) -> None:
        verdict = estimate_blur(_stripes())
        assert verdict.is_blurry is False
        assert verdict.score == pytest.approx(255.0)
        assert verdict.samples > 0

    def test_flat_image_is_blurry(self) -> None:
        verdict = estimate_blur(np.full((100, 200), 128, dtype=np.uint8))
        assert verdict.is_blurry is True
        assert verdict.score == 0.0
        assert verdict.samples == 0

    def test_differences_under_noise_floor_ignored(self) -> None:
        verdict = estimate_blur(_stripes(low=120, high=135))
        assert verdict.is_blurry is True
        assert verdict.score == 0.0

    def test_uses_first_channel_of_color_image(self) -> None:
        image = np.zeros((100, 200, 3), dtype=np.uint8)
        image[..., 0] = _stripes()
        assert estimate_blur(image).is_blurry is False

    def test_threshold_is_configurable(self) -> None:
        image = _stripes(low=100, high=130)
        assert estimate_blur(image, threshold=10).is_blurry is False
        assert estimate_blur(image, threshold=50).is_blurry is True

    def test_flattening_never_makes_blurry_image_sharp(self) -> None:
        base = _stripes().astype(np.float64)
        verdicts = []
        for factor in (1.0, 0.5, 0.1, 0.05, 0.01, 0.0):
            flattened = np.rint((base - 128.0) * factor + 128.0).astype(np.uint8)
            verdicts.append(estimate_blur(flattened).is_blurry)
        first_blurry = verdicts.index(True)
        assert all(verdicts[first_blurry:])
        assert verdicts[0] is False

    def test_tiny_image(self) -> None:
        verdict = estimate_blur(np.zeros((1, 1), dtype=np.uint8))
        assert verdict.is_blurry is True


class TestBinarize:
    """Tests for contrast stretch and binarization."""

    def test_luminance_weights(self) -> None:
        image = np.array([[[255, 0, 0], [0, 255, 0], [0, 0, 255]]], dtype=np.uint8)
        np.testing.assert_allclose(
            to_luminance(image), [[0.299 * 255, 0.587 * 255, 0.114 * 255]]
        )

    def test_stretch_around_midpoint(self) -> None:
        np.testing.assert_allclose(
            stretch_contrast(np.array([128.0, 138.0, 118.0]), 1.6),
            [128.0, 144.0, 112.0],
        )

    def test_output_is_black_and_white(self) -> None:
        rng = np.random.default_rng(42)
        image = rng.integers(0, 256, size=(50, 60, 3), dtype=np.uint8)
        result = binarize(image)
        assert set(np.unique(result)).issubset({0, 255})
        assert np.all(result[..., 0] == result[..., 1])
        assert np.all(result[..., 1] == result[..., 2])

    @pytest.mark.parametrize("level, expected", [(128, 0), (140, 0), (150, 255), (200, 255)])
    def test_cutoff_applied_after_contrast(self, level: int, expected: int) -> None:
        image = np.full((2, 2, 3), level, dtype=np.uint8)
        assert np.all(binarize(image) == expected)

    def test_idempotent(self) -> None:
        once = binarize(_black_and_white())
        np.testing.assert_array_equal(binarize(once), once)

    def test_pass_through_parameters_keep_black_and_white(self) -> None:
        image = _black_and_white()
        np.testing.assert_array_equal(binarize(image, gain=1.0, cutoff=0), image)

    def test_alpha_channel_untouched(self) -> None:
        image = np.zeros((4, 4, 4), dtype=np.uint8)
        image[..., :3] = 200
        image[..., 3] = 77
        result = binarize(image)
        assert np.all(result[..., :3] == 255)
        assert np.all(result[..., 3] == 77)

    def test_grayscale_input(self) -> None:
        result = binarize(_stripes())
        assert result.shape == (100, 200)
        assert set(np.unique(result)) == {0, 255}

    def test_input_not_modified(self) -> None:
        image = np.full((4, 4, 3), 150, dtype=np.uint8)
        binarize(image)
        assert np.all(image == 150)

    def test_empty_image_raises(self) -> None:
        with pytest.raises(ValueError, match="empty"):
            binarize(np.zeros((0, 0, 3), dtype=np.uint8))


class TestSharpen:
    """Tests for the 3x3 sharpening convolution."""

    def test_uniform_interior_unchanged(self) -> None:
        image = np.full((5, 5, 3), 100, dtype=np.uint8)
        result = sharpen(image)
        assert result.dtype == np.int16
        assert np.all(result[1:-1, 1:-1] == 100)

    def test_border_pixels_use_fewer_terms(self) -> None:
        image = np.full((5, 5), 100, dtype=np.uint8)
        result = sharpen(image)
        assert result[0, 0] == 300
        assert result[0, 2] == 200

    def test_values_not_clamped_by_default(self) -> None:
        image = np.zeros((3, 3), dtype=np.uint8)
        image[1, 1] = 255
        result = sharpen(image)
        assert result[1, 1] == 1275
        assert result[0, 1] == -255
        assert result[0, 0] == 0

    def test_clamp_option(self) -> None:
        image = np.zeros((3, 3), dtype=np.uint8)
        image[1, 1] = 255
        result = sharpen(image, clamp=True)
        assert result.min() == 0
        assert result.max() == 255

    def test_channels_sharpened_independently(self) -> None:
        image = np.zeros((3, 3, 3), dtype=np.uint8)
        image[1, 1] = (10, 20, 30)
        result = sharpen(image)
        np.testing.assert_array_equal(result[1, 1], [50, 100, 150])

    def test_alpha_forced_opaque(self) -> None:
        image = np.zeros((4, 4, 4), dtype=np.uint8)
        result = sharpen(image)
        assert np.all(result[..., 3] == 255)

    def test_display_range(self) -> None:
        values = np.array([-255, 0, 128, 1275], dtype=np.int16)
        np.testing.assert_array_equal(to_display_range(values), [0, 0, 128, 255])


class TestQualityMetrics:
    """Tests for contrast measurement."""

    def test_flat_image_has_no_contrast(self) -> None:
        assert calculate_contrast(np.full((10, 10, 3), 90, dtype=np.uint8)) == 0.0

    def test_stripes_have_contrast(self) -> None:
        assert calculate_contrast(_stripes()) == pytest.approx(127.5)


class TestPreprocessingPipeline:
    """Tests for the full preprocessing pipeline."""

    def test_sharp_frame(self, sharp_frame: np.ndarray) -> None:
        pipeline = PreprocessingPipeline(PreprocessingConfig())
        result = pipeline.process(sharp_frame)
        assert isinstance(result, PreprocessResult)
        assert result.cropped.shape == (400, 1200, 3)
        assert set(np.unique(result.enhanced)).issubset({0, 255})
        assert result.blur.is_blurry is False
        assert result.metrics.blur_score > 0
        assert result.ocr_image.dtype == np.uint8
        assert result.ocr_image.shape == (400, 1200, 3)

    def test_blurry_frame_raises(self, flat_frame: np.ndarray) -> None:
        pipeline = PreprocessingPipeline(PreprocessingConfig())
        with pytest.raises(BlurDetectedError) as exc_info:
            pipeline.process(flat_frame)
        assert exc_info.value.verdict.is_blurry is True
        assert str(exc_info.value) == "Image blurry — retake"

    def test_blur_check_disabled(self, flat_frame: np.ndarray) -> None:
        pipeline = PreprocessingPipeline(PreprocessingConfig(blur_check_enabled=False))
        result = pipeline.process(flat_frame)
        assert result.blur.is_blurry is True
        assert result.metrics.contrast_before == 0.0

    def test_sharpen_disabled(self, sharp_frame: np.ndarray) -> None:
        pipeline = PreprocessingPipeline(PreprocessingConfig(sharpen_enabled=False))
        result = pipeline.process(sharp_frame)
        np.testing.assert_array_equal(result.sharpened, result.enhanced)

    def test_custom_roi(self, sharp_frame: np.ndarray) -> None:
        pipeline = PreprocessingPipeline(PreprocessingConfig(min_width=100))
        result = pipeline.process(sharp_frame, ROIRect(0.0, 0.0, 0.1, 0.1))
        assert result.cropped.shape == (100, 200, 3)

    def test_invalid_frame_raises(self) -> None:
        pipeline = PreprocessingPipeline(PreprocessingConfig())
        with pytest.raises(InvalidFrameError):
            pipeline.process(np.zeros((0, 10, 3), dtype=np.uint8))
