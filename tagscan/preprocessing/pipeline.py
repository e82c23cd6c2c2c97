"""ROI-only preprocessing pipeline for dispatch tag captures.

Runs crop/upscale, blur rejection, contrast binarization, and sharpening
in order, each stage producing a new buffer for the next.
"""

from dataclasses import dataclass

import numpy as np

from tagscan.errors import BlurDetectedError
from tagscan.utils.config import PreprocessingConfig
from tagscan.utils.logger import get_logger

from .binarize import binarize, to_luminance
from .blur import BlurVerdict, estimate_blur
from .geometry import DEFAULT_ROI, ROIRect
from .roi import crop_roi
from .sharpen import sharpen, to_display_range

logger = get_logger(__name__)


@dataclass
class QualityMetrics:
    """Image measurements taken while preprocessing a capture."""

    blur_score: float
    contrast_before: float
    contrast_after: float


@dataclass
class PreprocessResult:
    """Buffers and measurements produced by the preprocessing pipeline."""

    cropped: np.ndarray
    enhanced: np.ndarray
    sharpened: np.ndarray
    blur: BlurVerdict
    metrics: QualityMetrics

    @property
    def ocr_image(self) -> np.ndarray:
        """The enhanced ROI as ``uint8``, ready for the recognizer."""
        return to_display_range(self.sharpened)


def calculate_contrast(image: np.ndarray) -> float:
    """Calculate contrast as the standard deviation of luminance.

    Args:
        image: Input image (RGB, RGBA, or grayscale).

    Returns:
        Contrast score (higher means more contrast).
    """
    return float(to_luminance(image).std())


class PreprocessingPipeline:
    """Crop, check, and enhance a captured frame for recognition.

    Args:
        config: Preprocessing configuration with the tuning constants.
    """

    def __init__(self, config: PreprocessingConfig) -> None:
        self.config = config

    def crop_and_check(
        self, frame: np.ndarray, roi: ROIRect | None = None
    ) -> tuple[np.ndarray, BlurVerdict]:
        """Crop the ROI and reject it if blurry.

        Args:
            frame: Full sensor frame.
            roi: Region of interest, :data:`DEFAULT_ROI` if ``None``.

        Returns:
            Tuple of (cropped_image, blur_verdict).

        Raises:
            InvalidFrameError: If the frame or ROI is empty.
            BlurDetectedError: If blur checking is enabled and fails.
        """
        cropped = crop_roi(frame, roi or DEFAULT_ROI, min_width=self.config.min_width)
        verdict = estimate_blur(
            cropped,
            noise_floor=self.config.blur_noise_floor,
            threshold=self.config.blur_threshold,
            stride=self.config.blur_sample_stride,
            offset=self.config.blur_neighbor_offset,
        )
        if self.config.blur_check_enabled and verdict.is_blurry:
            logger.warning("Rejected blurry capture (score %.2f)", verdict.score)
            raise BlurDetectedError(verdict)
        return cropped, verdict

    def process(self, frame: np.ndarray, roi: ROIRect | None = None) -> PreprocessResult:
        """Run the full preprocessing pipeline on a captured frame.

        Args:
            frame: Full sensor frame.
            roi: Region of interest, :data:`DEFAULT_ROI` if ``None``.

        Returns:
            Preprocessing buffers and quality metrics.
        """
        cropped, verdict = self.crop_and_check(frame, roi)

        enhanced = binarize(
            cropped,
            gain=self.config.contrast_gain,
            cutoff=self.config.binarize_cutoff,
        )
        if self.config.sharpen_enabled:
            sharpened = sharpen(enhanced, clamp=self.config.sharpen_clamp)
        else:
            sharpened = enhanced.astype(np.int16)

        metrics = QualityMetrics(
            blur_score=verdict.score,
            contrast_before=calculate_contrast(cropped),
            contrast_after=calculate_contrast(enhanced),
        )
        logger.info(
            "Preprocessing complete: %dx%d ROI, blur score %.1f, contrast %.1f->%.1f",
            cropped.shape[1],
            cropped.shape[0],
            metrics.blur_score,
            metrics.contrast_before,
            metrics.contrast_after,
        )
        return PreprocessResult(
            cropped=cropped,
            enhanced=enhanced,
            sharpened=sharpened,
            blur=verdict,
            metrics=metrics,
        )
