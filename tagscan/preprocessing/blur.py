"""Cheap blur estimation for cropped tag images.

Printed tag text produces strong intensity steps between neighboring
pixels. A sparse sample of horizontal neighbor differences is enough to
tell a focused capture from a defocused one before paying for OCR.
"""

from dataclasses import dataclass

import numpy as np

from tagscan.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class BlurVerdict:
    """Outcome of a blur check."""

    is_blurry: bool
    score: float
    samples: int


def estimate_blur(
    image: np.ndarray,
    noise_floor: int = 15,
    threshold: float = 10.0,
    stride: int = 4,
    offset: int = 1,
) -> BlurVerdict:
    """Estimate whether an image is too blurry to recognize.

    Samples every ``stride``-th pixel of the first channel in row-major
    order and compares it with the pixel ``offset`` positions later.
    Differences above ``noise_floor`` are averaged; an average below
    ``threshold`` is blurry. If no difference clears the noise floor the
    score is 0 and the image is reported blurry.

    Args:
        image: Cropped image before binarization (gray, RGB, or RGBA).
        noise_floor: Differences at or below this are ignored.
        threshold: Minimum average edge strength of a sharp image.
        stride: Sampling step in pixels.
        offset: Distance to the compared neighbor in pixels.

    Returns:
        Blur verdict with the underlying sharpness score.
    """
    channel = image[..., 0] if image.ndim == 3 else image
    flat = channel.reshape(-1).astype(np.int16)

    positions = np.arange(0, max(flat.size - offset - 1, 0), stride)
    diffs = np.abs(flat[positions] - flat[positions + offset])
    strong = diffs[diffs > noise_floor]

    score = float(strong.mean()) if strong.size else 0.0
    is_blurry = score <= 0.0 or score < threshold
    logger.debug(
        "Blur check: score=%.2f over %d/%d samples, blurry=%s",
        score,
        strong.size,
        positions.size,
        is_blurry,
    )
    return BlurVerdict(is_blurry=is_blurry, score=score, samples=int(strong.size))
