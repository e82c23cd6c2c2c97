"""Contrast stretch and fixed-cutoff binarization for tag images.

Shop-floor captures have uneven lighting, so the gray level is pushed
away from the midpoint before a hard black/white cut.
"""

import numpy as np

from tagscan.utils.logger import get_logger

logger = get_logger(__name__)

LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)


def to_luminance(image: np.ndarray) -> np.ndarray:
    """Convert an image to floating-point perceptual luminance.

    Args:
        image: Input image (RGB, RGBA, or grayscale).

    Returns:
        2-D float array of luminance values in ``[0, 255]``.
    """
    if image.ndim == 3:
        return image[..., :3].astype(np.float64) @ LUMA_WEIGHTS
    return image.astype(np.float64)


def stretch_contrast(luminance: np.ndarray, gain: float = 1.6) -> np.ndarray:
    """Scale the deviation of each value from mid-gray (128) by ``gain``."""
    return (luminance - 128.0) * gain + 128.0


def binarize(image: np.ndarray, gain: float = 1.6, cutoff: float = 155) -> np.ndarray:
    """Binarize an image to pure black and white.

    Pixels whose contrast-stretched luminance exceeds ``cutoff`` become
    white (255), all others black (0). Color channels of a pixel are set
    identically and the input layout is kept; an alpha channel is left
    untouched.

    Args:
        image: Input image (RGB, RGBA, or grayscale).
        gain: Contrast gain around mid-gray.
        cutoff: Adjusted luminance above which a pixel is white.

    Returns:
        New image with the same shape and dtype ``uint8``.

    Raises:
        ValueError: If the image has no pixels.
    """
    if image.size == 0:
        raise ValueError("Cannot binarize an empty image")

    adjusted = stretch_contrast(to_luminance(image), gain)
    mono = np.where(adjusted > cutoff, 255, 0).astype(np.uint8)

    result = image.astype(np.uint8, copy=True)
    if result.ndim == 3:
        result[..., :3] = mono[..., np.newaxis]
    else:
        result = mono

    logger.debug(
        "Binarized %dx%d image (gain=%.2f, cutoff=%.1f, white=%.1f%%)",
        mono.shape[1],
        mono.shape[0],
        gain,
        cutoff,
        100.0 * float(np.count_nonzero(mono)) / mono.size,
    )
    return result
