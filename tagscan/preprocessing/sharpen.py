"""3x3 sharpening pass applied after binarization.

Hard thresholding and upscaling soften glyph edges; a small Laplacian
sharpen restores them before recognition.
"""

import cv2
import numpy as np

from tagscan.utils.logger import get_logger

logger = get_logger(__name__)

SHARPEN_KERNEL = np.array(
    [
        [0, -1, 0],
        [-1, 5, -1],
        [0, -1, 0],
    ],
    dtype=np.float32,
)


def sharpen(image: np.ndarray, clamp: bool = False) -> np.ndarray:
    """Convolve each color channel with :data:`SHARPEN_KERNEL`.

    Neighbors outside the image contribute nothing (zero border), so
    edge pixels sum fewer terms. Results are not clamped unless
    ``clamp`` is set, so values may fall outside ``[0, 255]``. An alpha
    channel is forced to 255.

    Args:
        image: Input image (RGB, RGBA, or grayscale).
        clamp: Clip the result to ``[0, 255]``.

    Returns:
        New ``int16`` image with the same shape as the input.
    """
    color = image[..., :3] if image.ndim == 3 else image
    filtered = cv2.filter2D(
        color.astype(np.float32),
        -1,
        SHARPEN_KERNEL,
        borderType=cv2.BORDER_CONSTANT,
    )
    if clamp:
        filtered = np.clip(filtered, 0, 255)

    result = np.empty(image.shape, dtype=np.int16)
    if image.ndim == 3:
        result[..., :3] = np.rint(filtered).reshape(color.shape)
        if image.shape[2] == 4:
            result[..., 3] = 255
    else:
        result[...] = np.rint(filtered)

    logger.debug(
        "Sharpened %dx%d image (range %d..%d, clamp=%s)",
        image.shape[1],
        image.shape[0],
        int(result.min()),
        int(result.max()),
        clamp,
    )
    return result


def to_display_range(image: np.ndarray) -> np.ndarray:
    """Clip an image into ``[0, 255]`` as ``uint8`` for encoding or OCR."""
    return np.clip(image, 0, 255).astype(np.uint8)
