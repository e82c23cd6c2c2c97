"""ROI cropping and upscaling of captured frames."""

import cv2
import numpy as np

from tagscan.errors import InvalidFrameError
from tagscan.utils.logger import get_logger

from .geometry import ROIRect

logger = get_logger(__name__)


def roi_to_pixels(roi: ROIRect, width: int, height: int) -> tuple[int, int, int, int]:
    """Convert a fractional ROI to a pixel box on a frame.

    Both edges are rounded to the nearest pixel boundary, so the box
    never reaches more than half a pixel past the fractional rectangle.

    Args:
        roi: Fractional region of interest.
        width: Frame width in pixels.
        height: Frame height in pixels.

    Returns:
        ``(x, y, crop_width, crop_height)`` clipped to the frame.
    """
    x = min(int(round(width * roi.x)), width)
    y = min(int(round(height * roi.y)), height)
    right = min(int(round(width * (roi.x + roi.w))), width)
    bottom = min(int(round(height * (roi.y + roi.h))), height)
    return x, y, max(right - x, 0), max(bottom - y, 0)


def crop_roi(frame: np.ndarray, roi: ROIRect, min_width: int = 1200) -> np.ndarray:
    """Crop the ROI out of a frame and upscale it to a working width.

    Only pixels inside the ROI reach the output. Crops narrower than
    ``min_width`` are scaled uniformly so the width is exactly
    ``min_width``; wider crops keep their size.

    Args:
        frame: Full sensor frame (gray, RGB, or RGBA).
        roi: Fractional region of interest.
        min_width: Minimum output width in pixels.

    Returns:
        A newly allocated image of the cropped region.

    Raises:
        InvalidFrameError: If the frame has no pixels or the ROI is empty.
    """
    if frame is None or frame.ndim < 2 or frame.shape[0] == 0 or frame.shape[1] == 0:
        raise InvalidFrameError("Captured frame has zero dimensions")

    height, width = frame.shape[:2]
    x, y, crop_w, crop_h = roi_to_pixels(roi, width, height)
    if crop_w <= 0 or crop_h <= 0:
        raise InvalidFrameError(f"ROI {roi} selects no pixels of a {width}x{height} frame")

    crop = frame[y : y + crop_h, x : x + crop_w].copy()

    if crop_w >= min_width:
        logger.debug("Cropped ROI %dx%d at (%d, %d), no upscale", crop_w, crop_h, x, y)
        return crop

    scale = min_width / crop_w
    target_h = max(1, int(round(crop_h * scale)))
    result = cv2.resize(crop, (min_width, target_h), interpolation=cv2.INTER_LINEAR)
    logger.debug(
        "Cropped ROI %dx%d at (%d, %d), upscaled x%.2f to %dx%d",
        crop_w,
        crop_h,
        x,
        y,
        scale,
        min_width,
        target_h,
    )
    return result
