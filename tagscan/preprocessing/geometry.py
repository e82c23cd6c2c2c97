"""Mapping of the on-screen capture guide to a fractional ROI.

The guide is drawn over a display container whose pixel size usually
differs from the camera sensor frame, so the ROI is stored as fractions
of the container and applied to the sensor frame later.
"""

from dataclasses import dataclass

from tagscan.utils.logger import get_logger

logger = get_logger(__name__)


def _clamp_unit(value: float) -> float:
    return min(max(float(value), 0.0), 1.0)


def _clamp_span(start: float, size: float) -> tuple[float, float]:
    """Intersect the span ``[start, start + size]`` with ``[0, 1]``."""
    start, size = float(start), float(size)
    if start < 0.0:
        size += start
    start = _clamp_unit(start)
    return start, min(_clamp_unit(size), 1.0 - start)


@dataclass(frozen=True)
class ROIRect:
    """Region of interest as fractions of the frame width and height.

    The rectangle is clipped to the unit square: a part hanging off any
    edge is cut away, never shifted back inside.
    """

    x: float
    y: float
    w: float
    h: float

    def __post_init__(self) -> None:
        x, w = _clamp_span(self.x, self.w)
        y, h = _clamp_span(self.y, self.h)
        object.__setattr__(self, "x", x)
        object.__setattr__(self, "y", y)
        object.__setattr__(self, "w", w)
        object.__setattr__(self, "h", h)


@dataclass(frozen=True)
class ScreenRect:
    """Axis-aligned rectangle in display pixels."""

    left: float
    top: float
    width: float
    height: float


# Matches the default size of the visual guide before first layout.
DEFAULT_ROI = ROIRect(x=0.2, y=0.3, w=0.6, h=0.4)


def map_guide_to_roi(
    guide: ScreenRect | None,
    container: ScreenRect | None,
    frame_size: tuple[int, int] | None = None,
) -> ROIRect:
    """Convert the guide's on-screen bounds to an ROI of its container.

    Args:
        guide: Bounds of the capture guide, or ``None`` before layout.
        container: Bounds of the camera preview container, or ``None``
            before layout.
        frame_size: ``(width, height)`` of the sensor frame. Only logged;
            the fractions are applied to the sensor frame by the cropper.

    Returns:
        The fractional ROI, or :data:`DEFAULT_ROI` when geometry is missing.
    """
    if guide is None or container is None or container.width <= 0 or container.height <= 0:
        logger.debug("Guide geometry unavailable, using default ROI")
        return DEFAULT_ROI

    roi = ROIRect(
        x=(guide.left - container.left) / container.width,
        y=(guide.top - container.top) / container.height,
        w=guide.width / container.width,
        h=guide.height / container.height,
    )
    logger.debug("Mapped guide to ROI %s (sensor frame %s)", roi, frame_size)
    return roi
