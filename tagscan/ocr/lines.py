"""Recognized text lines and the recognizer interface."""

from dataclasses import dataclass
from typing import Protocol

import numpy as np


@dataclass
class BoundingBox:
    """Axis-aligned bounding box for a detected element."""

    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class ParsedLine:
    """One recognized line of text in top-to-bottom order."""

    text: str
    index: int
    bbox: BoundingBox | None = None
    confidence: float = 1.0


class LineRecognizer(Protocol):
    """Engine that turns an enhanced image into ordered text lines.

    Implementations raise :class:`tagscan.errors.RecognitionEngineError`
    on failure and never retry.
    """

    def recognize_lines(
        self, image: np.ndarray, lang: str | None = None
    ) -> list[ParsedLine]: ...
