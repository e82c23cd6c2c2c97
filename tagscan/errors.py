"""Exception taxonomy for a single capture attempt.

Low-confidence extractions are not errors; they come back as a normal
result with a low confidence score.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tagscan.preprocessing.blur import BlurVerdict


class TagScanError(Exception):
    """Base class for errors raised by the scanning pipeline."""


class InvalidFrameError(TagScanError):
    """The captured frame is empty, undecodable, or the ROI selects no pixels."""


class BlurDetectedError(TagScanError):
    """The cropped region is too blurry to be worth recognizing.

    Args:
        verdict: Blur verdict that triggered the rejection.
    """

    def __init__(self, verdict: BlurVerdict) -> None:
        super().__init__("Image blurry — retake")
        self.verdict = verdict


class RecognitionEngineError(TagScanError):
    """The text recognition engine (local or cloud) failed."""


class EngineDisabledError(TagScanError):
    """The requested recognition engine is turned off in the configuration."""
