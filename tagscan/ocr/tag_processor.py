"""End-to-end extraction for a single tag capture.

Loads the captured frame, preprocesses the ROI, recognizes text lines,
and parses the tag fields, or hands the ROI to the cloud extractor.
"""

import io
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError

from tagscan.errors import EngineDisabledError, InvalidFrameError
from tagscan.extraction.cloud_extractor import GeminiTagExtractor
from tagscan.extraction.field_parser import FieldParser, OCRResult
from tagscan.preprocessing.blur import BlurVerdict
from tagscan.preprocessing.geometry import ROIRect
from tagscan.preprocessing.pipeline import (
    PreprocessingPipeline,
    QualityMetrics,
    calculate_contrast,
)
from tagscan.preprocessing.sharpen import to_display_range
from tagscan.utils.config import AppConfig
from tagscan.utils.logger import get_logger

from .lines import LineRecognizer, ParsedLine
from .tesseract_engine import TesseractEngine

logger = get_logger(__name__)

ENGINES = ("local", "cloud")


@dataclass
class ScanOutcome:
    """Result of one capture attempt with its debugging context."""

    result: OCRResult
    engine: str
    blur: BlurVerdict
    metrics: QualityMetrics
    needs_review: bool
    lines: list[ParsedLine] = field(default_factory=list)
    debug_preview: bytes | None = None


def encode_preview(image: np.ndarray, quality: int = 50) -> bytes:
    """Encode an image as a low-quality JPEG for operator overlays."""
    buf = io.BytesIO()
    Image.fromarray(to_display_range(image)).convert("RGB").save(
        buf, format="JPEG", quality=quality
    )
    return buf.getvalue()


class TagProcessor:
    """Capture-to-fields pipeline for dispatch tags.

    Each call to :meth:`process` is independent; the processor holds no
    per-capture state.

    Args:
        config: Application configuration object.
        recognizer: Line recognizer for the local path. Defaults to a
            :class:`TesseractEngine` built from ``config.ocr``.
        cloud_extractor: Extractor for the cloud path. Built lazily from
            ``config.cloud`` if ``None``.
    """

    def __init__(
        self,
        config: AppConfig,
        recognizer: LineRecognizer | None = None,
        cloud_extractor: GeminiTagExtractor | None = None,
    ) -> None:
        self.config = config
        self.preprocessing = PreprocessingPipeline(config.preprocessing)
        self.recognizer = recognizer or TesseractEngine(
            tesseract_cmd=config.ocr.tesseract_cmd,
            default_lang=config.ocr.default_lang,
            psm=config.ocr.psm,
            timeout_s=config.ocr.timeout_s,
        )
        self.parser = FieldParser(config.extraction)
        self._cloud_extractor = cloud_extractor

    def _get_cloud_extractor(self) -> GeminiTagExtractor:
        if self._cloud_extractor is None:
            self._cloud_extractor = GeminiTagExtractor(self.config.cloud)
        return self._cloud_extractor

    def process(
        self,
        source: Path | bytes | np.ndarray,
        roi: ROIRect | None = None,
        engine: str = "local",
    ) -> ScanOutcome:
        """Extract tag fields from a captured frame.

        Args:
            source: Path to an image file, encoded image bytes, or a
                decoded RGB frame.
            roi: Region of interest. Defaults to the centered guide.
            engine: ``"local"`` for Tesseract or ``"cloud"`` for Gemini.

        Returns:
            The extraction result with blur, metrics, and preview.

        Raises:
            ValueError: If ``engine`` is not recognized.
            EngineDisabledError: If the cloud engine is turned off.
            InvalidFrameError: If the frame cannot be used.
            BlurDetectedError: If the ROI is too blurry.
            RecognitionEngineError: If the engine fails.
        """
        if engine not in ENGINES:
            raise ValueError(f"Unsupported engine: {engine}")
        if engine == "cloud" and not self.config.cloud.enabled:
            raise EngineDisabledError("Cloud extraction is disabled")

        frame = self.load_frame(source)
        quality = self.config.preprocessing.debug_preview_quality

        if engine == "cloud":
            cropped, verdict = self.preprocessing.crop_and_check(frame, roi)
            result = self._get_cloud_extractor().extract(cropped)
            contrast = calculate_contrast(cropped)
            metrics = QualityMetrics(verdict.score, contrast, contrast)
            lines: list[ParsedLine] = []
            preview = encode_preview(cropped, quality)
        else:
            prepared = self.preprocessing.process(frame, roi)
            lines = self.recognizer.recognize_lines(
                prepared.ocr_image, self.config.ocr.default_lang
            )
            result = self.parser.parse(lines)
            verdict, metrics = prepared.blur, prepared.metrics
            preview = encode_preview(prepared.sharpened, quality)

        needs_review = result.confidence < self.config.extraction.review_threshold
        if needs_review:
            logger.warning(
                "Verification needed: low confidence %.2f for %s",
                result.confidence,
                result.part_no,
            )
        return ScanOutcome(
            result=result,
            engine=engine,
            blur=verdict,
            metrics=metrics,
            needs_review=needs_review,
            lines=lines,
            debug_preview=preview,
        )

    def load_frame(self, source: Path | bytes | np.ndarray) -> np.ndarray:
        """Decode a captured frame into an RGB ``uint8`` array.

        Args:
            source: Path, encoded bytes, or an already decoded array.

        Returns:
            The frame as a numpy array.

        Raises:
            InvalidFrameError: If the source cannot be decoded or is empty.
        """
        if isinstance(source, np.ndarray):
            frame = source
        else:
            try:
                if isinstance(source, bytes):
                    img = Image.open(io.BytesIO(source))
                else:
                    img = Image.open(Path(source))
                frame = np.array(img.convert("RGB"))
            except (OSError, UnidentifiedImageError) as exc:
                raise InvalidFrameError(f"Cannot decode captured frame: {exc}") from exc

        if frame.ndim < 2 or frame.shape[0] == 0 or frame.shape[1] == 0:
            raise InvalidFrameError("Captured frame has zero dimensions")
        return frame
