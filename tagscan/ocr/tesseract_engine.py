"""Tesseract line recognizer for enhanced tag images.

Groups Tesseract's word-level output into lines in reading order, which
is the shape the field parser consumes.
"""

import numpy as np
import pytesseract
from PIL import Image

from tagscan.errors import RecognitionEngineError
from tagscan.utils.logger import get_logger

from .lines import BoundingBox, ParsedLine

logger = get_logger(__name__)


def _line_bbox(boxes: list[BoundingBox]) -> BoundingBox:
    left = min(b.x for b in boxes)
    top = min(b.y for b in boxes)
    right = max(b.x + b.width for b in boxes)
    bottom = max(b.y + b.height for b in boxes)
    return BoundingBox(x=left, y=top, width=right - left, height=bottom - top)


class TesseractEngine:
    """Wrapper around Tesseract OCR producing ordered text lines.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
        default_lang: Default language profile.
        psm: Tesseract page segmentation mode.
        timeout_s: Seconds before a Tesseract call is abandoned.
            ``0`` disables the timeout.
    """

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        default_lang: str = "eng",
        psm: int = 3,
        timeout_s: float = 5.0,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.default_lang = default_lang
        self.psm = psm
        self.timeout_s = timeout_s

    def recognize_lines(
        self, image: np.ndarray, lang: str | None = None
    ) -> list[ParsedLine]:
        """Recognize text lines in an image.

        Args:
            image: Enhanced ``uint8`` image.
            lang: Tesseract language code. Defaults to the engine default.

        Returns:
            Non-empty lines in recognition order.

        Raises:
            RecognitionEngineError: If Tesseract is missing, fails, or
                times out.
        """
        lang = lang or self.default_lang
        try:
            data = pytesseract.image_to_data(
                Image.fromarray(image),
                lang=lang,
                config=f"--psm {self.psm}",
                timeout=self.timeout_s,
                output_type=pytesseract.Output.DICT,
            )
        except (
            pytesseract.TesseractError,
            pytesseract.TesseractNotFoundError,
            RuntimeError,
        ) as exc:
            logger.error("Tesseract recognition failed: %s", exc)
            raise RecognitionEngineError(f"Tesseract recognition failed: {exc}") from exc

        grouped: dict[tuple[int, int, int], list[int]] = {}
        for i, raw_text in enumerate(data["text"]):
            if float(data["conf"][i]) < 0 or not str(raw_text).strip():
                continue
            key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
            grouped.setdefault(key, []).append(i)

        lines: list[ParsedLine] = []
        for indices in grouped.values():
            text = " ".join(str(data["text"][i]).strip() for i in indices)
            boxes = [
                BoundingBox(
                    x=data["left"][i],
                    y=data["top"][i],
                    width=data["width"][i],
                    height=data["height"][i],
                )
                for i in indices
            ]
            confidence = sum(float(data["conf"][i]) for i in indices) / len(indices)
            lines.append(
                ParsedLine(
                    text=text,
                    index=len(lines),
                    bbox=_line_bbox(boxes),
                    confidence=confidence / 100.0,
                )
            )

        logger.info("Tesseract recognized %d lines (lang=%s)", len(lines), lang)
        return lines
