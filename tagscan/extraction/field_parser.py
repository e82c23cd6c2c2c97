"""Order- and anchor-based field parsing for dispatch tags.

Tags carry three lines of interest: part number, part name, and a
quantity in "NOS". Recognized text is noisy and the labels are often
lost, so anchored patterns are tried first and a positional fallback
fills whatever the anchors missed.
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass, field

from tagscan.ocr.lines import ParsedLine
from tagscan.utils.config import ExtractionConfig
from tagscan.utils.logger import get_logger

logger = get_logger(__name__)

UNKNOWN = "UNKNOWN"

# Tesseract reads the O of "NO" as a zero often enough to allow both.
_PART_NO_ANCHOR = re.compile(r"Part\s*N[O0][:\-]*\s*([A-Z0-9]+)", re.IGNORECASE)
_PART_NAME_ANCHOR = re.compile(r"Part\s*Name[:\-]*\s*(.+)", re.IGNORECASE)
_QTY_ANCHOR = re.compile(r"(\d{1,7})\s*NOS", re.IGNORECASE)

_MIXED_ALNUM = re.compile(r"[A-Z].*\d|\d.*[A-Z]", re.IGNORECASE)
_SEPARATOR = re.compile(r"[:\-]")
_WHOLE_NUMBER = re.compile(r"\b(\d{1,7})\b")
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class OCRResult:
    """Structured fields extracted from one tag capture."""

    part_no: str
    part_name: str
    qty: int
    confidence: float
    raw_text: str


@dataclass
class TagFields:
    """Fields resolved so far; ``None`` means still unresolved."""

    part_no: str | None = None
    part_name: str | None = None
    qty: int | None = None
    sources: dict[str, str] = field(default_factory=dict)

    def resolve(self, name: str, value: str | int, source: str) -> None:
        setattr(self, name, value)
        self.sources[name] = source


def _after_last_separator(line: str) -> str:
    return _SEPARATOR.split(line)[-1].strip() or line


class AnchoredStrategy:
    """Find each field by its printed label, first matching line wins."""

    name = "anchor"

    def apply(self, lines: Sequence[str], fields: TagFields) -> None:
        if fields.part_no is None:
            match = _first_match(_PART_NO_ANCHOR, lines)
            if match:
                fields.resolve("part_no", match.group(1), self.name)

        if fields.part_name is None:
            match = _first_match(_PART_NAME_ANCHOR, lines)
            if match:
                fields.resolve("part_name", match.group(1).strip(), self.name)

        if fields.qty is None:
            match = _first_match(_QTY_ANCHOR, lines)
            if match:
                fields.resolve("qty", int(match.group(1)), self.name)


class PositionalStrategy:
    """Infer unlabeled fields from the fixed part-no/name/qty line order."""

    name = "position"

    def apply(self, lines: Sequence[str], fields: TagFields) -> None:
        if fields.part_no is None:
            candidate = next(
                (
                    line
                    for line in lines
                    if _MIXED_ALNUM.search(line) and len(line.strip()) >= 4
                ),
                None,
            )
            if candidate:
                fields.resolve("part_no", _after_last_separator(candidate), self.name)

        if fields.part_name is None and fields.part_no is not None:
            index = next(
                (i for i, line in enumerate(lines) if fields.part_no in line), None
            )
            if index is not None and index + 1 < len(lines):
                next_line = lines[index + 1]
                if "nos" not in next_line.lower():
                    fields.resolve(
                        "part_name", _after_last_separator(next_line), self.name
                    )

        if not fields.qty:
            match = _first_match(_WHOLE_NUMBER, lines)
            if match:
                fields.resolve("qty", int(match.group(1)), self.name)


def _first_match(pattern: re.Pattern[str], lines: Sequence[str]) -> re.Match[str] | None:
    for line in lines:
        match = pattern.search(line)
        if match:
            return match
    return None


class FieldParser:
    """Turn recognized tag lines into a confidence-scored result.

    Args:
        config: Extraction configuration with noise words and
            confidence levels. Defaults are used if ``None``.
    """

    def __init__(self, config: ExtractionConfig | None = None) -> None:
        self.config = config or ExtractionConfig()
        self.noise_words = [w.upper() for w in self.config.noise_words]
        self.strategies = [AnchoredStrategy(), PositionalStrategy()]

    def normalize(self, lines: Sequence[ParsedLine | str]) -> list[str]:
        """Trim lines, drop short and noise lines, and collapse spaces.

        Args:
            lines: Recognized lines or plain strings in reading order.

        Returns:
            The filtered lines in their original order.
        """
        kept: list[str] = []
        for line in lines:
            text = (line.text if isinstance(line, ParsedLine) else line).strip()
            if len(text) < self.config.min_line_length:
                continue
            upper = text.upper()
            if any(word in upper for word in self.noise_words):
                continue
            kept.append(_WHITESPACE.sub(" ", text))
        return kept

    def parse(self, lines: Sequence[ParsedLine | str]) -> OCRResult:
        """Extract part number, part name, and quantity from tag lines.

        Args:
            lines: Recognized lines or plain strings in reading order.

        Returns:
            Extraction result. Unresolved text fields are ``"UNKNOWN"``
            and an unresolved quantity is ``0``.
        """
        filtered = self.normalize(lines)
        fields = TagFields()
        for strategy in self.strategies:
            strategy.apply(filtered, fields)

        part_no = fields.part_no or UNKNOWN
        part_name = fields.part_name or UNKNOWN
        qty = fields.qty or 0

        reliable = part_no != UNKNOWN and qty > 0
        confidence = (
            self.config.reliable_confidence if reliable else self.config.low_confidence
        )

        logger.info(
            "Parsed tag from %d/%d lines: part_no=%s qty=%d confidence=%.2f",
            len(filtered),
            len(lines),
            part_no,
            qty,
            confidence,
        )
        logger.debug("Field sources: %s", fields.sources)
        return OCRResult(
            part_no=part_no,
            part_name=part_name,
            qty=qty,
            confidence=confidence,
            raw_text="\n".join(filtered),
        )
