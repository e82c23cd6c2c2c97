"""Configuration management for the dispatch tag scanner.

Loads and validates YAML configuration with defaults tuned for
printed dispatch tags under shop-floor lighting.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_NOISE_WORDS: list[str] = [
    "ACCEPTED",
    "RADIANCE",
    "POLYMERS",
    "SIGN",
    "DATE",
    "DATE:",
    "QA",
]


class PreprocessingConfig(BaseModel):
    """Configuration for ROI cropping and image enhancement."""

    min_width: int = Field(default=1200, gt=0)
    contrast_gain: float = 1.6
    binarize_cutoff: float = 155.0
    blur_check_enabled: bool = True
    blur_noise_floor: int = 15
    blur_threshold: float = 10.0
    blur_sample_stride: int = Field(default=4, gt=0)
    blur_neighbor_offset: int = Field(default=1, gt=0)
    sharpen_enabled: bool = True
    sharpen_clamp: bool = False
    debug_preview_quality: int = Field(default=50, ge=1, le=95)


class OCRConfig(BaseModel):
    """Configuration for the Tesseract line recognizer."""

    tesseract_cmd: str | None = None
    default_lang: str = "eng"
    psm: int = 3
    timeout_s: float = 5.0


class ExtractionConfig(BaseModel):
    """Configuration for tag field parsing and confidence gating."""

    noise_words: list[str] = Field(default_factory=lambda: list(DEFAULT_NOISE_WORDS))
    min_line_length: int = 2
    reliable_confidence: float = 0.95
    low_confidence: float = 0.40
    review_threshold: float = 0.9


class CloudConfig(BaseModel):
    """Configuration for the Gemini cloud extraction path."""

    enabled: bool = False
    model: str = "gemini-2.5-flash"
    api_key_env: str = "GEMINI_API_KEY"
    confidence: float = 0.99


class AppConfig(BaseModel):
    """Top-level application configuration."""

    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    cloud: CloudConfig = Field(default_factory=CloudConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
