"""Shared test fixtures for the tag scanner test suite."""

from pathlib import Path

import numpy as np
import pytest

from tagscan.ocr.lines import ParsedLine
from tagscan.utils.config import AppConfig, CloudConfig


def _make_striped_frame(height: int = 1000, width: int = 2000) -> np.ndarray:
    """Create an RGB frame of one-pixel black/white vertical stripes.

    With the default ROI the crop is exactly 1200 pixels wide, so no
    upscaling smears the stripes.
    """
    frame = np.full((height, width, 3), 255, dtype=np.uint8)
    frame[:, ::2] = 0
    return frame


@pytest.fixture
def sharp_frame() -> np.ndarray:
    """Frame with strong horizontal edges everywhere."""
    return _make_striped_frame()


@pytest.fixture
def flat_frame() -> np.ndarray:
    """Uniform gray frame with no edges at all."""
    return np.full((1000, 2000, 3), 128, dtype=np.uint8)


@pytest.fixture
def tag_lines() -> list[ParsedLine]:
    """Recognized lines of a typical labeled dispatch tag."""
    texts = [
        "RADIANCE POLYMERS",
        "PART NO: 3B0005299",
        "PART NAME: BRACKET ASSY",
        "25 NOS",
        "QA SIGN",
    ]
    return [ParsedLine(text=t, index=i) for i, t in enumerate(texts)]


@pytest.fixture
def app_config() -> AppConfig:
    """Default application configuration."""
    return AppConfig()


@pytest.fixture
def cloud_config() -> AppConfig:
    """Configuration with the cloud engine turned on."""
    return AppConfig(cloud=CloudConfig(enabled=True))


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent
