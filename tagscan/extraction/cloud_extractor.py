"""Cloud extraction of tag fields through the Gemini API.

An alternative to the local Tesseract path: the cropped ROI is sent as
an image and the model returns the three fields as JSON. The result has
the same shape as the local parser's, with a fixed high confidence.
"""

import os

import numpy as np
from google import genai
from google.genai import types
from PIL import Image
from pydantic import BaseModel, ValidationError

from tagscan.errors import RecognitionEngineError
from tagscan.utils.config import CloudConfig
from tagscan.utils.logger import get_logger

from .field_parser import UNKNOWN, OCRResult

logger = get_logger(__name__)

EXTRACTION_PROMPT = (
    "Extract the Part Number, Part Name, and Quantity from this industrial "
    'dispatch tag. Look for anchors like "PART NO", "PART NAME", and "QTY" '
    'or "NOS". Return JSON.'
)


class CloudTagFields(BaseModel):
    """JSON schema the model is asked to fill."""

    partNo: str | None = None
    partName: str | None = None
    qty: int | None = None


class GeminiTagExtractor:
    """Extract tag fields with a Gemini vision model.

    Args:
        config: Cloud configuration with model name and API key variable.
        client: Pre-built ``genai.Client``. Created lazily from the API
            key in the environment if ``None``.
    """

    def __init__(self, config: CloudConfig, client: genai.Client | None = None) -> None:
        self.config = config
        self._client = client

    def _get_client(self) -> genai.Client:
        """Lazily create the Gemini client on first use.

        Raises:
            RecognitionEngineError: If no API key is configured.
        """
        if self._client is None:
            api_key = os.environ.get(self.config.api_key_env, "").strip()
            if not api_key:
                raise RecognitionEngineError(
                    f"Cloud OCR not configured: {self.config.api_key_env} is empty"
                )
            self._client = genai.Client(api_key=api_key)
            logger.info("Gemini client initialized with model: %s", self.config.model)
        return self._client

    def extract(self, image: np.ndarray) -> OCRResult:
        """Extract part number, part name, and quantity from a tag image.

        Args:
            image: Cropped RGB tag image.

        Returns:
            Extraction result with the configured cloud confidence.

        Raises:
            RecognitionEngineError: If the request fails or the response
                cannot be parsed.
        """
        client = self._get_client()
        try:
            response = client.models.generate_content(
                model=self.config.model,
                contents=[Image.fromarray(image), EXTRACTION_PROMPT],
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=CloudTagFields,
                ),
            )
        except Exception as exc:
            logger.error("Gemini request failed: %s", exc)
            raise RecognitionEngineError(
                "Cloud OCR request failed. Use Manual Entry."
            ) from exc

        text = response.text or ""
        try:
            fields = CloudTagFields.model_validate_json(text or "{}")
        except ValidationError as exc:
            logger.error("Unparseable Gemini response: %r", text)
            raise RecognitionEngineError(
                "Cloud OCR failed to parse result. Use Manual Entry."
            ) from exc

        result = OCRResult(
            part_no=fields.partNo or UNKNOWN,
            part_name=fields.partName or UNKNOWN,
            qty=fields.qty or 0,
            confidence=self.config.confidence,
            raw_text=text,
        )
        logger.info("Gemini extracted part_no=%s qty=%d", result.part_no, result.qty)
        return result
