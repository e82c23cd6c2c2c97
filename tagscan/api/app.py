"""FastAPI application for the Dispatch Tag Scanner API.

Provides a capture extraction endpoint and a health check.
"""

import base64
import os
import shutil
import time
import uuid
from typing import Annotated

from fastapi import FastAPI, File, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from tagscan import __version__
from tagscan.errors import (
    BlurDetectedError,
    EngineDisabledError,
    InvalidFrameError,
    RecognitionEngineError,
)
from tagscan.ocr.tag_processor import TagProcessor
from tagscan.preprocessing.geometry import DEFAULT_ROI, ROIRect
from tagscan.utils.config import load_config
from tagscan.utils.logger import get_logger

from .schemas import EngineType, ExtractionResponse, HealthResponse, ROIResponse

logger = get_logger(__name__)

app = FastAPI(
    title="Dispatch Tag Scanner API",
    description="Extract part number, part name, and quantity from dispatch tags",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_ALLOWED_CONTENT_TYPES = {
    "image/png",
    "image/jpeg",
    "image/webp",
    "application/octet-stream",
}


def _get_processor() -> TagProcessor:
    """Build a tag processor from the current configuration."""
    return TagProcessor(load_config())


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    config = load_config()
    return HealthResponse(
        status="healthy",
        version=__version__,
        tesseract_available=shutil.which("tesseract") is not None,
        cloud_configured=config.cloud.enabled
        and bool(os.environ.get(config.cloud.api_key_env)),
    )


@app.post("/extract", response_model=ExtractionResponse)
async def extract_tag(
    file: Annotated[UploadFile, File(...)],
    x: Annotated[float, Query(ge=0, le=1)] = DEFAULT_ROI.x,
    y: Annotated[float, Query(ge=0, le=1)] = DEFAULT_ROI.y,
    w: Annotated[float, Query(gt=0, le=1)] = DEFAULT_ROI.w,
    h: Annotated[float, Query(gt=0, le=1)] = DEFAULT_ROI.h,
    engine: Annotated[EngineType, Query()] = EngineType.LOCAL,
    debug: Annotated[bool, Query()] = False,
) -> ExtractionResponse:
    """Extract tag fields from an uploaded capture.

    Args:
        file: Captured frame (PNG, JPEG, or WebP).
        x: ROI left edge as a fraction of the frame width.
        y: ROI top edge as a fraction of the frame height.
        w: ROI width as a fraction of the frame width.
        h: ROI height as a fraction of the frame height.
        engine: Extraction engine to use.
        debug: Include the base64 JPEG preview of the processed ROI.

    Returns:
        Extracted fields with confidence and review flag.
    """
    start_time = time.time()

    if file.content_type and file.content_type not in _ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type: {file.content_type}",
        )

    roi = ROIRect(x=x, y=y, w=w, h=h)

    try:
        processor = _get_processor()
        content = await file.read()
        outcome = processor.process(content, roi=roi, engine=engine.value)
    except (EngineDisabledError, InvalidFrameError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except BlurDetectedError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except RecognitionEngineError as exc:
        logger.error("Extraction failed: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    preview = None
    if debug and outcome.debug_preview:
        preview = base64.b64encode(outcome.debug_preview).decode("ascii")

    result = outcome.result
    return ExtractionResponse(
        success=True,
        scan_id=str(uuid.uuid4()),
        engine=outcome.engine,
        part_no=result.part_no,
        part_name=result.part_name,
        qty=result.qty,
        confidence=result.confidence,
        needs_review=outcome.needs_review,
        raw_text=result.raw_text,
        blur_score=outcome.blur.score,
        roi=ROIResponse(x=roi.x, y=roi.y, w=roi.w, h=roi.h),
        processing_time_ms=(time.time() - start_time) * 1000,
        debug_preview=preview,
    )
