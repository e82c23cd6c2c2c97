"""Pydantic request/response schemas for the FastAPI endpoints."""

from enum import StrEnum

from pydantic import BaseModel


class EngineType(StrEnum):
    """Extraction engines selectable per request."""

    LOCAL = "local"
    CLOUD = "cloud"


class ROIResponse(BaseModel):
    """Fractional region of interest that was processed."""

    x: float
    y: float
    w: float
    h: float


class ExtractionResponse(BaseModel):
    """Response schema for a tag extraction request."""

    success: bool
    scan_id: str
    engine: str
    part_no: str
    part_name: str
    qty: int
    confidence: float
    needs_review: bool
    raw_text: str
    blur_score: float
    roi: ROIResponse
    processing_time_ms: float
    debug_preview: str | None = None


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
    cloud_configured: bool
