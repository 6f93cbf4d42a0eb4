from typing import Any, Optional
from pydantic import BaseModel, Field


class OCRResult(BaseModel):
    """
    Standard OCR output used across the system.
    """
    text: str = Field(..., description="Raw OCR text, one recognized line per row")
    raw_data: Optional[Any] = Field(None, description="Backend-specific raw OCR output")
    success: bool
    error: Optional[str] = None
    backend: str = Field(..., description="The OCR engine used (e.g., tesseract, rapidocr)")
    language: str = Field("eng", description="Language hint passed to the engine")


class RecognitionProgress(BaseModel):
    """Progress/diagnostic event emitted while an image is being recognized."""
    status: str
    progress: float = Field(0.0, ge=0.0, le=1.0)
    backend: str
