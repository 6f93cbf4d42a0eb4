import os
import sys
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from expense_extractor.exception import CustomException
from expense_extractor.logger import get_logger
from expense_extractor.models.expense_record import CategoryTag, PaymentMethodTag
from expense_extractor.utils.load_config import load_config_file

logger = get_logger(__name__)

SUPPORTED_BACKENDS = ("tesseract", "rapidocr")


class PipelineSettings(BaseModel):
    """
    Runtime knobs for one ReceiptPipeline.
    Values come from config.yaml, overridden by environment variables.
    """
    backend: str = Field("tesseract", description="OCR backend name")
    language: str = Field("eng", description="Language hint for the OCR engine")
    timeout_seconds: float = Field(60.0, gt=0, description="Budget for normalization + recognition")
    tesseract_cmd: Optional[str] = None

    threshold: int = Field(128, ge=0, le=255, description="Mean RGB above this becomes white")
    jpeg_quality: int = Field(92, ge=1, le=95)

    # None means the built-in keyword tables
    category_keywords: Optional[Dict[CategoryTag, List[str]]] = None
    payment_keywords: Optional[Dict[PaymentMethodTag, List[str]]] = None

    @field_validator("backend")
    @classmethod
    def _check_backend(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in SUPPORTED_BACKENDS:
            raise ValueError(f"Unsupported OCR backend '{value}'. Available: {list(SUPPORTED_BACKENDS)}")
        return value

    @classmethod
    def from_config(cls, file_path: str = "config.yaml") -> "PipelineSettings":
        try:
            config = load_config_file(file_path) or {}
        except FileNotFoundError:
            logger.info("No config file at %s, using defaults and environment.", file_path)
            config = {}

        try:
            ocr_cfg = config.get("ocr", {}) or {}
            prep_cfg = config.get("preprocessing", {}) or {}
            extraction_cfg = config.get("extraction", {}) or {}

            values = {
                "backend": os.getenv("OCR_BACKEND") or ocr_cfg.get("backend"),
                "language": os.getenv("OCR_LANGUAGE") or ocr_cfg.get("language"),
                "timeout_seconds": os.getenv("OCR_TIMEOUT_SECONDS") or ocr_cfg.get("timeout_seconds"),
                "tesseract_cmd": os.getenv("TESSERACT_CMD") or ocr_cfg.get("tesseract_cmd"),
                "threshold": prep_cfg.get("threshold"),
                "jpeg_quality": prep_cfg.get("jpeg_quality"),
                "category_keywords": extraction_cfg.get("category_keywords"),
                "payment_keywords": extraction_cfg.get("payment_keywords"),
            }
            settings = cls(**{k: v for k, v in values.items() if v is not None})
            logger.info(
                "Loaded pipeline settings: backend=%s language=%s timeout=%ss",
                settings.backend, settings.language, settings.timeout_seconds,
            )
            return settings
        except Exception as e:
            raise CustomException(e, sys)
