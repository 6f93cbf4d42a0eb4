import asyncio
import sys
import threading
from io import BytesIO
from typing import Callable, Optional

from PIL import Image
import pytesseract

from expense_extractor.logger import get_logger
from expense_extractor.exception import CustomException
from expense_extractor.models import OCRResult, RecognitionProgress

logger = get_logger(__name__)

ProgressObserver = Callable[[RecognitionProgress], None]

# ---------------------------------------------------------------------
# RapidOCR backend
# ---------------------------------------------------------------------

_RAPIDOCR_ENGINE = None
_RAPIDOCR_LOCK = threading.Lock()

def _load_rapidocr_engine():
    try:
        from rapidocr_onnxruntime import RapidOCR
        return RapidOCR()
    except Exception as e:
        logger.error("Failed to load RapidOCR engine: %s", e)
        raise CustomException(e, sys)

def rapidocr_backend(image_bytes: bytes, language: str = "eng", timeout: Optional[float] = None):
    """
    Run RapidOCR on encoded image bytes.
    Output format: [ [bbox, text, confidence], ... ]
    RapidOCR ships its own models, so the language hint is not used.
    """
    global _RAPIDOCR_ENGINE
    try:
        if _RAPIDOCR_ENGINE is None:
            with _RAPIDOCR_LOCK:
                if _RAPIDOCR_ENGINE is None:
                    _RAPIDOCR_ENGINE = _load_rapidocr_engine()

        # RapidOCR returns (result, elapsed_time)
        result, _ = _RAPIDOCR_ENGINE(image_bytes)
        return result or []
    except Exception as e:
        raise CustomException(e, sys)

# ---------------------------------------------------------------------
# Tesseract backend
# ---------------------------------------------------------------------

def tesseract_backend(image_bytes: bytes, language: str = "eng", timeout: Optional[float] = None):
    """Run Tesseract on encoded image bytes. A timeout kills the tesseract process."""
    try:
        with Image.open(BytesIO(image_bytes)) as img:
            image = img.convert("RGB")
            return pytesseract.image_to_string(image, lang=language, timeout=timeout or 0)
    except Exception as e:
        raise CustomException(e, sys)

# ---------------------------------------------------------------------
# Progress observer
# ---------------------------------------------------------------------

def log_progress(event: RecognitionProgress) -> None:
    logger.debug("[%s] %s (%.0f%%)", event.backend, event.status, event.progress * 100)

# ---------------------------------------------------------------------
# OCR Handler
# ---------------------------------------------------------------------

class OCRHandler:
    """
    OCRHandler turns an encoded (normalized) receipt image into raw text.

    Usage:
        ocr = OCRHandler(backend="tesseract", language="eng")
        result = ocr.run(normalized.encoded)

    Progress events go to `observer`; by default they are logged at DEBUG.
    """

    def __init__(
        self,
        backend: str = "tesseract",
        language: str = "eng",
        observer: Optional[ProgressObserver] = None,
        timeout: Optional[float] = None,
        tesseract_cmd: Optional[str] = None,
    ):
        self.backends = {
            "tesseract": tesseract_backend,
            "rapidocr": rapidocr_backend,
        }

        if backend not in self.backends:
            raise CustomException(
                f"Unsupported OCR backend '{backend}'. Available: {list(self.backends.keys())}",
                sys
            )

        # pytesseract reads the binary path from a module global, so this is process-wide
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

        self.backend_name = backend
        self.language = language
        self.timeout = timeout
        self.observer = observer or log_progress
        self.ocr_fn = self.backends[backend]
        logger.info("OCRHandler initialized with backend='%s' language='%s'", backend, language)

    def _emit(self, status: str, progress: float) -> None:
        try:
            self.observer(RecognitionProgress(status=status, progress=progress, backend=self.backend_name))
        except Exception as e:
            logger.warning("Progress observer failed on '%s': %s", status, e)

    def recognize(self, image_bytes: bytes) -> OCRResult:
        """
        Raising boundary: backend failures surface as CustomException.
        """
        try:
            if not image_bytes:
                raise ValueError("Image bytes are empty")

            self._emit("loading image", 0.0)
            self._emit("recognizing text", 0.5)
            raw_output = self.ocr_fn(image_bytes, self.language, self.timeout)

            if raw_output is None:
                raise ValueError("OCR engine returned None")

            text = self._format_output(raw_output)
            self._emit("recognized text", 1.0)

            if not text.strip():
                logger.warning("OCR successful but no text was detected (%d bytes).", len(image_bytes))

            return OCRResult(
                text=text,
                raw_data=raw_output,
                success=True,
                backend=self.backend_name,
                language=self.language,
            )
        except CustomException:
            raise
        except Exception as e:
            raise CustomException(e, sys)

    def run(self, image_bytes: bytes) -> OCRResult:
        """
        Safe execution boundary: catches all errors and returns an OCRResult.
        """
        try:
            return self.recognize(image_bytes)
        except Exception as e:
            err_msg = str(e)
            logger.error("OCR failed: %s", err_msg)
            return OCRResult(
                text="",
                raw_data=None,
                success=False,
                error=err_msg,
                backend=self.backend_name,
                language=self.language,
            )

    async def recognize_async(self, image_bytes: bytes) -> OCRResult:
        return await asyncio.to_thread(self.recognize, image_bytes)

    def _format_output(self, raw) -> str:
        """
        Normalize different backend outputs into a single newline-delimited string.
        """
        # RapidOCR list-based output
        if isinstance(raw, list):
            lines = []
            for entry in raw:
                # Structure: [bbox, text, confidence]
                if isinstance(entry, (list, tuple)) and len(entry) >= 2:
                    txt = entry[1]
                    if txt:
                        lines.append(str(txt))
            return "\n".join(lines)

        # Tesseract text is returned as recognized
        return str(raw)
