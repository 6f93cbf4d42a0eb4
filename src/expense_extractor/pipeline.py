"""
pipeline.py

Receipt image -> ExpenseRecord.

    image --normalize--> JPEG bytes --OCR--> raw text --extractors--> record

Normalization and recognition share one timeout budget. Any failure in those
two stages yields ExpenseRecord.empty(); the extractors themselves never raise.
"""

import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from expense_extractor.logger import get_logger
from expense_extractor.models import ExpenseRecord, NormalizedImage, OCRResult, PipelineSettings
from expense_extractor.components.image_normalizer import ImageSource, normalize_image
from expense_extractor.components.ocr_handler import OCRHandler, ProgressObserver
from expense_extractor.extractors import (
    CATEGORY_KEYWORDS,
    PAYMENT_KEYWORDS,
    extract_amount,
    extract_category,
    extract_date,
    extract_payment_method,
)

logger = get_logger(__name__)

SUCCESS_CONFIDENCE = 100


class ReceiptPipeline:
    """
    Runs one receipt image through normalization, OCR and field extraction.

    Usage:
        pipeline = ReceiptPipeline(PipelineSettings.from_config())
        record = await pipeline.analyze("receipt.jpg")
    """

    def __init__(
        self,
        settings: Optional[PipelineSettings] = None,
        observer: Optional[ProgressObserver] = None,
        ocr_handler: Optional[OCRHandler] = None,
    ):
        self.settings = settings or PipelineSettings()
        self.ocr = ocr_handler or OCRHandler(
            backend=self.settings.backend,
            language=self.settings.language,
            observer=observer,
            timeout=self.settings.timeout_seconds,
            tesseract_cmd=self.settings.tesseract_cmd,
        )

        if self.settings.category_keywords:
            self.category_keywords = tuple(self.settings.category_keywords.items())
        else:
            self.category_keywords = CATEGORY_KEYWORDS

        if self.settings.payment_keywords:
            self.payment_keywords = tuple(self.settings.payment_keywords.items())
        else:
            self.payment_keywords = PAYMENT_KEYWORDS

    def extract_fields(self, text: str) -> ExpenseRecord:
        """Build a record from already-recognized text."""
        return ExpenseRecord(
            text=text,
            amount=extract_amount(text),
            date=extract_date(text),
            category=extract_category(text, self.category_keywords),
            payment_method=extract_payment_method(text, self.payment_keywords),
            confidence_score=SUCCESS_CONFIDENCE,
        )

    def _recognize_blocking(self, source: ImageSource) -> OCRResult:
        normalized: NormalizedImage = normalize_image(
            source,
            threshold=self.settings.threshold,
            quality=self.settings.jpeg_quality,
        )
        return self.ocr.recognize(normalized.encoded)

    async def analyze(self, source: ImageSource) -> ExpenseRecord:
        """
        Never raises: failures and timeouts come back as ExpenseRecord.empty().

        The blocking stages run on an executor owned by this call. It is shut
        down without waiting, so a stalled decode or OCR call cannot hold the
        caller (or asyncio.run) past the timeout.
        """
        loop = asyncio.get_running_loop()
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="receipt-ocr")
        try:
            result = await asyncio.wait_for(
                loop.run_in_executor(executor, self._recognize_blocking, source),
                timeout=self.settings.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error("OCR pipeline timed out after %ss", self.settings.timeout_seconds)
            return ExpenseRecord.empty()
        except Exception as e:
            logger.error("OCR pipeline failed: %s", e)
            return ExpenseRecord.empty()
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        logger.debug("OCR raw text:\n%s", result.text)
        record = self.extract_fields(result.text)
        logger.info(
            "Extracted amount=%r date=%r category=%s payment=%s",
            record.amount, record.date, record.category.value, record.payment_method.value,
        )
        return record

    def analyze_sync(self, source: ImageSource) -> ExpenseRecord:
        return asyncio.run(self.analyze(source))


async def analyze_image(
    source: ImageSource,
    settings: Optional[PipelineSettings] = None,
    observer: Optional[ProgressObserver] = None,
) -> ExpenseRecord:
    try:
        pipeline = ReceiptPipeline(settings=settings, observer=observer)
    except Exception as e:
        logger.error("Could not build OCR pipeline: %s", e)
        return ExpenseRecord.empty()
    return await pipeline.analyze(source)


def analyze_image_sync(
    source: ImageSource,
    settings: Optional[PipelineSettings] = None,
    observer: Optional[ProgressObserver] = None,
) -> ExpenseRecord:
    return asyncio.run(analyze_image(source, settings=settings, observer=observer))
