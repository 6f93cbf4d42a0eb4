from .expense_record import ExpenseRecord, CategoryTag, PaymentMethodTag
from .ocr_result import OCRResult, RecognitionProgress
from .normalized_image import NormalizedImage
from .settings import PipelineSettings
