from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class CategoryTag(str, Enum):
    FOOD = "Food"
    TRAVEL = "Travel"
    SHOPPING = "Shopping"
    HEALTH = "Health"
    BILLS = "Bills"
    OTHER = "Other"


class PaymentMethodTag(str, Enum):
    UPI = "UPI"
    CARD = "Card"
    NET_BANKING = "NetBanking"
    CASH = "Cash"


class ExpenseRecord(BaseModel):
    """
    Structured expense produced by one pipeline run.
    Fields are derived independently; no cross-field checks are applied.
    """
    model_config = ConfigDict(frozen=True)

    text: str = Field("", description="Raw text returned by the OCR engine")
    amount: str = Field("", description="Decimal string without currency symbol or separators")
    date: str = Field("", description="Date exactly as found on the receipt, or today as YYYY-MM-DD")
    category: CategoryTag = CategoryTag.OTHER
    payment_method: PaymentMethodTag = PaymentMethodTag.CASH
    confidence_score: int = Field(0, description="100 when OCR succeeded, 0 for the fallback record")

    @classmethod
    def empty(cls) -> "ExpenseRecord":
        """Record returned when normalization or recognition fails."""
        return cls()
