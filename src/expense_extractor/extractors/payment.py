from typing import Iterable, Sequence, Tuple

from expense_extractor.models import PaymentMethodTag

# "imbps" is kept as found; it most likely stands for IMPS.
# TODO: confirm with real NetBanking receipts whether "imps" should replace "imbps".
PAYMENT_KEYWORDS: Tuple[Tuple[PaymentMethodTag, Tuple[str, ...]], ...] = (
    (PaymentMethodTag.UPI, ("upi", "scan", "phonepe", "paytm", "gpay")),
    (PaymentMethodTag.CARD, ("card", "visa", "mastercard", "credit", "debit")),
    (PaymentMethodTag.NET_BANKING, ("netbanking", "neft", "imbps")),
)


def extract_payment_method(
    text: str,
    taxonomy: Iterable[Tuple[PaymentMethodTag, Sequence[str]]] = PAYMENT_KEYWORDS,
) -> PaymentMethodTag:
    """UPI beats Card beats NetBanking; anything else is Cash."""
    if not isinstance(text, str):
        return PaymentMethodTag.CASH

    lowered = text.lower()
    for tag, keywords in taxonomy:
        if any(keyword.lower() in lowered for keyword in keywords):
            return PaymentMethodTag(tag)
    return PaymentMethodTag.CASH
