from typing import Iterable, Sequence, Tuple

from expense_extractor.models import CategoryTag

# Checked in order; the first category with any keyword hit wins.
CATEGORY_KEYWORDS: Tuple[Tuple[CategoryTag, Tuple[str, ...]], ...] = (
    (CategoryTag.FOOD, ("zomato", "swiggy", "restaurant", "food", "cafe", "dining", "bake", "lunch", "dinner")),
    (CategoryTag.TRAVEL, ("uber", "ola", "fuel", "petrol", "diesel", "transport", "taxi", "metro")),
    (CategoryTag.SHOPPING, ("amazon", "flipkart", "mart", "store", "retail", "fashions", "mall")),
    (CategoryTag.HEALTH, ("pharmacy", "hospital", "doctor", "clinic", "medical", "medicine")),
    (CategoryTag.BILLS, ("electricity", "water", "recharge", "mobile", "internet", "subscription")),
)


def extract_category(
    text: str,
    taxonomy: Iterable[Tuple[CategoryTag, Sequence[str]]] = CATEGORY_KEYWORDS,
) -> CategoryTag:
    """Classify receipt text by substring keywords. Defaults to Other."""
    if not isinstance(text, str):
        return CategoryTag.OTHER

    lowered = text.lower()
    for tag, keywords in taxonomy:
        if any(keyword.lower() in lowered for keyword in keywords):
            return CategoryTag(tag)
    return CategoryTag.OTHER
