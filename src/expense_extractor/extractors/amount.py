"""
amount.py

Picks the grand total out of noisy receipt text.
Keyword-anchored amounts win; the largest of them is taken because subtotals
usually precede the total. Without any anchor, the last bare two-decimal
number in the text is used.
"""

import re
from typing import List

from expense_extractor.logger import get_logger

logger = get_logger(__name__)

AMOUNT_PATTERN = re.compile(r"(?:₹|rs\.?|total|amt|paid|amount)[:\s]*([0-9]+\.?[0-9]*)", re.IGNORECASE)
FALLBACK_PATTERN = re.compile(r"[0-9]+\.[0-9]{2}")


def find_amount_candidates(text: str) -> List[str]:
    """Return the first keyword-anchored amount of every line, in document order."""
    candidates = []
    for line in text.split("\n"):
        match = AMOUNT_PATTERN.search(line.replace(",", ""))
        if match:
            candidates.append(match.group(1))
    return candidates


def extract_amount(text: str) -> str:
    if not isinstance(text, str) or not text:
        return ""

    candidates = find_amount_candidates(text)
    if candidates:
        # max() keeps the earliest of equal values
        best = max(candidates, key=float)
        logger.debug("Amount candidates %s -> %s", candidates, best)
        return best

    fallback = FALLBACK_PATTERN.findall(text)
    if fallback:
        logger.debug("No anchored amount, using last decimal of %d", len(fallback))
        return fallback[-1]

    return ""
