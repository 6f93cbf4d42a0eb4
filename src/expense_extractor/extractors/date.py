import re
from datetime import date, datetime, timezone
from typing import Optional

DATE_PATTERN = re.compile(r"[0-9]{2}[-/][0-9]{2}[-/][0-9]{4}|[0-9]{4}[-/][0-9]{2}[-/][0-9]{2}")


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def extract_date(text: str, today: Optional[date] = None) -> str:
    """
    Return the first DD-MM-YYYY or YYYY-MM-DD looking substring ('-' or '/').
    The match is purely syntactic. Falls back to today's date (UTC) as YYYY-MM-DD.
    """
    if isinstance(text, str):
        match = DATE_PATTERN.search(text)
        if match:
            return match.group(0)

    return (today or today_utc()).isoformat()
