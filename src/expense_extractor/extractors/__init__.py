from .amount import extract_amount
from .date import extract_date
from .category import extract_category, CATEGORY_KEYWORDS
from .payment import extract_payment_method, PAYMENT_KEYWORDS
