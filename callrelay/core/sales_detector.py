"""Sales signal detection over transcript text."""

import re

# Whole words only, so "border", "recorder" and "repay" do not count
SALES_KEYWORD_PATTERN = re.compile(r"\b(buy|purchase|order|pay)\b", re.IGNORECASE)
CURRENCY_SYMBOLS = ("$", "€", "£")


def is_sales_flagged(text: str | None) -> bool:
    """Check whether a transcript looks like it involved a sale.

    Args:
        text: Accumulated transcript text

    Returns:
        True if a sales keyword or currency symbol appears
    """
    if not text:
        return False
    if any(symbol in text for symbol in CURRENCY_SYMBOLS):
        return True
    return SALES_KEYWORD_PATTERN.search(text) is not None
