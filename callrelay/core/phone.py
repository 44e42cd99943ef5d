"""Phone number utilities for consistent handling across providers."""

import logging
import re

logger = logging.getLogger(__name__)


def normalize_phone_e164(phone: str | None) -> str | None:
    """Normalize phone number to E.164 format (+1XXXXXXXXXX for US numbers).

    Handles various input formats:
        (281)788-2316 → +12817882316
        281-788-2316  → +12817882316
        +1 281 788 2316 → +12817882316
        +44 20 7946 0958 → +442079460958

    Returns:
        Phone in E.164 format, the input unchanged if it could not be
        normalized, or None for empty input
    """
    if not phone or not phone.strip():
        return None

    digits = re.sub(r'\D', '', phone)

    if len(digits) == 10:
        return f"+1{digits}"
    if len(digits) == 11 and digits.startswith('1'):
        return f"+{digits}"
    if phone.strip().startswith('+') and len(digits) >= 10:
        return f"+{digits}"

    logger.warning(f"Could not normalize phone number: {phone}")
    return phone.strip()
