"""Phone number helpers for the WhatsApp gateway."""
from __future__ import annotations

import re
from typing import Optional

from ..config import get_settings

_NON_DIGIT = re.compile(r"\D")

MIN_DIGITS = 10
MAX_DIGITS = 15


def normalize_phone(phone: str, country_code: Optional[str] = None) -> str:
    """Return digits only, replacing a local leading zero with the country code.

    ``"077 123 4567"`` becomes ``"94771234567"``; ``"+1 555 123 4567"`` becomes
    ``"15551234567"``.
    """

    digits = _NON_DIGIT.sub("", phone)
    if digits.startswith("0") and len(digits) == 10:
        code = country_code if country_code is not None else get_settings().default_country_code
        digits = code + digits[1:]
    return digits


def is_valid_whatsapp_number(phone: str) -> bool:
    digits = _NON_DIGIT.sub("", phone)
    return MIN_DIGITS <= len(digits) <= MAX_DIGITS
