from __future__ import annotations

import pytest

from invoice_desk.services.phone import is_valid_whatsapp_number, normalize_phone


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("+94 77 123 4567", "94771234567"),
        ("077 123 4567", "94771234567"),
        ("0771234567", "94771234567"),
        ("+1 555 123 4567", "15551234567"),
        ("94771234567", "94771234567"),
        ("071-12", "07112"),
    ],
)
def test_normalize_phone(raw: str, expected: str) -> None:
    assert normalize_phone(raw) == expected


def test_country_code_can_be_overridden() -> None:
    assert normalize_phone("0771234567", country_code="44") == "44771234567"


@pytest.mark.parametrize(
    ("phone", "valid"),
    [
        ("94771234567", True),
        ("1234567890", True),
        ("123456789012345", True),
        ("123456789", False),
        ("1234567890123456", False),
        ("", False),
    ],
)
def test_is_valid_whatsapp_number(phone: str, valid: bool) -> None:
    assert is_valid_whatsapp_number(phone) is valid
