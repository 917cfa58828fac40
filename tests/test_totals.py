from __future__ import annotations

from dataclasses import dataclass

import pytest

from invoice_desk.services.totals import compute_totals, format_currency, line_amount


@dataclass
class Line:
    quantity: float
    unit_price: float


def test_line_amount_is_exact_product() -> None:
    assert line_amount(3, 0.1) == 3 * 0.1
    assert line_amount(2.5, 40) == 100.0


def test_totals_with_tax_and_discount() -> None:
    totals = compute_totals([Line(2, 50), Line(1, 100)], tax_percentage=10, discount_percentage=5)
    assert totals.subtotal == 200
    assert totals.tax_amount == pytest.approx(20)
    assert totals.discount_amount == pytest.approx(10)
    assert totals.total == pytest.approx(210)


@pytest.mark.parametrize(
    ("lines", "tax", "discount"),
    [
        ([Line(1, 19.99), Line(3, 0.33)], 18, 0),
        ([Line(7, 1234.56)], 0, 12.5),
        ([Line(0.5, 99.99), Line(13, 7.77)], 8.25, 3),
    ],
)
def test_total_invariant(lines, tax, discount) -> None:
    totals = compute_totals(lines, tax, discount)
    assert abs(totals.total - (totals.subtotal + totals.tax_amount - totals.discount_amount)) < 0.01


def test_no_lines() -> None:
    totals = compute_totals([])
    assert (totals.subtotal, totals.tax_amount, totals.discount_amount, totals.total) == (0, 0, 0, 0)


@pytest.mark.parametrize(
    ("amount", "currency", "expected"),
    [
        (1234.5, "USD", "$1,234.50"),
        (1234.5, "LKR", "LKR 1,234.50"),
        (10, "GBP", "£10.00"),
        (10, "AUD", "A$10.00"),
        (10, "XYZ", "XYZ 10.00"),
    ],
)
def test_format_currency(amount: float, currency: str, expected: str) -> None:
    assert format_currency(amount, currency) == expected
