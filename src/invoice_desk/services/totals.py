"""Invoice arithmetic and currency display."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol

TOLERANCE = 0.01

CURRENCY_SYMBOLS = {
    "LKR": "LKR",
    "USD": "$",
    "AED": "AED",
    "QAR": "QAR",
    "SAR": "SAR",
    "GBP": "£",
    "EUR": "€",
    "AUD": "A$",
    "INR": "₹",
    "SGD": "S$",
}

_PREFIX_SYMBOLS = {"$", "£", "€", "₹"}


class LineLike(Protocol):
    quantity: float
    unit_price: float


@dataclass
class Totals:
    subtotal: float
    tax_amount: float
    discount_amount: float
    total: float


def line_amount(quantity: float, unit_price: float) -> float:
    return quantity * unit_price


def compute_totals(
    lines: Iterable[LineLike],
    tax_percentage: float = 0.0,
    discount_percentage: float = 0.0,
) -> Totals:
    """Return subtotal, tax, discount and grand total for a set of lines.

    Tax and discount are both taken on the subtotal, so
    ``total == subtotal + tax_amount - discount_amount`` by construction.
    """

    subtotal = 0.0
    for line in lines:
        subtotal += line_amount(line.quantity, line.unit_price)
    tax_amount = subtotal * (tax_percentage / 100)
    discount_amount = subtotal * (discount_percentage / 100)
    return Totals(
        subtotal=subtotal,
        tax_amount=tax_amount,
        discount_amount=discount_amount,
        total=subtotal + tax_amount - discount_amount,
    )


def is_fully_paid(total: float, total_paid: float) -> bool:
    return total_paid >= total - TOLERANCE


def format_currency(amount: float, currency: str) -> str:
    formatted = f"{amount:,.2f}"
    symbol = CURRENCY_SYMBOLS.get(currency)
    if symbol is None:
        return f"{currency} {formatted}"
    if symbol in _PREFIX_SYMBOLS or symbol.endswith("$"):
        return f"{symbol}{formatted}"
    return f"{symbol} {formatted}"
