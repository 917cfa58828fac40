"""Invoice status workflow.

``overdue`` is never stored: an invoice is reported overdue when it is
``sent`` and its due date lies before today.
"""
from __future__ import annotations

from datetime import date
from typing import Optional

import pendulum

from ..config import get_settings
from ..exceptions import InvalidTransitionError
from ..models import Invoice, InvoiceStatus
from .totals import is_fully_paid

ALLOWED_TRANSITIONS: dict[InvoiceStatus, frozenset[InvoiceStatus]] = {
    InvoiceStatus.DRAFT: frozenset({InvoiceStatus.SENT, InvoiceStatus.CANCELLED}),
    InvoiceStatus.SENT: frozenset({InvoiceStatus.PAID, InvoiceStatus.CANCELLED}),
    InvoiceStatus.OVERDUE: frozenset({InvoiceStatus.PAID, InvoiceStatus.CANCELLED}),
    InvoiceStatus.PAID: frozenset(),
    InvoiceStatus.CANCELLED: frozenset(),
}


def today() -> date:
    return pendulum.now(get_settings().timezone).date()


def can_transition(current: InvoiceStatus, target: InvoiceStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def transition(invoice: Invoice, target: InvoiceStatus) -> Invoice:
    if target == InvoiceStatus.OVERDUE:
        raise InvalidTransitionError(invoice.status.value, target.value)
    if not can_transition(invoice.status, target):
        raise InvalidTransitionError(invoice.status.value, target.value)
    invoice.status = target
    invoice.touch()
    return invoice


def mark_delivered(invoice: Invoice) -> None:
    """Promote a draft to ``sent`` once a delivery went out; other states are kept."""

    if invoice.status == InvoiceStatus.DRAFT:
        transition(invoice, InvoiceStatus.SENT)
        settle(invoice)
    else:
        invoice.touch()


def apply_payments(invoice: Invoice, total_paid: float) -> bool:
    """Mark a sent invoice paid once payments cover its total. Returns True on change."""

    if invoice.status not in (InvoiceStatus.SENT, InvoiceStatus.OVERDUE):
        return False
    if not is_fully_paid(invoice.total, total_paid):
        return False
    transition(invoice, InvoiceStatus.PAID)
    return True


def settle(invoice: Invoice) -> bool:
    """Re-check the payments already recorded against the current total and status."""

    return apply_payments(invoice, sum(payment.amount for payment in invoice.payments))


def effective_status(invoice: Invoice, on: Optional[date] = None) -> InvoiceStatus:
    on = on or today()
    if invoice.status == InvoiceStatus.SENT and invoice.date_due < on:
        return InvoiceStatus.OVERDUE
    return invoice.status
