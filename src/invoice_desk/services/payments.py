"""Payment recording and the automatic move to ``paid``."""
from __future__ import annotations

import logging
from typing import Iterable

from sqlmodel import col, select

from ..db import get_session
from ..exceptions import ConflictError
from ..models import Invoice, InvoiceStatus, Payment
from ..schemas import PaymentCreate
from .invoices import require_invoice
from .status import apply_payments, today

logger = logging.getLogger(__name__)


def total_paid(payments: Iterable[Payment]) -> float:
    return sum(payment.amount for payment in payments)


def balance_due(invoice: Invoice) -> float:
    return invoice.total - total_paid(invoice.payments)


def register_payment(invoice_id: int, payload: PaymentCreate) -> Payment:
    with get_session() as session:
        invoice = require_invoice(session, invoice_id)
        if invoice.status == InvoiceStatus.CANCELLED:
            raise ConflictError(
                "Cannot record a payment against a cancelled invoice",
                {"invoice_number": invoice.invoice_number},
            )
        payment = Payment(
            invoice_id=invoice.id,
            amount=payload.amount,
            payment_date=payload.payment_date or today(),
            payment_method=payload.payment_method,
            reference=payload.reference,
            notes=payload.notes,
        )
        session.add(payment)
        session.flush()
        paid = total_paid(invoice.payments) + payload.amount
        if apply_payments(invoice, paid):
            logger.info("Invoice %s fully paid", invoice.invoice_number)
        session.add(invoice)
        session.flush()
        session.refresh(payment)
        return payment


def list_payments(invoice_id: int) -> list[Payment]:
    with get_session() as session:
        require_invoice(session, invoice_id)
        statement = (
            select(Payment)
            .where(Payment.invoice_id == invoice_id)
            .order_by(col(Payment.payment_date).desc(), col(Payment.id).desc())
        )
        return list(session.exec(statement).all())
