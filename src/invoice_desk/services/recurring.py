"""Recurring invoice templates and the invoices generated from them.

Nothing here runs on a timer: an external job calls :func:`due_templates` and
:func:`generate_from_template` (or ``POST /recurring/run``) once a day.
"""
from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.orm import selectinload
from sqlmodel import Session, col, select

from ..db import get_session
from ..exceptions import ConflictError, InvalidInputError, NotFoundError
from ..models import (
    Client,
    CompanySettings,
    Invoice,
    InvoiceItem,
    RecurringInvoice,
    RecurringInvoiceItem,
)
from ..schemas import RecurringCreate
from .invoices import apply_totals, new_invoice_number, run_with_number_retry
from .schedule import next_generation_date
from .status import today
from .totals import compute_totals, line_amount

logger = logging.getLogger(__name__)


def load_template(session: Session, template_id: int) -> RecurringInvoice | None:
    statement = (
        select(RecurringInvoice)
        .where(RecurringInvoice.id == template_id)
        .options(selectinload(RecurringInvoice.items), selectinload(RecurringInvoice.client))
    )
    return session.exec(statement).one_or_none()


def require_template(session: Session, template_id: int) -> RecurringInvoice:
    template = load_template(session, template_id)
    if template is None:
        raise NotFoundError("Recurring invoice", template_id)
    return template


def create_template(payload: RecurringCreate, company: CompanySettings, on: Optional[date] = None) -> RecurringInvoice:
    with get_session() as session:
        if session.get(Client, payload.client_id) is None:
            raise InvalidInputError("Select an existing client", {"client_id": payload.client_id})
        tax_percentage = (
            payload.tax_percentage if payload.tax_percentage is not None else company.default_tax_percentage
        )
        items = [
            RecurringInvoiceItem(
                description=line.description,
                quantity=line.quantity,
                unit_price=line.unit_price,
                amount=line_amount(line.quantity, line.unit_price),
                sort_order=index,
            )
            for index, line in enumerate(payload.items)
        ]
        totals = compute_totals(items, tax_percentage, payload.discount_percentage)
        template = RecurringInvoice(
            client_id=payload.client_id,
            currency=payload.currency or company.default_currency,
            tax_percentage=tax_percentage,
            discount_percentage=payload.discount_percentage,
            discount_amount=totals.discount_amount,
            notes=payload.notes if payload.notes is not None else company.default_notes,
            category=payload.category,
            day_of_month=payload.day_of_month,
            is_active=payload.is_active,
            auto_send_whatsapp=payload.auto_send_whatsapp,
            generated_count=0,
            next_generation_date=next_generation_date(payload.day_of_month, on),
            items=items,
        )
        session.add(template)
        session.flush()
        return require_template(session, template.id)


def list_templates() -> list[RecurringInvoice]:
    with get_session() as session:
        statement = (
            select(RecurringInvoice)
            .options(selectinload(RecurringInvoice.items), selectinload(RecurringInvoice.client))
            .order_by(col(RecurringInvoice.created_at).desc())
        )
        return list(session.exec(statement).all())


def get_template(template_id: int) -> RecurringInvoice:
    with get_session() as session:
        return require_template(session, template_id)


def set_active(template_id: int, active: bool, on: Optional[date] = None) -> RecurringInvoice:
    """Pause or resume a template; resuming re-derives the next generation date."""

    with get_session() as session:
        template = require_template(session, template_id)
        if active and not template.is_active:
            template.next_generation_date = next_generation_date(template.day_of_month, on)
        template.is_active = active
        template.touch()
        session.add(template)
        session.flush()
        logger.info("Recurring invoice %s %s", template.id, "activated" if active else "paused")
        return template


def toggle_active(template_id: int, on: Optional[date] = None) -> RecurringInvoice:
    with get_session() as session:
        current = require_template(session, template_id).is_active
    return set_active(template_id, not current, on)


def delete_template(template_id: int) -> None:
    """Delete a template and its items. Generated invoices keep their reference."""

    with get_session() as session:
        template = require_template(session, template_id)
        session.delete(template)


def due_templates(on: Optional[date] = None) -> list[RecurringInvoice]:
    on = on or today()
    with get_session() as session:
        statement = (
            select(RecurringInvoice)
            .where(RecurringInvoice.is_active == True)  # noqa: E712
            .where(RecurringInvoice.next_generation_date <= on)
            .options(selectinload(RecurringInvoice.items), selectinload(RecurringInvoice.client))
            .order_by(col(RecurringInvoice.next_generation_date), col(RecurringInvoice.id))
        )
        return list(session.exec(statement).all())


def generate_from_template(template_id: int, company: CompanySettings, on: Optional[date] = None) -> Invoice:
    """Create the next invoice of an active template and advance its schedule."""

    on = on or today()

    def build(session: Session) -> Invoice:
        template = require_template(session, template_id)
        if not template.is_active:
            raise ConflictError("Recurring invoice is paused", {"recurring_invoice_id": template_id})
        if template.client is None:
            raise InvalidInputError(
                "Recurring invoice refers to a missing client", {"client_id": template.client_id}
            )
        invoice = Invoice(
            invoice_number=new_invoice_number(session, template.client, on, company),
            client_id=template.client_id,
            recurring_invoice_id=template.id,
            is_auto_generated=True,
            date_of_issue=on,
            date_due=on + timedelta(days=company.default_payment_terms),
            tax_percentage=template.tax_percentage,
            discount_percentage=template.discount_percentage,
            currency=template.currency,
            notes=template.notes,
            category=template.category,
            items=[
                InvoiceItem(
                    description=item.description,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    amount=line_amount(item.quantity, item.unit_price),
                    sort_order=item.sort_order,
                )
                for item in template.items
            ],
        )
        apply_totals(invoice)
        session.add(invoice)
        template.generated_count += 1
        # Never step back onto or before a date already scheduled.
        template.next_generation_date = next_generation_date(
            template.day_of_month, max(on, template.next_generation_date)
        )
        template.touch()
        session.add(template)
        session.flush()
        logger.info(
            "Generated invoice %s from recurring invoice %s (next on %s)",
            invoice.invoice_number,
            template.id,
            template.next_generation_date,
        )
        return invoice

    return run_with_number_retry(build)
