"""Invoice creation, editing and status changes."""
from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Callable, Iterable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload
from sqlmodel import Session, col, select

from ..config import get_settings
from ..db import get_session
from ..exceptions import ConflictError, InvalidInputError, NotFoundError, NumberAllocationError
from ..models import (
    Client,
    CompanySettings,
    Invoice,
    InvoiceItem,
    InvoiceStatus,
    RecurringInvoice,
    RecurringInvoiceItem,
)
from ..schemas import InvoiceCreate, InvoiceUpdate, LineItemIn, RecurringOptions
from . import numbering
from .abbreviation import client_abbreviation
from .schedule import next_generation_date
from .status import effective_status, settle, today, transition
from .totals import compute_totals, line_amount

logger = logging.getLogger(__name__)


def load_invoice(session: Session, invoice_id: int) -> Invoice | None:
    statement = (
        select(Invoice)
        .where(Invoice.id == invoice_id)
        .options(
            selectinload(Invoice.items),
            selectinload(Invoice.payments),
            selectinload(Invoice.client),
        )
    )
    return session.exec(statement).one_or_none()


def require_invoice(session: Session, invoice_id: int) -> Invoice:
    invoice = load_invoice(session, invoice_id)
    if invoice is None:
        raise NotFoundError("Invoice", invoice_id)
    return invoice


def build_items(lines: Iterable[LineItemIn]) -> list[InvoiceItem]:
    return [
        InvoiceItem(
            description=line.description,
            quantity=line.quantity,
            unit_price=line.unit_price,
            amount=line_amount(line.quantity, line.unit_price),
            sort_order=index,
        )
        for index, line in enumerate(lines)
    ]


def apply_totals(invoice: Invoice) -> None:
    totals = compute_totals(invoice.items, invoice.tax_percentage, invoice.discount_percentage)
    invoice.subtotal = totals.subtotal
    invoice.tax_amount = totals.tax_amount
    invoice.discount_amount = totals.discount_amount
    invoice.total = totals.total


def _client_for_invoice(session: Session, client_id: int) -> Client:
    client = session.get(Client, client_id)
    if client is None:
        raise InvalidInputError("Select an existing client", {"client_id": client_id})
    return client


def new_invoice_number(session: Session, client: Client, issue_date: date, company: CompanySettings) -> str:
    return numbering.allocate_invoice_number(
        session,
        client_abbreviation(client.name),
        issue_date,
        brand=company.invoice_prefix,
        digits=company.invoice_number_digits,
    )


def preview_number(client_id: int, issue_date: date, company: CompanySettings) -> tuple[str, str, str]:
    """Return ``(number, abbreviation, prefix)`` the creation form should display."""

    with get_session() as session:
        client = _client_for_invoice(session, client_id)
        abbreviation = client_abbreviation(client.name)
        number = numbering.preview_invoice_number(
            session,
            abbreviation,
            issue_date,
            brand=company.invoice_prefix,
            digits=company.invoice_number_digits,
        )
    return number, abbreviation, numbering.number_prefix(abbreviation, issue_date, company.invoice_prefix)


def run_with_number_retry(build: Callable[[Session], Invoice], manual_number: Optional[str] = None) -> Invoice:
    """Run ``build`` in a fresh transaction until its invoice number is unique.

    A unique-constraint violation rolls back everything ``build`` wrote (header,
    items, counter) before the next attempt recomputes the number.
    """

    attempts = get_settings().number_allocation_attempts
    for attempt in range(1, attempts + 1):
        try:
            with get_session() as session:
                invoice = build(session)
                session.flush()
                loaded = load_invoice(session, invoice.id)
                if loaded is None:
                    raise NotFoundError("Invoice", invoice.id)
                return loaded
        except IntegrityError as exc:
            if manual_number is not None:
                raise ConflictError(
                    "Invoice number already exists", {"invoice_number": manual_number}
                ) from exc
            logger.warning(
                "Invoice number conflict on attempt %d/%d, retrying: %s",
                attempt,
                attempts,
                exc.orig,
            )
    raise NumberAllocationError(
        "Could not allocate a unique invoice number", {"attempts": attempts}
    )


def _ensure_number_unused(session: Session, invoice_number: str) -> None:
    existing = session.exec(
        select(Invoice.id).where(Invoice.invoice_number == invoice_number)
    ).first()
    if existing is not None:
        raise ConflictError("Invoice number already exists", {"invoice_number": invoice_number})


def _template_from_invoice(invoice: Invoice, options: RecurringOptions, issue_date: date) -> RecurringInvoice:
    return RecurringInvoice(
        client_id=invoice.client_id,
        currency=invoice.currency,
        tax_percentage=invoice.tax_percentage,
        discount_percentage=invoice.discount_percentage,
        discount_amount=invoice.discount_amount,
        notes=invoice.notes,
        category=invoice.category,
        day_of_month=options.day_of_month,
        auto_send_whatsapp=options.auto_send_whatsapp,
        is_active=True,
        generated_count=1,
        next_generation_date=next_generation_date(options.day_of_month, max(issue_date, today())),
        items=[
            RecurringInvoiceItem(
                description=item.description,
                quantity=item.quantity,
                unit_price=item.unit_price,
                amount=item.amount,
                sort_order=item.sort_order,
            )
            for item in invoice.items
        ],
    )


def create_invoice(payload: InvoiceCreate, company: CompanySettings) -> Invoice:
    """Create an invoice with its items, and optionally its recurring template, atomically."""

    def build(session: Session) -> Invoice:
        client = _client_for_invoice(session, payload.client_id)
        issue_date = payload.date_of_issue or today()
        if payload.invoice_number:
            _ensure_number_unused(session, payload.invoice_number)
            invoice_number = payload.invoice_number
        else:
            invoice_number = new_invoice_number(session, client, issue_date, company)
        invoice = Invoice(
            invoice_number=invoice_number,
            client_id=client.id,
            date_of_issue=issue_date,
            date_due=payload.date_due or issue_date + timedelta(days=company.default_payment_terms),
            status=InvoiceStatus(payload.status),
            tax_percentage=(
                payload.tax_percentage
                if payload.tax_percentage is not None
                else company.default_tax_percentage
            ),
            discount_percentage=payload.discount_percentage,
            currency=payload.currency or company.default_currency,
            notes=payload.notes if payload.notes is not None else company.default_notes,
            category=payload.category,
            items=build_items(payload.items),
        )
        apply_totals(invoice)
        session.add(invoice)
        session.flush()
        if payload.recurring is not None:
            template = _template_from_invoice(invoice, payload.recurring, issue_date)
            session.add(template)
            session.flush()
            invoice.recurring_invoice_id = template.id
            session.add(invoice)
        logger.info("Created invoice %s for client %s", invoice.invoice_number, client.id)
        return invoice

    return run_with_number_retry(build, manual_number=payload.invoice_number)


def update_invoice(invoice_id: int, payload: InvoiceUpdate) -> Invoice:
    """Apply edits; the invoice number never changes and items are replaced wholesale."""

    with get_session() as session:
        invoice = require_invoice(session, invoice_id)
        changes = payload.model_dump(exclude_unset=True, exclude={"items"})
        if changes.get("client_id") is not None:
            _client_for_invoice(session, changes["client_id"])
        for field, value in changes.items():
            if value is not None or field == "notes":
                setattr(invoice, field, value)
        if invoice.date_due < invoice.date_of_issue:
            raise InvalidInputError("date_due must not be before date_of_issue")
        if payload.items is not None:
            invoice.items = build_items(payload.items)
        apply_totals(invoice)
        invoice.touch()
        if settle(invoice):
            logger.info("Invoice %s fully paid after edit", invoice.invoice_number)
        session.add(invoice)
        session.flush()
        # The client relationship is view-only and would keep the old client.
        session.expire(invoice)
        return require_invoice(session, invoice_id)


def get_invoice(invoice_id: int) -> Invoice:
    with get_session() as session:
        return require_invoice(session, invoice_id)


def list_invoices(
    status: Optional[InvoiceStatus] = None,
    client_id: Optional[int] = None,
    on: Optional[date] = None,
) -> list[Invoice]:
    """Newest first. ``status`` filters on the reported status, so ``overdue`` works."""

    on = on or today()
    with get_session() as session:
        statement = (
            select(Invoice)
            .options(selectinload(Invoice.items), selectinload(Invoice.payments), selectinload(Invoice.client))
            .order_by(col(Invoice.date_of_issue).desc(), col(Invoice.invoice_number).desc())
        )
        if client_id is not None:
            statement = statement.where(Invoice.client_id == client_id)
        invoices = list(session.exec(statement).all())
    if status is None:
        return invoices
    return [invoice for invoice in invoices if effective_status(invoice, on) == status]


def delete_invoice(invoice_id: int) -> None:
    with get_session() as session:
        invoice = require_invoice(session, invoice_id)
        session.delete(invoice)
        logger.info("Deleted invoice %s", invoice.invoice_number)


def change_status(invoice_id: int, target: InvoiceStatus) -> Invoice:
    with get_session() as session:
        invoice = require_invoice(session, invoice_id)
        transition(invoice, target)
        if target == InvoiceStatus.SENT and settle(invoice):
            logger.info("Invoice %s already fully paid", invoice.invoice_number)
        session.add(invoice)
        session.flush()
        logger.info("Invoice %s is now %s", invoice.invoice_number, invoice.status.value)
        return invoice
