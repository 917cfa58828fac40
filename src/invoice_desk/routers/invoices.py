"""Invoice related API endpoints."""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import StreamingResponse

from ..models import CompanySettings, Invoice, InvoiceStatus
from ..schemas import (
    InvoiceCreate,
    InvoiceRead,
    InvoiceUpdate,
    LineItemRead,
    NextNumberRead,
    PaymentCreate,
    PaymentRead,
    StatusChange,
)
from ..services import invoices as invoice_service
from ..services import payments
from ..services.company import get_company_settings
from ..services.pdf import render_invoice_pdf
from ..services.status import effective_status, today

router = APIRouter(prefix="/invoices", tags=["invoices"])


def invoice_to_schema(invoice: Invoice, on: Optional[date] = None) -> InvoiceRead:
    paid = payments.total_paid(invoice.payments)
    return InvoiceRead(
        id=invoice.id,
        invoice_number=invoice.invoice_number,
        client_id=invoice.client_id,
        client_name=invoice.client.name if invoice.client else None,
        date_of_issue=invoice.date_of_issue,
        date_due=invoice.date_due,
        status=effective_status(invoice, on or today()),
        subtotal=invoice.subtotal,
        tax_percentage=invoice.tax_percentage,
        tax_amount=invoice.tax_amount,
        discount_percentage=invoice.discount_percentage,
        discount_amount=invoice.discount_amount,
        total=invoice.total,
        amount_paid=paid,
        balance_due=payments.balance_due(invoice),
        currency=invoice.currency,
        notes=invoice.notes,
        category=invoice.category,
        sent_on_whatsapp=invoice.sent_on_whatsapp,
        sent_on_email=invoice.sent_on_email,
        recurring_invoice_id=invoice.recurring_invoice_id,
        is_auto_generated=invoice.is_auto_generated,
        items=[LineItemRead.model_validate(item) for item in invoice.items],
        created_at=invoice.created_at,
        updated_at=invoice.updated_at,
    )


@router.get("", response_model=list[InvoiceRead])
def list_invoices(
    status: Optional[InvoiceStatus] = None,
    client_id: Optional[int] = None,
) -> list[InvoiceRead]:
    on = today()
    return [
        invoice_to_schema(invoice, on)
        for invoice in invoice_service.list_invoices(status=status, client_id=client_id, on=on)
    ]


@router.post("", response_model=InvoiceRead, status_code=201)
def create_invoice(
    payload: InvoiceCreate,
    company: CompanySettings = Depends(get_company_settings),
) -> InvoiceRead:
    return invoice_to_schema(invoice_service.create_invoice(payload, company))


@router.get("/next-number", response_model=NextNumberRead)
def next_invoice_number(
    client_id: int,
    issue_date: Optional[date] = Query(default=None),
    company: CompanySettings = Depends(get_company_settings),
) -> NextNumberRead:
    number, abbreviation, prefix = invoice_service.preview_number(
        client_id, issue_date or today(), company
    )
    return NextNumberRead(invoice_number=number, abbreviation=abbreviation, prefix=prefix)


@router.get("/{invoice_id}", response_model=InvoiceRead)
def get_invoice(invoice_id: int) -> InvoiceRead:
    return invoice_to_schema(invoice_service.get_invoice(invoice_id))


@router.put("/{invoice_id}", response_model=InvoiceRead)
def update_invoice(invoice_id: int, payload: InvoiceUpdate) -> InvoiceRead:
    return invoice_to_schema(invoice_service.update_invoice(invoice_id, payload))


@router.delete("/{invoice_id}", status_code=204)
def delete_invoice(invoice_id: int) -> Response:
    invoice_service.delete_invoice(invoice_id)
    return Response(status_code=204)


@router.post("/{invoice_id}/status", response_model=InvoiceRead)
def change_status(invoice_id: int, payload: StatusChange) -> InvoiceRead:
    invoice_service.change_status(invoice_id, InvoiceStatus(payload.status))
    return invoice_to_schema(invoice_service.get_invoice(invoice_id))


@router.post("/{invoice_id}/payments", response_model=PaymentRead, status_code=201)
def create_payment(invoice_id: int, payload: PaymentCreate) -> PaymentRead:
    return PaymentRead.model_validate(payments.register_payment(invoice_id, payload))


@router.get("/{invoice_id}/payments", response_model=list[PaymentRead])
def list_payments(invoice_id: int) -> list[PaymentRead]:
    return [PaymentRead.model_validate(payment) for payment in payments.list_payments(invoice_id)]


@router.get("/{invoice_id}/pdf")
def download_pdf(
    invoice_id: int,
    company: CompanySettings = Depends(get_company_settings),
) -> Response:
    invoice = invoice_service.get_invoice(invoice_id)
    pdf = render_invoice_pdf(invoice, invoice.client, company)
    return StreamingResponse(
        iter([pdf.content]),
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={pdf.filename}"},
    )
