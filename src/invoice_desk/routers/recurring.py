"""Recurring invoice template endpoints."""
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Response
from fastapi.concurrency import run_in_threadpool

from ..exceptions import DeliveryError, InvalidInputError, InvoiceDeskError
from ..models import CompanySettings, Invoice, RecurringInvoice
from ..schemas import GenerationResult, LineItemRead, RecurringCreate, RecurringRead
from ..services import recurring
from ..services.company import get_company_settings
from ..services.delivery import WhatsAppSender, get_whatsapp_sender, send_invoice_whatsapp
from ..services.invoices import get_invoice
from .invoices import invoice_to_schema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recurring", tags=["recurring"])


def _template_to_schema(template: RecurringInvoice) -> RecurringRead:
    return RecurringRead(
        id=template.id,
        client_id=template.client_id,
        currency=template.currency,
        tax_percentage=template.tax_percentage,
        discount_percentage=template.discount_percentage,
        discount_amount=template.discount_amount,
        notes=template.notes,
        category=template.category,
        day_of_month=template.day_of_month,
        is_active=template.is_active,
        auto_send_whatsapp=template.auto_send_whatsapp,
        generated_count=template.generated_count,
        next_generation_date=template.next_generation_date,
        items=[LineItemRead.model_validate(item) for item in template.items],
        created_at=template.created_at,
        updated_at=template.updated_at,
    )


async def _auto_send(invoice: Invoice, company: CompanySettings, sender: WhatsAppSender) -> tuple[bool, Optional[str]]:
    try:
        await send_invoice_whatsapp(invoice.id, company, sender)
    except (DeliveryError, InvalidInputError) as exc:
        logger.warning("Auto-send of %s failed: %s", invoice.invoice_number, exc.message)
        return False, exc.message
    return True, None


@router.get("", response_model=list[RecurringRead])
def list_templates() -> list[RecurringRead]:
    return [_template_to_schema(template) for template in recurring.list_templates()]


@router.post("", response_model=RecurringRead, status_code=201)
def create_template(
    payload: RecurringCreate,
    company: CompanySettings = Depends(get_company_settings),
) -> RecurringRead:
    return _template_to_schema(recurring.create_template(payload, company))


@router.post("/run", response_model=list[GenerationResult])
async def run_due_templates(
    on: Optional[date] = None,
    company: CompanySettings = Depends(get_company_settings),
    sender: WhatsAppSender = Depends(get_whatsapp_sender),
) -> list[GenerationResult]:
    """Generate one invoice for every active template that is due on ``on``."""

    results: list[GenerationResult] = []
    for template in await run_in_threadpool(recurring.due_templates, on):
        result = GenerationResult(recurring_invoice_id=template.id)
        try:
            invoice = await run_in_threadpool(recurring.generate_from_template, template.id, company, on)
        except InvoiceDeskError as exc:
            logger.warning("Recurring invoice %s was not generated: %s", template.id, exc.message)
            result.error = exc.message
            results.append(result)
            continue
        if template.auto_send_whatsapp:
            result.delivered, result.error = await _auto_send(invoice, company, sender)
            invoice = await run_in_threadpool(get_invoice, invoice.id)
        result.invoice = invoice_to_schema(invoice)
        results.append(result)
    return results


@router.get("/{template_id}", response_model=RecurringRead)
def get_template(template_id: int) -> RecurringRead:
    return _template_to_schema(recurring.get_template(template_id))


@router.post("/{template_id}/toggle", response_model=RecurringRead)
def toggle_template(template_id: int) -> RecurringRead:
    recurring.toggle_active(template_id)
    return _template_to_schema(recurring.get_template(template_id))


@router.delete("/{template_id}", status_code=204)
def delete_template(template_id: int) -> Response:
    recurring.delete_template(template_id)
    return Response(status_code=204)


@router.post("/{template_id}/generate", response_model=GenerationResult, status_code=201)
async def generate_invoice(
    template_id: int,
    on: Optional[date] = None,
    company: CompanySettings = Depends(get_company_settings),
    sender: WhatsAppSender = Depends(get_whatsapp_sender),
) -> GenerationResult:
    invoice = await run_in_threadpool(recurring.generate_from_template, template_id, company, on)
    result = GenerationResult(recurring_invoice_id=template_id)
    template = await run_in_threadpool(recurring.get_template, template_id)
    if template.auto_send_whatsapp:
        result.delivered, result.error = await _auto_send(invoice, company, sender)
        invoice = await run_in_threadpool(get_invoice, invoice.id)
    result.invoice = invoice_to_schema(invoice)
    return result
