"""Invoice delivery by email and WhatsApp, with an append-only delivery log."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx
import pendulum
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col, select

from ..config import get_settings
from ..db import get_session
from ..exceptions import DeliveryError, InvalidInputError
from ..models import CompanySettings, DeliveryChannel, DeliveryLog, DeliveryStatus, Invoice
from .invoices import require_invoice
from .pdf import PDFDocument, render_invoice_pdf
from .phone import is_valid_whatsapp_number, normalize_phone
from .status import mark_delivered
from .totals import format_currency

logger = logging.getLogger(__name__)


@dataclass
class DeliveryReceipt:
    channel: DeliveryChannel
    recipient: str
    message_id: Optional[str]


class EmailSender:
    """Client for a Resend-style ``POST /emails`` API."""

    channel = DeliveryChannel.EMAIL

    def __init__(
        self,
        api_url: str,
        api_key: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    async def send(
        self,
        *,
        sender: str,
        to: str,
        subject: str,
        html: str,
        attachment: PDFDocument,
    ) -> Optional[str]:
        payload = {
            "from": sender,
            "to": [to],
            "subject": subject,
            "html": html,
            "attachments": [
                {
                    "filename": attachment.filename,
                    "content": attachment.as_base64(),
                    "contentType": "application/pdf",
                }
            ],
        }
        data = await _post_json(
            self.channel,
            to,
            f"{self._api_url}/emails",
            payload,
            self._api_key,
            self._timeout,
            self._transport,
        )
        return data.get("id")


class WhatsAppSender:
    """Client for a Whapi-style ``POST /messages/document`` gateway."""

    channel = DeliveryChannel.WHATSAPP

    def __init__(
        self,
        api_url: str,
        api_token: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._api_token = api_token
        self._timeout = timeout
        self._transport = transport

    async def send(self, *, to: str, caption: str, attachment: PDFDocument) -> Optional[str]:
        payload = {
            "to": to,
            "media": f"data:application/pdf;base64,{attachment.as_base64()}",
            "filename": attachment.filename,
            "caption": caption,
        }
        data = await _post_json(
            self.channel,
            to,
            f"{self._api_url}/messages/document",
            payload,
            self._api_token,
            self._timeout,
            self._transport,
        )
        message = data.get("message")
        if isinstance(message, dict) and message.get("id"):
            return message["id"]
        return data.get("id")


async def _post_json(
    channel: DeliveryChannel,
    recipient: str,
    url: str,
    payload: dict[str, Any],
    token: str,
    timeout: float,
    transport: Optional[httpx.AsyncBaseTransport],
) -> dict[str, Any]:
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.post(
                url,
                json=payload,
                headers={"Authorization": f"Bearer {token}"},
            )
    except httpx.HTTPError as exc:
        raise DeliveryError(channel.value, recipient, str(exc) or type(exc).__name__) from exc
    if response.status_code >= 400:
        raise DeliveryError(
            channel.value,
            recipient,
            response.text or f"HTTP {response.status_code}",
            {"status_code": response.status_code},
        )
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def get_email_sender() -> EmailSender:
    settings = get_settings()
    return EmailSender(settings.email_api_url, settings.email_api_key, settings.http_timeout)


def get_whatsapp_sender() -> WhatsAppSender:
    settings = get_settings()
    return WhatsAppSender(settings.whatsapp_api_url, settings.whatsapp_api_token, settings.http_timeout)


def _write_log(entry: DeliveryLog) -> None:
    with get_session() as session:
        session.add(entry)


def log_delivery(
    invoice_id: int,
    channel: DeliveryChannel,
    recipient: str,
    status: DeliveryStatus,
    external_message_id: Optional[str] = None,
    error_message: Optional[str] = None,
) -> None:
    """Append to the delivery log. Failing to write the log never fails the delivery."""

    entry = DeliveryLog(
        invoice_id=invoice_id,
        channel=channel,
        recipient=recipient,
        status=status,
        external_message_id=external_message_id,
        error_message=error_message,
    )
    try:
        _write_log(entry)
    except SQLAlchemyError:
        logger.warning(
            "Failed to record %s delivery of invoice %s", channel.value, invoice_id, exc_info=True
        )


def delivery_history(invoice_id: int) -> list[DeliveryLog]:
    with get_session() as session:
        statement = (
            select(DeliveryLog)
            .where(DeliveryLog.invoice_id == invoice_id)
            .order_by(col(DeliveryLog.created_at).desc(), col(DeliveryLog.id).desc())
        )
        return list(session.exec(statement).all())


def _load_for_delivery(invoice_id: int) -> Invoice:
    with get_session() as session:
        return require_invoice(session, invoice_id)


def _record_success(invoice_id: int, channel: DeliveryChannel) -> None:
    with get_session() as session:
        invoice = require_invoice(session, invoice_id)
        if channel == DeliveryChannel.EMAIL:
            invoice.sent_on_email = True
        else:
            invoice.sent_on_whatsapp = True
        mark_delivered(invoice)
        session.add(invoice)


def _due_label(invoice: Invoice) -> str:
    return pendulum.date(invoice.date_due.year, invoice.date_due.month, invoice.date_due.day).format(
        "MMMM D, YYYY"
    )


def email_body(invoice: Invoice, company: CompanySettings) -> str:
    client_name = invoice.client.name if invoice.client else "Client"
    total = format_currency(invoice.total, invoice.currency)
    return f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
          <h2 style="color: #333;">Invoice {invoice.invoice_number}</h2>
          <p>Dear {client_name},</p>
          <p>Please find attached invoice <strong>{invoice.invoice_number}</strong>.</p>
          <table style="width: 100%; border-collapse: collapse; margin: 20px 0;">
            <tr>
              <td style="padding: 8px 0; color: #666;">Amount</td>
              <td style="padding: 8px 0; text-align: right; font-weight: bold;">{total} {invoice.currency}</td>
            </tr>
            <tr>
              <td style="padding: 8px 0; color: #666;">Due Date</td>
              <td style="padding: 8px 0; text-align: right;">{_due_label(invoice)}</td>
            </tr>
          </table>
          <p>If you have any questions, please don't hesitate to reach out.</p>
          <p style="margin-top: 30px;">Best regards,<br/><strong>{company.company_name}</strong></p>
        </div>
    """


def whatsapp_caption(invoice: Invoice, company: CompanySettings) -> str:
    total = format_currency(invoice.total, invoice.currency)
    return (
        f"Invoice {invoice.invoice_number}\n"
        f"Amount: {total} {invoice.currency}\n"
        f"Due: {_due_label(invoice)}\n\n"
        f"From {company.company_name}"
    )


async def send_invoice_email(
    invoice_id: int, company: CompanySettings, sender: EmailSender
) -> DeliveryReceipt:
    invoice = await run_in_threadpool(_load_for_delivery, invoice_id)
    recipient = invoice.client.email if invoice.client else None
    if not recipient:
        raise InvalidInputError("Client does not have an email address", {"invoice_id": invoice_id})

    document = await run_in_threadpool(render_invoice_pdf, invoice, invoice.client, company)
    try:
        message_id = await sender.send(
            sender=f"{company.company_name} <{company.company_email}>",
            to=recipient,
            subject=f"Invoice {invoice.invoice_number} - {format_currency(invoice.total, invoice.currency)} {invoice.currency}",
            html=email_body(invoice, company),
            attachment=document,
        )
    except DeliveryError as exc:
        logger.error("Email delivery of %s to %s failed: %s", invoice.invoice_number, recipient, exc.reason)
        await run_in_threadpool(
            log_delivery, invoice_id, DeliveryChannel.EMAIL, recipient, DeliveryStatus.FAILED, error_message=exc.reason
        )
        raise

    await run_in_threadpool(log_delivery, invoice_id, DeliveryChannel.EMAIL, recipient, DeliveryStatus.SENT, message_id)
    await run_in_threadpool(_record_success, invoice_id, DeliveryChannel.EMAIL)
    logger.info("Emailed invoice %s to %s", invoice.invoice_number, recipient)
    return DeliveryReceipt(channel=DeliveryChannel.EMAIL, recipient=recipient, message_id=message_id)


async def send_invoice_whatsapp(
    invoice_id: int, company: CompanySettings, sender: WhatsAppSender
) -> DeliveryReceipt:
    invoice = await run_in_threadpool(_load_for_delivery, invoice_id)
    phone = invoice.client.phone if invoice.client else None
    if not phone:
        raise InvalidInputError("Client does not have a phone number", {"invoice_id": invoice_id})
    recipient = normalize_phone(phone)
    if not is_valid_whatsapp_number(recipient):
        raise InvalidInputError(f"Invalid phone number: {phone}", {"invoice_id": invoice_id})

    document = await run_in_threadpool(render_invoice_pdf, invoice, invoice.client, company)
    try:
        message_id = await sender.send(
            to=recipient,
            caption=whatsapp_caption(invoice, company),
            attachment=document,
        )
    except DeliveryError as exc:
        logger.error("WhatsApp delivery of %s to %s failed: %s", invoice.invoice_number, recipient, exc.reason)
        await run_in_threadpool(
            log_delivery, invoice_id, DeliveryChannel.WHATSAPP, recipient, DeliveryStatus.FAILED, error_message=exc.reason
        )
        raise

    await run_in_threadpool(log_delivery, invoice_id, DeliveryChannel.WHATSAPP, recipient, DeliveryStatus.SENT, message_id)
    await run_in_threadpool(_record_success, invoice_id, DeliveryChannel.WHATSAPP)
    logger.info("Sent invoice %s to WhatsApp %s", invoice.invoice_number, recipient)
    return DeliveryReceipt(channel=DeliveryChannel.WHATSAPP, recipient=recipient, message_id=message_id)
