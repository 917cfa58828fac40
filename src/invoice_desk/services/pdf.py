"""Invoice PDF renderer."""
from __future__ import annotations

import base64
import io
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from ..config import get_settings
from ..models import Client, CompanySettings, Invoice
from .totals import format_currency

PAGE_BOTTOM = 30 * mm


@dataclass
class PDFDocument:
    filename: str
    content: bytes

    def as_base64(self) -> str:
        return base64.b64encode(self.content).decode("ascii")

    def save(self, directory: Optional[Path] = None) -> Path:
        target = (directory or get_settings().media_path) / self.filename
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(self.content)
        return target


def _apply_metadata(pdf: canvas.Canvas, invoice: Invoice, company: CompanySettings) -> None:
    pdf.setTitle(f"Invoice {invoice.invoice_number}")
    pdf.setAuthor(company.company_name)
    pdf.setSubject(f"Invoice {invoice.invoice_number}")
    pdf.setCreator("Invoice Desk")


def _draw_header(pdf: canvas.Canvas, invoice: Invoice, client: Optional[Client], company: CompanySettings) -> None:
    width, height = A4
    pdf.setFont("Helvetica-Bold", 14)
    pdf.drawString(20 * mm, height - 25 * mm, company.company_name)
    pdf.setFont("Helvetica", 10)
    y = height - 32 * mm
    for line in (company.company_address, company.company_email, company.company_phone, company.company_website):
        if not line:
            continue
        pdf.drawString(20 * mm, y, line)
        y -= 5 * mm

    pdf.setFont("Helvetica-Bold", 16)
    pdf.drawRightString(190 * mm, height - 25 * mm, "INVOICE")
    pdf.setFont("Helvetica", 10)
    pdf.drawRightString(190 * mm, height - 32 * mm, invoice.invoice_number)
    pdf.drawRightString(190 * mm, height - 37 * mm, f"Issued: {invoice.date_of_issue.isoformat()}")
    pdf.drawRightString(190 * mm, height - 42 * mm, f"Due: {invoice.date_due.isoformat()}")

    pdf.setFont("Helvetica-Bold", 10)
    pdf.drawString(20 * mm, height - 65 * mm, "Bill to")
    pdf.setFont("Helvetica", 10)
    offset = 70 * mm
    if client is None:
        pdf.drawString(20 * mm, height - offset, "Unknown client")
        return
    for line in (client.name, client.address, client.country, client.email, client.phone):
        if not line:
            continue
        pdf.drawString(20 * mm, height - offset, line)
        offset += 5 * mm


def _draw_items(pdf: canvas.Canvas, invoice: Invoice) -> float:
    width, height = A4
    y = height - 105 * mm
    pdf.setFont("Helvetica-Bold", 10)
    pdf.drawString(20 * mm, y, "#")
    pdf.drawString(30 * mm, y, "Description")
    pdf.drawRightString(130 * mm, y, "Qty")
    pdf.drawRightString(160 * mm, y, "Unit price")
    pdf.drawRightString(190 * mm, y, "Amount")
    pdf.setFont("Helvetica", 10)
    y -= 7 * mm
    for idx, item in enumerate(invoice.items, start=1):
        if y < PAGE_BOTTOM:
            pdf.showPage()
            pdf.setFont("Helvetica", 10)
            y = height - 25 * mm
        pdf.drawString(20 * mm, y, str(idx))
        pdf.drawString(30 * mm, y, item.description[:60])
        pdf.drawRightString(130 * mm, y, f"{item.quantity:g}")
        pdf.drawRightString(160 * mm, y, f"{item.unit_price:,.2f}")
        pdf.drawRightString(190 * mm, y, f"{item.amount:,.2f}")
        y -= 6 * mm
    return y


def _draw_totals(pdf: canvas.Canvas, invoice: Invoice, y: float) -> float:
    rows = [("Subtotal", invoice.subtotal)]
    if invoice.tax_percentage:
        rows.append((f"Tax ({invoice.tax_percentage:g}%)", invoice.tax_amount))
    if invoice.discount_percentage:
        rows.append((f"Discount ({invoice.discount_percentage:g}%)", -invoice.discount_amount))
    y -= 6 * mm
    pdf.setFont("Helvetica", 10)
    for label, value in rows:
        pdf.drawRightString(160 * mm, y, label)
        pdf.drawRightString(190 * mm, y, f"{value:,.2f}")
        y -= 5 * mm
    pdf.setFont("Helvetica-Bold", 11)
    pdf.drawRightString(160 * mm, y, "Total")
    pdf.drawRightString(190 * mm, y, format_currency(invoice.total, invoice.currency))
    return y - 12 * mm


def _draw_footer(pdf: canvas.Canvas, invoice: Invoice, company: CompanySettings, y: float) -> None:
    if invoice.notes:
        pdf.setFont("Helvetica-Bold", 10)
        pdf.drawString(20 * mm, y, "Notes")
        text = pdf.beginText(20 * mm, y - 5 * mm)
        text.setFont("Helvetica", 9)
        for line in invoice.notes.splitlines():
            text.textLine(line)
        pdf.drawText(text)
    pdf.setFont("Helvetica", 8)
    pdf.drawString(20 * mm, 15 * mm, f"{company.company_name} - {company.company_website}")


def render_invoice_pdf(invoice: Invoice, client: Optional[Client], company: CompanySettings) -> PDFDocument:
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4, pageCompression=1)
    _apply_metadata(pdf, invoice, company)
    _draw_header(pdf, invoice, client, company)
    y = _draw_items(pdf, invoice)
    y = _draw_totals(pdf, invoice, y)
    _draw_footer(pdf, invoice, company, y)
    pdf.showPage()
    pdf.save()
    return PDFDocument(
        filename=f"{invoice.invoice_number}.pdf",
        content=buffer.getvalue(),
    )
