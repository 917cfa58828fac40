"""Invoice delivery endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..models import CompanySettings
from ..schemas import DeliveryLogRead, DeliveryRequest, DeliveryResult
from ..services import delivery
from ..services.company import get_company_settings

router = APIRouter(prefix="/delivery", tags=["delivery"])


def _receipt_to_schema(receipt: delivery.DeliveryReceipt) -> DeliveryResult:
    return DeliveryResult(
        success=True,
        channel=receipt.channel,
        message_id=receipt.message_id,
        recipient=receipt.recipient,
    )


@router.post("/email", response_model=DeliveryResult)
async def send_email(
    payload: DeliveryRequest,
    company: CompanySettings = Depends(get_company_settings),
    sender: delivery.EmailSender = Depends(delivery.get_email_sender),
) -> DeliveryResult:
    receipt = await delivery.send_invoice_email(payload.invoice_id, company, sender)
    return _receipt_to_schema(receipt)


@router.post("/whatsapp", response_model=DeliveryResult)
async def send_whatsapp(
    payload: DeliveryRequest,
    company: CompanySettings = Depends(get_company_settings),
    sender: delivery.WhatsAppSender = Depends(delivery.get_whatsapp_sender),
) -> DeliveryResult:
    receipt = await delivery.send_invoice_whatsapp(payload.invoice_id, company, sender)
    return _receipt_to_schema(receipt)


@router.get("/logs", response_model=list[DeliveryLogRead])
def delivery_logs(invoice_id: int) -> list[DeliveryLogRead]:
    return [DeliveryLogRead.model_validate(entry) for entry in delivery.delivery_history(invoice_id)]
