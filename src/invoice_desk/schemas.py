"""Pydantic schemas used by the API."""
from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .models import (
    DeliveryChannel,
    DeliveryStatus,
    InvoiceCategory,
    InvoiceStatus,
    PaymentMethod,
)


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class ClientCreate(BaseModel):
    name: str = Field(min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    country: Optional[str] = None


class ClientUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    country: Optional[str] = None


class ClientRead(ORMModel):
    id: int
    name: str
    email: Optional[str]
    phone: Optional[str]
    address: Optional[str]
    country: Optional[str]
    abbreviation: str
    created_at: datetime


class LineItemIn(BaseModel):
    description: str = Field(min_length=1)
    quantity: float = Field(gt=0)
    unit_price: float = Field(ge=0)


class LineItemRead(ORMModel):
    description: str
    quantity: float
    unit_price: float
    amount: float
    sort_order: int


class RecurringOptions(BaseModel):
    day_of_month: int = Field(ge=1, le=28)
    auto_send_whatsapp: bool = False


class InvoiceCreate(BaseModel):
    client_id: int
    items: list[LineItemIn] = Field(min_length=1)
    invoice_number: Optional[str] = Field(default=None, min_length=1)
    date_of_issue: Optional[date] = None
    date_due: Optional[date] = None
    status: Literal["draft", "sent"] = "draft"
    tax_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    discount_percentage: float = Field(default=0, ge=0, le=100)
    currency: Optional[str] = Field(default=None, pattern=r"^[A-Z]{3}$")
    notes: Optional[str] = None
    category: InvoiceCategory = InvoiceCategory.OTHER
    recurring: Optional[RecurringOptions] = None

    @model_validator(mode="after")
    def check_due_date(self) -> "InvoiceCreate":
        if self.date_of_issue and self.date_due and self.date_due < self.date_of_issue:
            raise ValueError("date_due must not be before date_of_issue")
        return self


class InvoiceUpdate(BaseModel):
    client_id: Optional[int] = None
    items: Optional[list[LineItemIn]] = Field(default=None, min_length=1)
    date_of_issue: Optional[date] = None
    date_due: Optional[date] = None
    tax_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    discount_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    currency: Optional[str] = Field(default=None, pattern=r"^[A-Z]{3}$")
    notes: Optional[str] = None
    category: Optional[InvoiceCategory] = None


class InvoiceRead(BaseModel):
    id: int
    invoice_number: str
    client_id: Optional[int]
    client_name: Optional[str]
    date_of_issue: date
    date_due: date
    status: InvoiceStatus
    subtotal: float
    tax_percentage: float
    tax_amount: float
    discount_percentage: float
    discount_amount: float
    total: float
    amount_paid: float
    balance_due: float
    currency: str
    notes: Optional[str]
    category: InvoiceCategory
    sent_on_whatsapp: bool
    sent_on_email: bool
    recurring_invoice_id: Optional[int]
    is_auto_generated: bool
    items: list[LineItemRead]
    created_at: datetime
    updated_at: datetime


class StatusChange(BaseModel):
    status: Literal["sent", "paid", "cancelled"]


class NextNumberRead(BaseModel):
    invoice_number: str
    abbreviation: str
    prefix: str


class PaymentCreate(BaseModel):
    amount: float = Field(gt=0)
    payment_date: Optional[date] = None
    payment_method: PaymentMethod = PaymentMethod.BANK_TRANSFER
    reference: Optional[str] = None
    notes: Optional[str] = None


class PaymentRead(ORMModel):
    id: int
    invoice_id: int
    amount: float
    payment_date: date
    payment_method: PaymentMethod
    reference: Optional[str]
    notes: Optional[str]
    created_at: datetime


class RecurringCreate(BaseModel):
    client_id: int
    items: list[LineItemIn] = Field(min_length=1)
    day_of_month: int = Field(ge=1, le=28)
    currency: Optional[str] = Field(default=None, pattern=r"^[A-Z]{3}$")
    tax_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    discount_percentage: float = Field(default=0, ge=0, le=100)
    notes: Optional[str] = None
    category: InvoiceCategory = InvoiceCategory.OTHER
    auto_send_whatsapp: bool = False
    is_active: bool = True


class RecurringRead(ORMModel):
    id: int
    client_id: int
    currency: str
    tax_percentage: float
    discount_percentage: float
    discount_amount: float
    notes: Optional[str]
    category: InvoiceCategory
    day_of_month: int
    is_active: bool
    auto_send_whatsapp: bool
    generated_count: int
    next_generation_date: date
    items: list[LineItemRead]
    created_at: datetime
    updated_at: datetime


class GenerationResult(BaseModel):
    recurring_invoice_id: int
    invoice: Optional[InvoiceRead] = None
    delivered: bool = False
    error: Optional[str] = None


class CompanySettingsRead(ORMModel):
    company_name: str
    company_email: str
    company_phone: str
    company_address: str
    company_website: str
    invoice_prefix: str
    invoice_number_digits: int
    default_currency: str
    default_tax_percentage: float
    default_payment_terms: int
    default_notes: str


class CompanySettingsUpdate(BaseModel):
    company_name: Optional[str] = Field(default=None, min_length=1)
    company_email: Optional[str] = None
    company_phone: Optional[str] = None
    company_address: Optional[str] = None
    company_website: Optional[str] = None
    invoice_prefix: Optional[str] = Field(default=None, pattern=r"^[A-Z0-9]{1,6}$")
    invoice_number_digits: Optional[int] = Field(default=None, ge=3, le=9)
    default_currency: Optional[str] = Field(default=None, pattern=r"^[A-Z]{3}$")
    default_tax_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    default_payment_terms: Optional[int] = Field(default=None, ge=0, le=365)
    default_notes: Optional[str] = None


class DeliveryRequest(BaseModel):
    invoice_id: int


class DeliveryResult(BaseModel):
    success: bool
    channel: DeliveryChannel
    message_id: Optional[str]
    recipient: str


class DeliveryLogRead(ORMModel):
    id: int
    invoice_id: int
    channel: DeliveryChannel
    recipient: str
    status: DeliveryStatus
    external_message_id: Optional[str]
    error_message: Optional[str]
    created_at: datetime
