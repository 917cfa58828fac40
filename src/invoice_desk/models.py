"""Database models for the invoice desk."""

from datetime import date, datetime
from enum import Enum
from typing import Optional

import pendulum
from sqlalchemy import UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel


def _utcnow() -> datetime:
    return pendulum.now("UTC")


class TimestampMixin(SQLModel):
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def touch(self) -> None:
        self.updated_at = _utcnow()


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    BANK_TRANSFER = "bank_transfer"
    CASH = "cash"
    PAYHERE = "payhere"
    PAYPAL = "paypal"
    OTHER = "other"


class InvoiceCategory(str, Enum):
    SYSTEM_MAINTENANCE = "system_maintenance"
    PROJECT_QUOTATION = "project_quotation"
    MILESTONE_PAYMENT = "milestone_payment"
    HOSTING = "hosting"
    DOMAIN = "domain"
    GRAPHIC_DESIGN = "graphic_design"
    CONSULTATION = "consultation"
    SUBSCRIPTION = "subscription"
    OTHER = "other"


class DeliveryChannel(str, Enum):
    EMAIL = "email"
    WHATSAPP = "whatsapp"


class DeliveryStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"


class Client(TimestampMixin, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    country: Optional[str] = None


class InvoiceItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    invoice_id: int = Field(foreign_key="invoice.id", index=True)
    description: str
    quantity: float = Field(default=1)
    unit_price: float = Field(default=0)
    amount: float = Field(default=0)
    sort_order: int = Field(default=0)

    invoice: "Invoice" = Relationship(back_populates="items")


class Invoice(TimestampMixin, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    invoice_number: str
    # Plain columns: invoices outlive the client and the template they came from.
    client_id: Optional[int] = Field(default=None, index=True)
    recurring_invoice_id: Optional[int] = Field(default=None, index=True)
    date_of_issue: date
    date_due: date
    status: InvoiceStatus = Field(default=InvoiceStatus.DRAFT)
    subtotal: float = Field(default=0)
    tax_percentage: float = Field(default=0)
    tax_amount: float = Field(default=0)
    discount_percentage: float = Field(default=0)
    discount_amount: float = Field(default=0)
    total: float = Field(default=0)
    currency: str = Field(default="LKR")
    notes: Optional[str] = None
    category: InvoiceCategory = Field(default=InvoiceCategory.OTHER)
    sent_on_whatsapp: bool = False
    sent_on_email: bool = False
    is_auto_generated: bool = False

    client: Optional[Client] = Relationship(
        sa_relationship_kwargs={
            "primaryjoin": "foreign(Invoice.client_id) == Client.id",
            "viewonly": True,
        },
    )
    items: list[InvoiceItem] = Relationship(
        back_populates="invoice",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "InvoiceItem.sort_order"},
    )
    payments: list["Payment"] = Relationship(
        back_populates="invoice",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )

    __table_args__ = (UniqueConstraint("invoice_number", name="invoice_number_unique"),)


class Payment(TimestampMixin, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    invoice_id: int = Field(foreign_key="invoice.id", index=True)
    amount: float
    payment_date: date
    payment_method: PaymentMethod = Field(default=PaymentMethod.BANK_TRANSFER)
    reference: Optional[str] = None
    notes: Optional[str] = None

    invoice: Invoice = Relationship(back_populates="payments")


class RecurringInvoiceItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    recurring_invoice_id: int = Field(foreign_key="recurringinvoice.id", index=True)
    description: str
    quantity: float = Field(default=1)
    unit_price: float = Field(default=0)
    amount: float = Field(default=0)
    sort_order: int = Field(default=0)

    template: "RecurringInvoice" = Relationship(back_populates="items")


class RecurringInvoice(TimestampMixin, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    client_id: int = Field(index=True)
    currency: str = Field(default="LKR")
    tax_percentage: float = Field(default=0)
    discount_percentage: float = Field(default=0)
    discount_amount: float = Field(default=0)
    notes: Optional[str] = None
    category: InvoiceCategory = Field(default=InvoiceCategory.OTHER)
    day_of_month: int = Field(ge=1, le=28)
    is_active: bool = Field(default=True)
    auto_send_whatsapp: bool = False
    generated_count: int = Field(default=0)
    next_generation_date: date

    client: Optional[Client] = Relationship(
        sa_relationship_kwargs={
            "primaryjoin": "foreign(RecurringInvoice.client_id) == Client.id",
            "viewonly": True,
        },
    )
    items: list[RecurringInvoiceItem] = Relationship(
        back_populates="template",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "order_by": "RecurringInvoiceItem.sort_order",
        },
    )


class CompanySettings(TimestampMixin, table=True):
    __tablename__ = "settings"  # type: ignore[assignment]

    id: Optional[int] = Field(default=None, primary_key=True)
    company_name: str = Field(default="FocalDive (Pvt) Ltd")
    company_email: str = Field(default="devfocaldive@gmail.com")
    company_phone: str = Field(default="+94 77 123 4567")
    company_address: str = Field(default="Kurunegala, North Western Province, Sri Lanka")
    company_website: str = Field(default="focaldive.com")
    invoice_prefix: str = Field(default="FD")
    invoice_number_digits: int = Field(default=3)
    default_currency: str = Field(default="LKR")
    default_tax_percentage: float = Field(default=0)
    default_payment_terms: int = Field(default=14, description="Days until an invoice is due.")
    default_notes: str = Field(default="Thank you for your business.")


class DeliveryLog(SQLModel, table=True):
    __tablename__ = "invoice_delivery_log"  # type: ignore[assignment]

    id: Optional[int] = Field(default=None, primary_key=True)
    invoice_id: int = Field(index=True)
    channel: DeliveryChannel
    recipient: str
    status: DeliveryStatus
    external_message_id: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)


class NumberSequence(TimestampMixin, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    prefix: str
    last_number: int = Field(default=0)

    __table_args__ = (UniqueConstraint("prefix", name="number_sequence_unique"),)
