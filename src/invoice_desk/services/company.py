"""Company identity and invoicing defaults (the ``settings`` row)."""
from __future__ import annotations

from sqlmodel import Session, select

from ..config import get_settings
from ..db import get_session
from ..models import CompanySettings
from ..schemas import CompanySettingsUpdate


def load_company_settings(session: Session) -> CompanySettings:
    """Return the singleton row, creating it from configured defaults on first use."""

    company = session.exec(select(CompanySettings).order_by(CompanySettings.id).limit(1)).first()
    if company is None:
        settings = get_settings()
        company = CompanySettings(
            invoice_prefix=settings.invoice_number_brand,
            invoice_number_digits=settings.invoice_number_digits,
        )
        session.add(company)
        session.flush()
        session.refresh(company)
    return company


def get_company_settings() -> CompanySettings:
    with get_session() as session:
        return load_company_settings(session)


def update_company_settings(payload: CompanySettingsUpdate) -> CompanySettings:
    with get_session() as session:
        company = load_company_settings(session)
        for field, value in payload.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(company, field, value)
        company.touch()
        session.add(company)
        session.flush()
        session.refresh(company)
        return company
