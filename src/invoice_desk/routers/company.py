"""Company settings endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..models import CompanySettings
from ..schemas import CompanySettingsRead, CompanySettingsUpdate
from ..services.company import get_company_settings, update_company_settings

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("", response_model=CompanySettingsRead)
def read_settings(company: CompanySettings = Depends(get_company_settings)) -> CompanySettingsRead:
    return CompanySettingsRead.model_validate(company)


@router.put("", response_model=CompanySettingsRead)
def write_settings(payload: CompanySettingsUpdate) -> CompanySettingsRead:
    return CompanySettingsRead.model_validate(update_company_settings(payload))
