"""Application configuration and feature flags."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Central application configuration with sane defaults."""

    model_config = SettingsConfigDict(env_prefix="INVOICE_DESK_", case_sensitive=False)

    database_url: str = Field(
        "sqlite:///./invoice_desk.db",
        description="SQLAlchemy-compatible connection string.",
    )
    media_path: Path = Field(
        Path("storage/media"),
        description="Directory for generated PDFs.",
    )
    timezone: str = Field(
        "Asia/Colombo",
        description="Canonical timezone for 'today' in date computations.",
    )
    log_level: str = Field(
        "INFO",
        description="Root log level applied at startup.",
    )
    invoice_number_brand: str = Field(
        "FD",
        description="Leading segment of every invoice number.",
    )
    invoice_number_digits: int = Field(
        3,
        ge=3,
        le=9,
        description="Zero padding width of the per-client monthly sequence.",
    )
    number_allocation_attempts: int = Field(
        5,
        ge=1,
        description="How often invoice creation is retried after a number conflict.",
    )
    default_country_code: str = Field(
        "94",
        description="Country code substituted for a leading zero in local phone numbers.",
    )
    email_api_url: str = Field(
        "https://api.resend.com",
        description="Base URL of the transactional email API.",
    )
    email_api_key: str = Field(
        "",
        description="Bearer token for the transactional email API.",
    )
    whatsapp_api_url: str = Field(
        "https://gate.whapi.cloud",
        description="Base URL of the WhatsApp document gateway.",
    )
    whatsapp_api_token: str = Field(
        "",
        description="Bearer token for the WhatsApp document gateway.",
    )
    http_timeout: float = Field(
        30.0,
        description="Timeout in seconds for calls to delivery providers.",
    )
    allowed_hosts: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["localhost", "127.0.0.1", "testserver"],
        description="Whitelisted host headers accepted by the API.",
    )
    allowed_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: [
            "http://localhost",
            "http://localhost:3000",
            "http://127.0.0.1",
            "http://127.0.0.1:3000",
        ],
        description="Origins allowed to perform CORS requests.",
    )
    expose_docs: bool = Field(
        False,
        description="Expose interactive API documentation endpoints.",
    )

    @field_validator("media_path", mode="before")
    @classmethod
    def _ensure_path(cls, value: Any) -> Path:
        if isinstance(value, Path):
            return value
        return Path(str(value))

    @field_validator("allowed_hosts", "allowed_origins", mode="before")
    @classmethod
    def _split_comma_separated(cls, value: Any):
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value


@lru_cache
def get_settings() -> Settings:
    """Return memoized settings instance."""

    settings = Settings()
    settings.media_path.mkdir(parents=True, exist_ok=True)
    return settings
