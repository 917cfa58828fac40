"""FastAPI application wiring for the invoice desk."""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, get_settings
from .db import init_db
from .exceptions import InvoiceDeskError
from .routers import clients, company, delivery, invoices, recurring

logger = logging.getLogger(__name__)

settings = get_settings()


def configure_logging(config: Settings) -> None:
    """Apply the configured root log level with a timestamped format."""

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


configure_logging(settings)

fastapi_kwargs: dict[str, str | None] = {}
if not settings.expose_docs:
    fastapi_kwargs.update({"docs_url": None, "redoc_url": None, "openapi_url": None})

app = FastAPI(
    title="Invoice Desk",
    description="Clients, invoices, payments and recurring billing with email and WhatsApp delivery.",
    version="0.1.0",
    **fastapi_kwargs,
)

app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.allowed_hosts)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Accept", "Authorization", "Content-Type", "Origin", "X-Requested-With"],
    expose_headers=["Content-Disposition"],
    allow_credentials=False,
    max_age=86400,
)


@app.exception_handler(InvoiceDeskError)
async def invoice_desk_error_handler(request: Request, exc: InvoiceDeskError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "details": exc.details},
    )


@app.on_event("startup")
def startup() -> None:
    init_db()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(clients.router)
app.include_router(company.router)
app.include_router(invoices.router)
app.include_router(recurring.router)
app.include_router(delivery.router)
