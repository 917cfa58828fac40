"""Exceptions raised by the invoice desk services.

All errors derive from :class:`InvoiceDeskError` so the API layer can map the
whole family to HTTP responses in one place.

Hierarchy::

    InvoiceDeskError
    ├── NotFoundError
    ├── InvalidInputError
    ├── ConflictError
    │   └── InvalidTransitionError
    ├── NumberAllocationError
    └── DeliveryError
"""
from __future__ import annotations

from typing import Any


class InvoiceDeskError(Exception):
    """Base exception for all invoice desk errors."""

    status_code = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details: dict[str, Any] = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | details={self.details}"
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self.message!r})"


class NotFoundError(InvoiceDeskError):
    """Raised when a requested record does not exist."""

    status_code = 404

    def __init__(self, entity: str, identifier: Any) -> None:
        super().__init__(f"{entity} not found", {"id": identifier})
        self.entity = entity
        self.identifier = identifier


class InvalidInputError(InvoiceDeskError):
    """Raised when a request is missing data required before anything is written."""

    status_code = 400


class ConflictError(InvoiceDeskError):
    """Raised when a write would violate a uniqueness rule."""

    status_code = 409


class InvalidTransitionError(ConflictError):
    """Raised when an invoice status change is not allowed from its current state."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            f"Cannot move invoice from {current!r} to {target!r}",
            {"current": current, "target": target},
        )
        self.current = current
        self.target = target


class NumberAllocationError(InvoiceDeskError):
    """Raised when no unique invoice number could be allocated."""

    status_code = 503


class DeliveryError(InvoiceDeskError):
    """Raised when an email or WhatsApp provider rejects a delivery."""

    status_code = 502

    def __init__(
        self,
        channel: str,
        recipient: str,
        reason: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(f"Failed to deliver invoice via {channel}: {reason}", details)
        self.channel = channel
        self.recipient = recipient
        self.reason = reason
