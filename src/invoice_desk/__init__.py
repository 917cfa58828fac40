"""Invoice Desk package: clients, invoices, payments and recurring billing."""

from importlib.metadata import PackageNotFoundError, version

__all__ = ["get_version"]


def get_version() -> str:
    """Return the installed package version."""
    try:
        return version("invoice-desk")
    except PackageNotFoundError:  # pragma: no cover - running from a source checkout
        return "0.1.0"
