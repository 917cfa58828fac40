"""Invoice number allocation: ``FD-{ABBR}-{YYMM}-{SEQ}`` per client and month."""
from __future__ import annotations

import logging
from datetime import date

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, col, select

from ..exceptions import NumberAllocationError
from ..models import Invoice, NumberSequence

logger = logging.getLogger(__name__)

DEFAULT_BRAND = "FD"
DEFAULT_DIGITS = 3


def year_month_token(issue_date: date) -> str:
    """Return two-digit year followed by two-digit month, e.g. ``2601``."""

    return f"{issue_date.year % 100:02d}{issue_date.month:02d}"


def number_prefix(abbreviation: str, issue_date: date, brand: str = DEFAULT_BRAND) -> str:
    return f"{brand}-{abbreviation}-{year_month_token(issue_date)}-"


def format_invoice_number(
    abbreviation: str,
    year_month: str,
    sequence: int,
    brand: str = DEFAULT_BRAND,
    digits: int = DEFAULT_DIGITS,
) -> str:
    return f"{brand}-{abbreviation}-{year_month}-{sequence:0{digits}d}"


def parse_sequence(invoice_number: str) -> int:
    """Return the trailing numeric segment of an invoice number, 0 if there is none."""

    try:
        return int(invoice_number.rsplit("-", 1)[-1])
    except ValueError:
        return 0


def latest_sequence(session: Session, prefix: str) -> int:
    """Highest sequence among stored invoice numbers starting with ``prefix``.

    Relies on zero padding keeping lexicographic and numeric order aligned.
    """

    statement = (
        select(Invoice.invoice_number)
        .where(col(Invoice.invoice_number).startswith(prefix, autoescape=True))
        .order_by(col(Invoice.invoice_number).desc())
        .limit(1)
    )
    latest = session.exec(statement).first()
    if latest is None:
        return 0
    return parse_sequence(latest)


def _sequence_row(session: Session, prefix: str) -> NumberSequence | None:
    return session.exec(select(NumberSequence).where(NumberSequence.prefix == prefix)).one_or_none()


def preview_invoice_number(
    session: Session,
    abbreviation: str,
    issue_date: date,
    brand: str = DEFAULT_BRAND,
    digits: int = DEFAULT_DIGITS,
) -> str:
    """Return the number the next allocation would most likely produce.

    Advisory only: nothing is reserved, a concurrent creation may take it first.
    """

    prefix = number_prefix(abbreviation, issue_date, brand)
    try:
        floor = latest_sequence(session, prefix)
        row = _sequence_row(session, prefix)
    except SQLAlchemyError as exc:
        raise NumberAllocationError(
            "Could not read existing invoice numbers", {"prefix": prefix}
        ) from exc
    current = max(floor, row.last_number if row else 0)
    return format_invoice_number(abbreviation, year_month_token(issue_date), current + 1, brand, digits)


def allocate_invoice_number(
    session: Session,
    abbreviation: str,
    issue_date: date,
    brand: str = DEFAULT_BRAND,
    digits: int = DEFAULT_DIGITS,
) -> str:
    """Take the next number for ``abbreviation`` in the month of ``issue_date``.

    The per-prefix counter is incremented in SQL so concurrent transactions
    serialise on the counter row. The counter never hands out a value at or
    below an invoice number already stored under the same prefix. An
    ``IntegrityError`` (two first-time allocations seeding the same counter)
    is left to the caller, which retries the whole transaction.
    """

    prefix = number_prefix(abbreviation, issue_date, brand)
    try:
        floor = latest_sequence(session, prefix)
        row = _sequence_row(session, prefix)
        if row is None:
            row = NumberSequence(prefix=prefix, last_number=floor)
            session.add(row)
            session.flush()
        row.last_number = NumberSequence.last_number + 1  # type: ignore[assignment]
        row.touch()
        session.add(row)
        session.flush()
        session.refresh(row)
        if row.last_number <= floor:
            row.last_number = floor + 1
            session.add(row)
            session.flush()
    except IntegrityError:
        raise
    except SQLAlchemyError as exc:
        raise NumberAllocationError(
            "Could not allocate an invoice number", {"prefix": prefix}
        ) from exc

    number = format_invoice_number(abbreviation, year_month_token(issue_date), row.last_number, brand, digits)
    logger.debug("Allocated invoice number %s", number)
    return number
