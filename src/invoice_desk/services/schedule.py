"""Monthly generation dates for recurring invoice templates."""
from __future__ import annotations

from datetime import date
from typing import Optional

import pendulum

from ..config import get_settings

MIN_DAY = 1
MAX_DAY = 28


def next_generation_date(day_of_month: int, today: Optional[date] = None) -> date:
    """Return the next date strictly after ``today`` falling on ``day_of_month``.

    Days are capped at 28 so every month has the requested day.
    """

    if not MIN_DAY <= day_of_month <= MAX_DAY:
        raise ValueError(f"day_of_month must be between {MIN_DAY} and {MAX_DAY}, got {day_of_month}")
    if today is None:
        today = pendulum.now(get_settings().timezone).date()
    candidate = pendulum.date(today.year, today.month, day_of_month)
    if candidate <= today:
        candidate = candidate.add(months=1)
    return date(candidate.year, candidate.month, candidate.day)
