"""
Business date handling.

Purchases and day-end reports are keyed by a calendar day in the store's
local sense, never by an instant.  Callers send ``YYYY-MM-DD`` strings; the
kernel stores ``date`` values.  When an instant is unavoidable (for example
sorting against timestamps) the canonical instant of a business day is noon
UTC, which lands on the same calendar day in every timezone from UTC-11 to
UTC+11.
"""

import re
from datetime import date, datetime, time, timezone

from inventory_kernel.exceptions import InvalidDateError

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

BUSINESS_DAY_ANCHOR = time(12, 0, tzinfo=timezone.utc)


def parse_business_date(value: str | date) -> date:
    """
    Parse a ``YYYY-MM-DD`` string into a date.

    ``date`` instances pass through unchanged (``datetime`` is rejected since
    its calendar day depends on a timezone).

    Raises:
        InvalidDateError: Wrong shape or impossible calendar date.
    """
    if isinstance(value, datetime):
        raise InvalidDateError(value.isoformat())
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _DATE_PATTERN.match(value):
        raise InvalidDateError(str(value))
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise InvalidDateError(value) from exc


def business_date_instant(value: date) -> datetime:
    """Canonical instant (noon UTC) of a business date."""
    return datetime.combine(value, BUSINESS_DAY_ANCHOR)
