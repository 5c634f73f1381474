"""Wall-clock date and time helpers for appointment slots.

Dates are ``YYYY-MM-DD`` and times are zero-padded 24-hour ``HH:MM`` strings,
local to the clinic. Zero padding makes lexical order equal chronological
order, so times are compared as plain strings.
"""

import re
from datetime import date, timedelta

DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")
TIME_PATTERN = re.compile(r"([01]\d|2[0-3]):[0-5]\d")


def is_valid_date(value: str | None) -> bool:
    """Return True for a real calendar date in ``YYYY-MM-DD`` form."""
    if not value or not DATE_PATTERN.fullmatch(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def is_valid_time(value: str | None) -> bool:
    """Return True for a 24-hour ``HH:MM`` time."""
    return bool(value) and TIME_PATTERN.fullmatch(value) is not None


def overlaps(start_a: str, end_a: str, start_b: str, end_b: str) -> bool:
    """
    Half-open interval overlap test.

    ``09:00-10:00`` and ``10:00-11:00`` do not overlap.
    """
    return start_a < end_b and start_b < end_a


def add_days(value: str, days: int) -> str:
    """Shift a ``YYYY-MM-DD`` date by whole calendar days."""
    return (date.fromisoformat(value) + timedelta(days=days)).isoformat()
