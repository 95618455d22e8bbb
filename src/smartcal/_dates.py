"""Calendar-date normalization shared by the models and the engine."""

from __future__ import annotations

from datetime import date, datetime
from typing import Union

from dateutil.parser import isoparse

from .exceptions import InvalidDateError

DateLike = Union[date, datetime, str]


def to_calendar_date(value: DateLike) -> date:
    """Reduce a date, datetime or ISO-8601 string to a pure calendar date.

    Time-of-day and tzinfo are discarded; the wall-clock date is kept, so
    ``2024-01-10T23:30:00-05:00`` is January 10th, not the UTC day.

    Raises:
        InvalidDateError: If a string cannot be parsed as an ISO date, or the
            value is not a date-like object at all.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return isoparse(value.strip()).date()
        except (ValueError, OverflowError) as err:
            raise InvalidDateError(f"Invalid calendar date: {value!r}") from err
    raise InvalidDateError(f"Expected a date or ISO string, got {type(value).__name__}")


def format_date(value: date) -> str:
    """Format a calendar date as the persisted ``YYYY-MM-DD`` string."""
    return value.isoformat()
