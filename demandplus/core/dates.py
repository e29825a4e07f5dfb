"""Calendar-date helpers.

Dates are handled as literal calendar dates: ``"2025-03-10"`` is the 10th of
March wherever the application runs. No timezone conversion happens.
"""
from datetime import date, datetime
from typing import Optional, Union

DateLike = Union[str, date, datetime, None]


def parse_calendar_date(value: DateLike) -> Optional[date]:
    """Parses a ``YYYY-MM-DD`` value (or the date part of an ISO timestamp).

    Returns ``None`` for empty or unparseable input instead of raising.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    # "2025-03-10T14:00:00.000Z" -> "2025-03-10", components taken literally
    text = text.split("T", 1)[0].split(" ", 1)[0]
    try:
        return datetime.strptime(text, "%Y-%m-%d").date()
    except ValueError:
        return None


def as_calendar_date(value: Union[date, datetime]) -> date:
    """Drops the time of day."""
    if isinstance(value, datetime):
        return value.date()
    return value


def days_between(start: Union[date, datetime], end: Union[date, datetime]) -> int:
    """Number of calendar days from ``start`` to ``end`` (negative if ``end`` is earlier)."""
    return (as_calendar_date(end) - as_calendar_date(start)).days


def format_brazilian_date(value: DateLike) -> str:
    parsed = parse_calendar_date(value)
    if parsed is None:
        return "-"
    return parsed.strftime('%d/%m/%Y')
