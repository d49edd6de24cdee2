"""
Date helpers shared by the extractor, the operators and the serializer.

All datetimes produced here are timezone-aware UTC. Naive inputs are taken
to be UTC, so a stored ``2024-06-15`` and a rule value ``2024-06-15`` always
compare equal.
"""

import calendar
import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

# Text is only treated as a date when it starts with an ISO calendar date
_ISO_DATE_PREFIX = re.compile(r'^\d{4}-\d{2}-\d{2}')
# fromisoformat before 3.11 only takes 3 or 6 fractional digits
_FRACTION = re.compile(r'(T\d{2}:\d{2}:\d{2})\.(\d+)', re.IGNORECASE)


def _fraction_to_micros(match) -> str:
    return f"{match.group(1)}.{match.group(2)[:6].ljust(6, '0')}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_date(value: Any) -> Optional[datetime]:
    """
    Parse a stored or user-supplied date.

    Accepts datetimes, dates, epoch milliseconds and ISO-8601 text
    (``2024-06-15``, ``2024-06-15T10:00:00Z``, ...). Returns None when the
    value is absent or cannot be read as a date.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not _ISO_DATE_PREFIX.match(text):
            return None
        if text.endswith('Z') or text.endswith('z'):
            text = text[:-1] + '+00:00'
        text = _FRACTION.sub(_fraction_to_micros, text, count=1)
        try:
            return _as_utc(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def looks_like_date(value: str) -> bool:
    return bool(_ISO_DATE_PREFIX.match(value.strip()))


def to_date_string(value: datetime) -> str:
    """Format as the ``YYYY-MM-DD`` string used in persisted rule groups."""
    return _as_utc(value).strftime('%Y-%m-%d')


def _shift_months(moment: datetime, months: int) -> datetime:
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return datetime(year, month, day, tzinfo=timezone.utc)


def compute_date_threshold(amount: float, unit: str, now: datetime) -> datetime:
    """
    Cutoff for the relative-date operators: ``now - amount * unit``.

    ``days`` and ``weeks`` subtract an exact duration; ``months`` and
    ``years`` step back on the calendar to midnight of the same day (clamped
    to the end of shorter months). Unknown units count as days.
    """
    now = _as_utc(now)
    unit = (unit or 'days').lower()
    if unit == 'weeks':
        return now - timedelta(weeks=amount)
    if unit == 'months':
        return _shift_months(now, int(amount))
    if unit == 'years':
        return _shift_months(now, int(amount) * 12)
    return now - timedelta(days=amount)


def start_of_period(period: str, now: datetime) -> datetime:
    """Midnight starting the current ISO week, month or (default) year."""
    now = _as_utc(now)
    period = (period or 'year').lower()
    midnight = datetime(now.year, now.month, now.day, tzinfo=timezone.utc)
    if period == 'week':
        return midnight - timedelta(days=now.weekday())
    if period == 'month':
        return midnight.replace(day=1)
    return midnight.replace(month=1, day=1)
