"""Business-day helpers.

Timestamps are stored in UTC. A business day is the calendar date in the
configured ``TIMEZONE``; these helpers convert between the two.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from stockrecon.core.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _zone(tz_name: Optional[str] = None) -> ZoneInfo:
    return ZoneInfo(tz_name or settings.timezone)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as returned by SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def day_window(day: date, tz_name: Optional[str] = None) -> Tuple[datetime, datetime]:
    """Return the [start, end) UTC instants of a business day."""
    zone = _zone(tz_name)
    start = datetime.combine(day, time.min, tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def business_date(value: Optional[datetime] = None, tz_name: Optional[str] = None) -> date:
    """Business date of an instant (defaults to now)."""
    value = as_utc(value) if value is not None else utcnow()
    return value.astimezone(_zone(tz_name)).date()
