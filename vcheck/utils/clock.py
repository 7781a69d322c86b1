from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from vcheck.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (e.g. read back from SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_day(moment: datetime, tz_name: str | None = None) -> date:
    """Calendar day of ``moment`` in the configured attendance timezone."""
    return as_utc(moment).astimezone(ZoneInfo(tz_name or settings.TIMEZONE)).date()


def hours_between(start: datetime, end: datetime) -> float:
    delta = as_utc(end) - as_utc(start)
    return round(delta.total_seconds() / 3600, 2)
