from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

_ONE_MS = timedelta(milliseconds=1)


def utc_now() -> datetime:
    """Current instant in UTC, truncated to millisecond precision.

    Note: Wrapped so tests can inject a fixed clock.
    """
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def ensure_utc(value: datetime) -> datetime:
    """Naive datetimes are treated as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    text = ensure_utc(value).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return ensure_utc(datetime.fromisoformat(value))


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def local_date(instant: datetime, tz_name: str) -> str:
    """Calendar date (YYYY-MM-DD) of an instant in the given timezone."""
    return ensure_utc(instant).astimezone(ZoneInfo(tz_name)).strftime("%Y-%m-%d")


def local_clock(instant: datetime, tz_name: str) -> str:
    return ensure_utc(instant).astimezone(ZoneInfo(tz_name)).strftime("%H:%M")


def ms_between(start: datetime, end: datetime) -> int:
    """Signed milliseconds from start to end."""
    return (ensure_utc(end) - ensure_utc(start)) // _ONE_MS
