from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.utcnow()


def today() -> date:
    """Calendar date used for membership expiry decisions."""
    return date.today()


def parse_iso_date(value) -> Optional[date]:
    """
    Parse a YYYY-MM-DD string (or a date/datetime) into a date.

    - None / "" -> None
    - "2026-05-01T00:00:00Z" style values keep only the date part
    Raises ValueError on anything else.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    if not s:
        return None
    if "T" in s:
        s = s.split("T", 1)[0]
    # fromisoformat also takes "20260501" on newer Pythons; only the dashed form is valid here
    if len(s) != 10:
        raise ValueError(f"Invalid date: {s!r}")
    return datetime.strptime(s, "%Y-%m-%d").date()


def parse_month(value: Optional[str]) -> tuple[datetime, datetime]:
    """
    Turn "YYYY-MM" into a [start, end) pair of naive datetimes.

    None / "" means the current month in UTC, matching utcnow() stamps.
    """
    if value:
        year_s, _, month_s = value.strip().partition("-")
        start = datetime(int(year_s), int(month_s), 1)
    else:
        now = utcnow()
        start = datetime(now.year, now.month, 1)
    if start.month == 12:
        end = datetime(start.year + 1, 1, 1)
    else:
        end = datetime(start.year, start.month + 1, 1)
    return start, end


def month_label(start: datetime) -> str:
    return start.strftime("%Y-%m")


def days_from_today(days: int) -> date:
    return today() + timedelta(days=days)


def to_iso_date(value: Optional[date]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")
