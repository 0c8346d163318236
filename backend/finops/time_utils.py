from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional


# Timestamps are stored UTC-naive and rendered with a trailing "Z".


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _is_date_only(text: str) -> bool:
    return len(text) == 10 and text[4] == "-" and text[7] == "-"


def parse_iso_datetime(value: Optional[str], *, end_of_day: bool = False) -> Optional[datetime]:
    """
    Parse a query or body timestamp into UTC-naive.

    - None / "" -> None
    - "2025-03-01" is midnight UTC, or the last microsecond of that day when
      end_of_day is set (inclusive upper bounds for ?end=)
    - "...Z" and "+HH:MM" offsets are converted to UTC
    Raises ValueError on anything else.
    """
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None

    if _is_date_only(text):
        day = date.fromisoformat(text)
        return datetime.combine(day, time.max if end_of_day else time.min)

    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.replace(microsecond=0).isoformat() + "Z"


def month_key(dt: datetime) -> str:
    """Calendar bucket label used by monthly reports ("YYYY-MM")."""
    return f"{dt.year:04d}-{dt.month:02d}"


def lookback_start(window: Optional[timedelta], now: Optional[datetime] = None) -> Optional[datetime]:
    """Start of a trailing report window; None means all time."""
    if window is None:
        return None
    return (now or utcnow()) - window
