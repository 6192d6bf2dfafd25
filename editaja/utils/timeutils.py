"""Date helpers shared by the Firestore-backed modules.

Firestore hands back timezone-aware datetimes while the local store may hold
ISO strings, so everything is normalised to aware UTC before comparing.
"""

from datetime import date, datetime, timezone
from typing import Any, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_datetime(value: Any) -> Optional[datetime]:
    """Coerce a stored timestamp into an aware UTC datetime (or None)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)):
        # epoch milliseconds, as written by browser clients
        dt = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def today_key(now: Optional[datetime] = None) -> str:
    """UTC calendar day as YYYY-MM-DD."""
    return (now or utcnow()).strftime("%Y-%m-%d")


def start_of_day(now: Optional[datetime] = None) -> datetime:
    now = now or utcnow()
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def isoformat(value: Any) -> Optional[str]:
    dt = to_datetime(value)
    return dt.isoformat() if dt else None
