"""
Time helpers.

All engine timestamps are timezone-aware UTC. They are persisted as
fixed-width text so SQLite can compare them lexicographically.
"""

from datetime import datetime, timezone
from typing import Callable, Optional


DB_TIME_FORMAT = "%Y-%m-%d %H:%M:%S.%f"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current UTC time (default engine clock)."""
    return datetime.now(timezone.utc)


def to_db_time(value: Optional[datetime]) -> Optional[str]:
    """Format a datetime for storage. Naive values are treated as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(DB_TIME_FORMAT)


def from_db_time(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored timestamp back into an aware UTC datetime."""
    if value is None:
        return None
    return datetime.strptime(value, DB_TIME_FORMAT).replace(tzinfo=timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_clock(clock: Clock) -> Clock:
    """Wrap a clock so every reading is aware UTC."""
    def _now() -> datetime:
        return as_utc(clock())
    return _now
