"""
Utility helpers shared across routers/services.
"""

from datetime import datetime, timezone
from typing import Optional


def to_datetime(timestamp: float) -> datetime:
    """UNIX seconds -> aware UTC datetime."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def to_timestamp(value: datetime | None) -> float:
    """
    Aware or naive datetime -> UNIX seconds.

    SQLite hands back naive datetimes; they are stored as UTC, so read them as UTC
    instead of local time.
    """
    if value is None:
        return 0.0
    normalized = value.astimezone(timezone.utc) if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return normalized.timestamp()


def to_millis(value: Optional[datetime]) -> Optional[int]:
    if value is None:
        return None
    return int(to_timestamp(value) * 1000)
