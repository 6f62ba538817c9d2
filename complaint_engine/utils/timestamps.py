"""
Timestamp helpers shared by the escalation, statistics and filter services.

CRITICAL: Every datetime leaving this module is timezone-aware (UTC) so that
age arithmetic and comparisons never mix naive and aware values.
"""

import math
from datetime import datetime, timezone
from typing import Any, Optional

SECONDS_PER_DAY = 24 * 60 * 60


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and normalize aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse the timestamp shapes found in exported complaint records.

    Accepts datetimes, ISO-8601 strings (with or without a trailing Z),
    epoch milliseconds and objects exposing ``timestamp()``.

    Returns:
        Timezone-aware UTC datetime, or None when the value is missing or
        cannot be parsed. Never raises.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        # Exports serialize JavaScript dates as epoch milliseconds
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return ensure_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError:
            return None
    if hasattr(value, "timestamp"):
        try:
            return datetime.fromtimestamp(value.timestamp(), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError, OSError):
            return None
    return None


def days_open(created_at: Optional[datetime], now: datetime) -> Optional[int]:
    """
    Ceiling of elapsed days between creation and ``now``.

    A creation time in the future (clock skew) yields 0, never a negative
    number. Returns None when ``created_at`` is unknown.
    """
    if created_at is None:
        return None
    elapsed = (ensure_utc(now) - ensure_utc(created_at)).total_seconds()
    if elapsed <= 0:
        return 0
    return math.ceil(elapsed / SECONDS_PER_DAY)
