"""Time helpers. All stored datetimes are naive UTC (`NaiveDatetime` columns)."""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(dt: datetime) -> datetime:
    """Normalize datetime for TIMESTAMP WITHOUT TIME ZONE columns.

    If an aware datetime is provided, convert to UTC and drop tzinfo.
    If naive, assume it's already in UTC.
    """
    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt
