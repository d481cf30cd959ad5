from datetime import datetime, timezone
from typing import Protocol


def to_utc_naive(value: datetime) -> datetime:
    """Normalize a datetime to the naive UTC form stored in the database"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock in naive UTC"""

    def now(self) -> datetime:
        return utcnow()
