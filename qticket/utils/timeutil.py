"""Clock helpers shared by stores, sessions and the sweep"""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so legacy and new timestamps compare"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def now_millis(clock: Clock = utcnow) -> int:
    return int(clock().timestamp() * 1000)
