from datetime import date, datetime, timezone
from typing import Callable

# Every timestamp in neowatch is naive UTC, matching what the DateTime columns store.
Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today(clock: Clock = utcnow) -> date:
    return clock().date()
