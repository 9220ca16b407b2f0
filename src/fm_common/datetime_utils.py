"""UTC datetime utilities and the millisecond host clock."""

import time
from collections.abc import Callable
from datetime import datetime, timezone

Clock = Callable[[], int]


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def now_ms() -> int:
    """Wall-clock milliseconds since the epoch; the default engine clock."""
    return time.time_ns() // 1_000_000
