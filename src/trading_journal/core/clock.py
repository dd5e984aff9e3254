"""Millisecond time sources for slice freshness.

The store stamps every write with ``clock.now_ms()`` and compares those
stamps on ``is_stale``.  Production code uses :class:`WallClock`; tests
and replays drive a :class:`ManualClock` so TTL boundaries are exact.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Protocol


class IClock(Protocol):
    def now_ms(self) -> int:
        """Milliseconds since the Unix epoch."""
        ...


class WallClock:
    """System time."""

    def now_ms(self) -> int:
        return time.time_ns() // 1_000_000


class ManualClock:
    """Clock frozen at a fixed instant until moved forward.

    Parameters
    ----------
    start : datetime | None
        Initial instant (timezone-aware).  Defaults to 2024-01-01 UTC.
    """

    def __init__(self, start: datetime | None = None) -> None:
        start = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
        self._ms = int(start.timestamp() * 1000)

    def now_ms(self) -> int:
        return self._ms

    def now(self) -> datetime:
        return datetime.fromtimestamp(self._ms / 1000, tz=timezone.utc)

    def advance_ms(self, ms: int) -> None:
        if ms < 0:
            raise ValueError(f"ManualClock only moves forward, got {ms} ms")
        self._ms += ms

    def set_time(self, t: datetime) -> None:
        target = int(t.timestamp() * 1000)
        if target < self._ms:
            raise ValueError(f"ManualClock cannot go back to {t.isoformat()}")
        self._ms = target
