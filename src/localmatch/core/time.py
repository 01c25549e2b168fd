"""
Time sources and timezone normalization.

Matching uses two kinds of time:
- wall-clock milliseconds, for location timestamps and cache TTL checks
- an optional *local* datetime, for time-of-day and traffic adjustments

Both come from an injected `ClockContext` instead of reading the host clock
inside business logic. A clock may report that it has no reliable local time
(`local_now()` returns None); time-sensitive multipliers then fall back to a
neutral 1.0 so results stay deterministic across environments.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from zoneinfo import ZoneInfo


def ensure_tz(dt: datetime, timezone: str) -> datetime:
    """Ensure `dt` has tzinfo; attach `timezone` if naive."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=ZoneInfo(timezone))
    return dt


def parse_datetime(value: str, timezone: str) -> datetime:
    """Parse ISO-8601 datetime string and ensure tzinfo is present.

    Accepts a trailing `Z` (UTC). Naive values get `timezone` attached.
    """
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    return ensure_tz(dt, timezone)


class ClockContext(Protocol):
    def now_millis(self) -> int:
        """Wall-clock time in Unix epoch milliseconds."""
        ...

    def local_now(self) -> datetime | None:
        """Current local datetime, or None when no reliable local time exists."""
        ...


class SystemClock:
    """Host clock in a configured IANA timezone."""

    def __init__(self, timezone: str):
        self._tz = ZoneInfo(timezone)

    def now_millis(self) -> int:
        return int(time.time() * 1000)

    def local_now(self) -> datetime | None:
        return datetime.now(self._tz)


@dataclass
class FixedClock:
    """A manually controlled clock, mainly for tests and reproducible CLI runs."""

    millis: int = 0
    local: datetime | None = None

    def now_millis(self) -> int:
        return int(self.millis)

    def local_now(self) -> datetime | None:
        return self.local

    def advance(self, millis: int) -> None:
        self.millis += int(millis)
