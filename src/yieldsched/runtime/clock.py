# src/yieldsched/runtime/clock.py
from __future__ import annotations

"""Logical time source and day classification.

All time values are integer seconds since the Unix epoch. The engine never reads
wall time directly: the executor asks an injected `Clock`, so cooldowns,
accrual and weekend/decay logic can be driven from tests with arbitrary
timestamps.
"""

import threading
import time
from typing import Protocol

from yieldsched.ledger.constants import (
    DAYS_PER_WEEK,
    EPOCH_DAY_OF_WEEK,
    SATURDAY,
    SECONDS_PER_DAY,
    SUNDAY,
)


class Clock(Protocol):
    def now(self) -> int: ...


class SystemClock:
    """Wall-clock time, truncated to whole seconds."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """Settable clock for tests and replay tools."""

    def __init__(self, start: int = 0) -> None:
        self._lock = threading.Lock()
        self._now = int(start)

    def now(self) -> int:
        with self._lock:
            return self._now

    def set(self, ts: int) -> None:
        with self._lock:
            self._now = int(ts)

    def advance(self, seconds: int) -> int:
        with self._lock:
            self._now += int(seconds)
            return self._now


def day_of_week(ts: int) -> int:
    """0 = Sunday .. 6 = Saturday."""
    days = int(ts) // SECONDS_PER_DAY
    return (days + EPOCH_DAY_OF_WEEK) % DAYS_PER_WEEK


def is_weekend(ts: int) -> bool:
    return day_of_week(ts) in (SATURDAY, SUNDAY)


__all__ = ["Clock", "SystemClock", "ManualClock", "day_of_week", "is_weekend"]
