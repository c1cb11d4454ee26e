"""
Epoch clock adapter.

This module is intentionally small and pure:
- The functional core converts timestamps into whole elapsed periods.
- The imperative shell is responsible for reading the wall clock.
"""

from __future__ import annotations

import time
from dataclasses import dataclass


def elapsed_periods(genesis_time: int, period_length: int, now: int) -> int:
    """Whole periods since pool genesis: ``floor((now - genesis_time) / period_length)``."""
    if period_length <= 0:
        raise ValueError(f"period_length must be positive: {period_length}")
    if now < genesis_time:
        raise ValueError(f"clock is before pool genesis: now={now} genesis={genesis_time}")
    return (now - genesis_time) // period_length


class SystemClock:
    """Wall-clock source in whole unix seconds."""

    def now(self) -> int:
        return int(time.time())


@dataclass
class FixedClock:
    """Manually driven clock for replays and tests."""

    timestamp: int = 0

    def now(self) -> int:
        return self.timestamp

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError(f"cannot move clock backwards: {seconds}")
        self.timestamp += seconds
        return self.timestamp
