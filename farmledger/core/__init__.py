"""
Core farming algorithms
"""

from .epoch import FixedClock, SystemClock, elapsed_periods
from .farming import (
    PRECISION,
    Position,
    Rebalance,
    deposit,
    fraction,
    harvest,
    rebalance,
    settle,
    withdraw,
)

__all__ = [
    "PRECISION",
    "Position",
    "Rebalance",
    "deposit",
    "fraction",
    "harvest",
    "rebalance",
    "settle",
    "withdraw",
    "FixedClock",
    "SystemClock",
    "elapsed_periods",
]
