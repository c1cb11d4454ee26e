"""`farming`: pure-Python reward-accounting engine for staking pools.

Participants stake shares into a pool whose reward stream is released at a
fixed ``reward_rate`` per elapsed period. This package computes what a
participant may withdraw and how the bookkeeping changes:
- deterministic, integer-only transitions (ratios scaled by 1e18),
- immutable values (frozen dataclasses),
- fail-closed: every violation raises a ``FarmingError``.

Public API:
- `fraction(reward_rate, total_shares) -> int`
- `settle(...)`, `withdraw(...)`, `deposit(...) -> Position`
- `rebalance(...)`, `harvest(...) -> Rebalance`
"""

from .errors import (
    AccountingPreconditionError,
    FarmingError,
    NonMonotonicDebtError,
    NumericOverflowError,
    PoolInvariantError,
    StaleDebtError,
)
from .invariants import check_pool
from .math import PRECISION, fraction
from .patterns import harvest, rebalance
from .transitions import deposit, settle, withdraw
from .types import Position, Rebalance

__all__ = [
    "PRECISION",
    "fraction",
    "settle",
    "withdraw",
    "deposit",
    "rebalance",
    "harvest",
    "check_pool",
    "Position",
    "Rebalance",
    "FarmingError",
    "AccountingPreconditionError",
    "NonMonotonicDebtError",
    "NumericOverflowError",
    "PoolInvariantError",
    "StaleDebtError",
]
