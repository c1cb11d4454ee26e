"""Value types for the farming reward engine.

All types are frozen dataclasses (immutable).

Units/conventions:
- ``shares`` are stake units (u64).
- ``debt`` is cumulative reward units already credited (u128).
- ``compensation`` is a signed reward-per-share correction scaled by 1e18 (i128).
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Position:
    """Bookkeeping triple produced by every transition."""

    shares: int
    debt: int
    compensation: int


@dataclass(frozen=True)
class Rebalance:
    """Outcome of one Settle -> Withdraw-Shares -> Deposit-Shares cycle."""

    harvested: int          # reward units to disburse to the participant
    position: Position      # participant shares/debt + new pool compensation
    total_shares: int       # pool total after the cycle
