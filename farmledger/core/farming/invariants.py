"""Consistency checks for a pool and its participants.

Each function returns True when the invariant holds, and ``check_pool()``
returns the list of violated invariant ids (empty = all pass). The
instruction processor runs ``check_pool()`` before committing a transaction.
"""

from __future__ import annotations

from typing import Iterable

from .math import I128_MAX, I128_MIN, U64_MAX, U128_MAX


def inv_total_matches_participants(total_shares: int, participant_shares: Iterable[int]) -> bool:
    return total_shares == sum(participant_shares)


def inv_total_fits_u64(total_shares: int) -> bool:
    return 0 <= total_shares <= U64_MAX


def inv_compensation_fits_i128(compensation: int) -> bool:
    return I128_MIN <= compensation <= I128_MAX


def inv_empty_pool_uncompensated(total_shares: int, compensation: int) -> bool:
    if total_shares != 0:
        return True
    return compensation == 0


def inv_debts_fit_u128(participant_debts: Iterable[int]) -> bool:
    return all(0 <= d <= U128_MAX for d in participant_debts)


def check_pool(
    *,
    total_shares: int,
    compensation: int,
    participant_shares: Iterable[int],
    participant_debts: Iterable[int],
) -> list[str]:
    """Return ids of all violated invariants."""
    violations: list[str] = []
    if not inv_total_matches_participants(total_shares, list(participant_shares)):
        violations.append("total_matches_participants")
    if not inv_total_fits_u64(total_shares):
        violations.append("total_fits_u64")
    if not inv_compensation_fits_i128(compensation):
        violations.append("compensation_fits_i128")
    if not inv_empty_pool_uncompensated(total_shares, compensation):
        violations.append("empty_pool_uncompensated")
    if not inv_debts_fit_u128(participant_debts):
        violations.append("debts_fit_u128")
    return violations
