"""Composition of the three transition steps.

Every action on a participant (stake, unstake, harvest) runs the same cycle::

    settle(shares, total -> total)               # pay out everything owed
    withdraw(shares, total -> total - shares)    # detach old shares
    deposit(next_shares, detached -> detached + next_shares)

A harvest is the cycle with ``next_shares == shares``.
"""

from __future__ import annotations

from .errors import AccountingPreconditionError
from .math import to_u64
from .transitions import deposit, settle, withdraw
from .types import Rebalance


def rebalance(
    *,
    shares: int,
    debt: int,
    compensation: int,
    delay: int,
    reward_rate: int,
    total_shares: int,
    next_shares: int,
) -> Rebalance:
    """Move a participant from *shares* to *next_shares* at *delay*.

    Returns the reward to disburse, the participant's new shares/debt with the
    pool's new compensation, and the pool's new total.
    """
    to_u64(next_shares, "next_shares")
    if shares > total_shares:
        raise AccountingPreconditionError(
            f"participant shares exceed pool total: {shares} > {total_shares}"
        )

    settled = settle(shares, debt, compensation, delay, reward_rate, total_shares, total_shares)
    harvested = settled.debt - debt

    detached_total = total_shares - shares
    withdrawn = withdraw(
        settled.shares, settled.debt, settled.compensation,
        delay, reward_rate, total_shares, detached_total,
    )

    next_total = to_u64(detached_total + next_shares, "total_shares")
    deposited = deposit(
        next_shares, withdrawn.debt, withdrawn.compensation,
        delay, reward_rate, detached_total, next_total,
    )
    return Rebalance(harvested=harvested, position=deposited, total_shares=next_total)


def harvest(
    *,
    shares: int,
    debt: int,
    compensation: int,
    delay: int,
    reward_rate: int,
    total_shares: int,
) -> Rebalance:
    """Claim everything owed without changing stake."""
    return rebalance(
        shares=shares,
        debt=debt,
        compensation=compensation,
        delay=delay,
        reward_rate=reward_rate,
        total_shares=total_shares,
        next_shares=shares,
    )
