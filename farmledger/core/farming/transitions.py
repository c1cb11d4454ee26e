"""The three transition steps of the farming reward engine.

Each function takes the participant's bookkeeping, the pool's compensation,
the elapsed ``delay`` in periods, the pool's ``reward_rate`` and the pool's
total shares before (``current_total_shares``) and after
(``next_total_shares``) the step. Each returns a new ``Position`` or raises a
``FarmingError``; none of them touches shared state.

Any change of stake (including none, for a pure claim) is expressed as
``settle`` then ``withdraw`` then ``deposit``; see ``patterns.rebalance``.
"""

from __future__ import annotations

import logging

from .errors import AccountingPreconditionError, NonMonotonicDebtError, StaleDebtError
from .math import accrued_debt, fraction, to_i128, to_u128, to_u64
from .types import Position

logger = logging.getLogger(__name__)


def _check_inputs(
    shares: int,
    debt: int,
    compensation: int,
    delay: int,
    reward_rate: int,
    current_total_shares: int,
    next_total_shares: int,
) -> None:
    to_u64(shares, "shares")
    to_u128(debt, "debt")
    to_i128(compensation, "compensation")
    to_u64(delay, "delay")
    to_u64(reward_rate, "reward_rate")
    to_u64(current_total_shares, "current_total_shares")
    to_u64(next_total_shares, "next_total_shares")


def settle(
    shares: int,
    debt: int,
    compensation: int,
    delay: int,
    reward_rate: int,
    current_total_shares: int,
    next_total_shares: int,
) -> Position:
    """Bring the participant's debt up to date with everything owed at *delay*.

    The caller disburses ``result.debt - debt``.

    Raises:
        AccountingPreconditionError: the pool total changes across this step.
        NonMonotonicDebtError: the recomputed debt is below the recorded one.
    """
    _check_inputs(shares, debt, compensation, delay, reward_rate, current_total_shares, next_total_shares)
    if current_total_shares != next_total_shares:
        raise AccountingPreconditionError(
            f"settle must not change total shares: {current_total_shares} -> {next_total_shares}"
        )

    ratio = fraction(reward_rate, current_total_shares)
    new_debt = accrued_debt(ratio, delay, compensation, shares)
    if new_debt < debt:
        logger.warning("settle: debt would decrease (recorded=%d computed=%d)", debt, new_debt)
        raise NonMonotonicDebtError(debt, new_debt)
    return Position(shares=shares, debt=new_debt, compensation=compensation)


def withdraw(
    shares: int,
    debt: int,
    compensation: int,
    delay: int,
    reward_rate: int,
    current_total_shares: int,
    next_total_shares: int,
) -> Position:
    """Detach the participant's shares from the pool total.

    Only legal right after ``settle``: the recorded debt must equal the debt
    recomputed at *delay*. Returns zero shares and zero debt together with the
    corrected pool compensation.

    Raises:
        AccountingPreconditionError: the pool total would grow.
        StaleDebtError: the participant was not settled at *delay*.
    """
    _check_inputs(shares, debt, compensation, delay, reward_rate, current_total_shares, next_total_shares)
    if next_total_shares > current_total_shares:
        raise AccountingPreconditionError(
            f"withdraw cannot grow total shares: {current_total_shares} -> {next_total_shares}"
        )

    current_ratio = fraction(reward_rate, current_total_shares)
    next_ratio = fraction(reward_rate, next_total_shares)
    expected_debt = accrued_debt(current_ratio, delay, compensation, shares)
    if debt != expected_debt:
        logger.warning("withdraw: stale debt (recorded=%d expected=%d)", debt, expected_debt)
        raise StaleDebtError(debt, expected_debt)

    if next_ratio == 0:
        new_compensation = 0
    else:
        logger.debug(
            "withdraw: compensation=%d current_ratio=%d next_ratio=%d",
            compensation, current_ratio, next_ratio,
        )
        new_compensation = compensation - (next_ratio - current_ratio) * delay
    return Position(shares=0, debt=0, compensation=to_i128(new_compensation, "compensation"))


def deposit(
    shares: int,
    debt: int,
    compensation: int,
    delay: int,
    reward_rate: int,
    current_total_shares: int,
    next_total_shares: int,
) -> Position:
    """Attach *shares* to the pool total, starting from a clean slate.

    The returned debt marks everything accrued up to *delay* as already
    credited, so only future periods pay out on these shares.

    Raises:
        AccountingPreconditionError: the pool total would shrink, or the
            participant still carries debt (no preceding ``withdraw``).
    """
    _check_inputs(shares, debt, compensation, delay, reward_rate, current_total_shares, next_total_shares)
    if current_total_shares > next_total_shares:
        raise AccountingPreconditionError(
            f"deposit cannot shrink total shares: {current_total_shares} -> {next_total_shares}"
        )
    if debt != 0:
        raise AccountingPreconditionError(f"deposit requires zero debt, got {debt}")

    current_ratio = fraction(reward_rate, current_total_shares)
    next_ratio = fraction(reward_rate, next_total_shares)
    if current_ratio == 0:
        new_compensation = 0
    else:
        logger.debug(
            "deposit: compensation=%d current_ratio=%d next_ratio=%d",
            compensation, current_ratio, next_ratio,
        )
        new_compensation = compensation + (current_ratio - next_ratio) * delay
    new_compensation = to_i128(new_compensation, "compensation")
    new_debt = accrued_debt(next_ratio, delay, new_compensation, shares)
    return Position(shares=shares, debt=new_debt, compensation=new_compensation)
