"""Pure fixed-point arithmetic for the farming reward engine.

Every function is stateless and operates on plain Python ints, which are
arbitrary precision, so products are formed in full before any division.
Results are range-checked back into their storage width afterwards.

Rounding is Python's ``//`` (floor toward -inf). Every value that reaches
floor division here has a non-negative numerator in a consistent pool, so
floor and truncation agree.
"""

from __future__ import annotations

from .errors import NumericOverflowError

# Reward-per-share values are scaled by 1e18.
PRECISION: int = 1_000_000_000_000_000_000

# Storage widths
U64_MAX: int = (1 << 64) - 1
U128_MAX: int = (1 << 128) - 1
I128_MIN: int = -(1 << 127)
I128_MAX: int = (1 << 127) - 1


# -- Width checks ------------------------------------------------------------

def _require_int(value: object, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    return value


def to_u64(value: int, name: str = "value") -> int:
    """Range-check *value* into u64."""
    _require_int(value, name)
    if value < 0 or value > U64_MAX:
        raise NumericOverflowError(f"{name} does not fit u64: {value}")
    return value


def to_u128(value: int, name: str = "value") -> int:
    """Range-check *value* into u128."""
    _require_int(value, name)
    if value < 0 or value > U128_MAX:
        raise NumericOverflowError(f"{name} does not fit u128: {value}")
    return value


def to_i128(value: int, name: str = "value") -> int:
    """Range-check *value* into i128."""
    _require_int(value, name)
    if value < I128_MIN or value > I128_MAX:
        raise NumericOverflowError(f"{name} does not fit i128: {value}")
    return value


# -- Fraction calculator -----------------------------------------------------

def fraction(reward_rate: int, total_shares: int) -> int:
    """Scaled reward per share: ``floor(reward_rate * 1e18 / total_shares)``.

    An empty pool (``total_shares == 0``) yields the zero ratio rather than an
    error, so settling against an empty pool pays nothing.
    """
    to_u64(reward_rate, "reward_rate")
    to_u64(total_shares, "total_shares")
    if total_shares == 0:
        return 0
    return (reward_rate * PRECISION) // total_shares


def accrued_debt(ratio: int, delay: int, compensation: int, shares: int) -> int:
    """Total reward credited to *shares* after *delay* periods.

    ``floor((ratio * delay + compensation) * shares / 1e18)``, range-checked
    into u128.
    """
    return to_u128(((ratio * delay + compensation) * shares) // PRECISION, "debt")


def per_share_accumulator(ratio: int, delay: int, compensation: int) -> int:
    """Scaled reward credited to one share since genesis: ``ratio * delay + compensation``."""
    return ratio * delay + compensation
