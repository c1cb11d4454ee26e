"""Exception types for the farming reward engine.

Every transition function raises one of these instead of returning a partial
result. The instruction processor maps ``code`` onto ``FarmTxResult.code``.
"""

from __future__ import annotations


class FarmingError(Exception):
    """Base class for reward-accounting failures."""

    code: str = "farming_error"


class AccountingPreconditionError(FarmingError):
    """Raised when total-share ordering shows the steps were called out of order."""

    code = "accounting_precondition"


class NonMonotonicDebtError(FarmingError):
    """Raised when a recomputed debt falls below the recorded debt."""

    code = "non_monotonic_debt"

    def __init__(self, recorded: int, computed: int) -> None:
        self.recorded = recorded
        self.computed = computed
        super().__init__(f"debt would decrease: recorded={recorded} computed={computed}")


class NumericOverflowError(FarmingError):
    """Raised when a value does not fit its storage width."""

    code = "numeric_overflow"


class StaleDebtError(FarmingError):
    """Raised when Withdraw-Shares runs without a matching Settle first."""

    code = "stale_debt"

    def __init__(self, recorded: int, expected: int) -> None:
        self.recorded = recorded
        self.expected = expected
        super().__init__(f"participant not settled: debt={recorded} expected={expected}")


class PoolInvariantError(FarmingError):
    """Raised when a pool's post-state violates one or more invariants."""

    code = "invariant"

    def __init__(self, pool_id: str, violations: list[str]) -> None:
        self.pool_id = pool_id
        self.violations = violations
        super().__init__(f"pool {pool_id} invariant violations: {', '.join(violations)}")
