"""
Token custody ledger.

Implements TokenLedger[Account, AssetId] -> Amount. This is the in-process
stand-in for the token transfer service: the instruction processor moves
stake and reward tokens with ``transfer``; the reward engine never touches it.
"""

from __future__ import annotations

from typing import Dict, Tuple


# Type aliases
Account = str  # owner pubkey or derived custody account name
AssetId = str
Amount = int  # Non-negative integer (arbitrary precision)


def pool_treasury_account(pool_id: str) -> Account:
    """Custody account holding a pool's staked tokens."""
    return f"pool:{pool_id}:treasury"


def pool_reward_account(pool_id: str) -> Account:
    """Custody account holding a pool's undistributed reward tokens."""
    return f"pool:{pool_id}:rewards"


class TokenLedger:
    """
    Balance table mapping (account, asset) -> amount.

    Zero balances are dropped to keep the table sparse. Iteration order is not
    significant; snapshots sort keys explicitly.
    """

    def __init__(self) -> None:
        self._balances: Dict[Tuple[Account, AssetId], Amount] = {}

    def get(self, account: Account, asset: AssetId) -> Amount:
        """Balance for (account, asset). Returns 0 if not found."""
        return self._balances.get((account, asset), 0)

    def _set(self, account: Account, asset: AssetId, amount: Amount) -> None:
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        if amount == 0:
            self._balances.pop((account, asset), None)
        else:
            self._balances[(account, asset)] = amount

    def credit(self, account: Account, asset: AssetId, amount: Amount) -> None:
        """Add a non-negative *amount* to (account, asset)."""
        if amount < 0:
            raise ValueError(f"Credit must be non-negative: {amount}")
        self._set(account, asset, self.get(account, asset) + amount)

    def debit(self, account: Account, asset: AssetId, amount: Amount) -> None:
        """
        Remove a non-negative *amount* from (account, asset).

        Raises:
            ValueError: If amount is negative or the balance is insufficient
        """
        if amount < 0:
            raise ValueError(f"Debit must be non-negative: {amount}")
        current = self.get(account, asset)
        if current < amount:
            raise ValueError(
                f"Insufficient balance for {account}: {current} < {amount} ({asset})"
            )
        self._set(account, asset, current - amount)

    def transfer(self, src: Account, dst: Account, asset: AssetId, amount: Amount) -> None:
        """Move *amount* of *asset* from *src* to *dst*."""
        self.debit(src, asset, amount)
        self.credit(dst, asset, amount)

    def get_all_balances(self) -> Dict[Tuple[Account, AssetId], Amount]:
        return dict(self._balances)

    def copy(self) -> "TokenLedger":
        copied = TokenLedger()
        copied._balances = dict(self._balances)
        return copied

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TokenLedger):
            return NotImplemented
        return self._balances == other._balances

    def __repr__(self) -> str:
        return f"TokenLedger({len(self._balances)} entries)"
