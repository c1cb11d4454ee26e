"""
In-memory account store with an atomic commit boundary.

The store keeps pool records by pool id, participant records by
(owner, pool_id), and the token ledger. All writes for one operation go
through ``transaction()``: the block works on a staged copy which replaces the
committed state only if the block exits cleanly.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from ..core.farming.invariants import check_pool
from .balances import TokenLedger
from .canonical import record_digest
from .records import (
    ParticipantRecord,
    PoolRecord,
    participant_from_dict,
    participant_to_dict,
    pool_from_dict,
    pool_to_dict,
)


STORE_SNAPSHOT_VERSION = 1

ParticipantKey = Tuple[str, str]  # (owner, pool_id)


class AccountStore:
    """Pool/participant records plus token balances."""

    def __init__(self, ledger: Optional[TokenLedger] = None) -> None:
        self._pools: Dict[str, PoolRecord] = {}
        self._participants: Dict[ParticipantKey, ParticipantRecord] = {}
        self.ledger: TokenLedger = ledger if ledger is not None else TokenLedger()

    # -- pools -----------------------------------------------------------

    def get_pool(self, pool_id: str) -> Optional[PoolRecord]:
        return self._pools.get(pool_id)

    def put_pool(self, pool: PoolRecord) -> None:
        self._pools[pool.pool_id] = pool

    def delete_pool(self, pool_id: str) -> None:
        if self._pools.pop(pool_id, None) is None:
            raise KeyError(f"unknown pool: {pool_id}")

    def pool_ids(self) -> List[str]:
        return sorted(self._pools)

    # -- participants ----------------------------------------------------

    def get_participant(self, owner: str, pool_id: str) -> Optional[ParticipantRecord]:
        return self._participants.get((owner, pool_id))

    def put_participant(self, participant: ParticipantRecord) -> None:
        self._participants[(participant.owner, participant.pool_id)] = participant

    def delete_participant(self, owner: str, pool_id: str) -> None:
        if self._participants.pop((owner, pool_id), None) is None:
            raise KeyError(f"unknown participant: {owner} in {pool_id}")

    def participants_of(self, pool_id: str) -> List[ParticipantRecord]:
        found = [p for (_, pid), p in self._participants.items() if pid == pool_id]
        found.sort(key=lambda p: p.owner)
        return found

    # -- commit boundary -------------------------------------------------

    def _staged_copy(self) -> "AccountStore":
        staged = AccountStore(ledger=self.ledger.copy())
        staged._pools = dict(self._pools)
        staged._participants = dict(self._participants)
        return staged

    @contextmanager
    def transaction(self) -> Iterator["AccountStore"]:
        """
        Yield a staged copy of the store.

        Records are immutable, so a shallow copy of the tables is enough. On a
        clean exit the staged tables replace the committed ones; on any
        exception they are dropped and the exception propagates.
        """
        staged = self._staged_copy()
        yield staged
        self._pools = staged._pools
        self._participants = staged._participants
        self.ledger = staged.ledger

    # -- snapshots -------------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        """Versioned, deterministically ordered dict of everything stored."""
        balances = [
            {"account": account, "asset": asset, "amount": int(amount)}
            for (account, asset), amount in self.ledger.get_all_balances().items()
        ]
        balances.sort(key=lambda e: (e["account"], e["asset"]))
        participants = [participant_to_dict(p) for p in self._participants.values()]
        participants.sort(key=lambda e: (e["pool_id"], e["owner"]))
        return {
            "version": STORE_SNAPSHOT_VERSION,
            "pools": [pool_to_dict(self._pools[pid]) for pid in self.pool_ids()],
            "participants": participants,
            "balances": balances,
        }

    def commitment_hex(self) -> str:
        return record_digest("store_snapshot", self.snapshot(), version=STORE_SNAPSHOT_VERSION)

    @classmethod
    def from_snapshot(cls, data: Mapping[str, Any]) -> "AccountStore":
        if data.get("version") != STORE_SNAPSHOT_VERSION:
            raise ValueError(f"unsupported store snapshot version: {data.get('version')!r}")
        store = cls()
        for entry in data.get("pools", []):
            pool = pool_from_dict(entry)
            if store.get_pool(pool.pool_id) is not None:
                raise ValueError(f"duplicate pool entry: {pool.pool_id}")
            store.put_pool(pool)
        for entry in data.get("participants", []):
            participant = participant_from_dict(entry)
            if store.get_pool(participant.pool_id) is None:
                raise ValueError(f"participant references unknown pool: {participant.pool_id}")
            if store.get_participant(participant.owner, participant.pool_id) is not None:
                raise ValueError(f"duplicate participant entry: {participant.owner} in {participant.pool_id}")
            store.put_participant(participant)
        seen_balances: set[Tuple[str, str]] = set()
        for entry in data.get("balances", []):
            account, asset = str(entry["account"]), str(entry["asset"])
            if (account, asset) in seen_balances:
                raise ValueError(f"duplicate balance entry: ({account}, {asset})")
            seen_balances.add((account, asset))
            store.ledger.credit(account, asset, int(entry["amount"]))
        for pool_id in store.pool_ids():
            pool = store._pools[pool_id]
            participants = store.participants_of(pool_id)
            violations = check_pool(
                total_shares=pool.total_shares,
                compensation=pool.compensation,
                participant_shares=[p.shares for p in participants],
                participant_debts=[p.debt for p in participants],
            )
            if violations:
                raise ValueError(f"pool {pool_id} violates invariants: {', '.join(violations)}")
        return store

    def __repr__(self) -> str:
        return f"AccountStore({len(self._pools)} pools, {len(self._participants)} participants)"
