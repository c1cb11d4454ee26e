"""End-to-end tests for the farm instruction processor."""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List

import pytest

from farmledger.core.farming import NonMonotonicDebtError
from farmledger.integration import FarmEngineConfig, apply_farm_ops, apply_farm_ops_or_raise
from farmledger.state import AccountStore, ParticipantRecord
from farmledger.state.balances import pool_reward_account, pool_treasury_account

GENESIS = 1000
POOL = "demo"


def _op(action: str, **fields: Any) -> Dict[str, Any]:
    return {"module": "Farm", "version": "0.1", "action": action, "pool_id": POOL, **fields}


def _init_op() -> Dict[str, Any]:
    return _op("initialize_pool", reward_rate=100, period=60, stake_asset="STK", reward_asset="RWD")


def _store(*, seed: int = 10_000) -> AccountStore:
    store = AccountStore()
    store.ledger.credit("owner", "RWD", 10_000)
    store.ledger.credit("alice", "STK", 100)
    store.ledger.credit("bob", "STK", 100)
    ops: List[Dict[str, Any]] = [_init_op()]
    if seed:
        ops.append(_op("seed", amount=seed))
    apply_farm_ops_or_raise(store, ops, tx_sender="owner", now=GENESIS)
    return store


def _apply(store: AccountStore, sender: str, now: int, *ops: Dict[str, Any]) -> List[Dict[str, Any]]:
    return apply_farm_ops_or_raise(store, list(ops), tx_sender=sender, now=now)


class TestLifecycle:
    def test_two_stakers_full_lifecycle(self) -> None:
        store = _store()
        _apply(store, "alice", 1000, _op("stake", amount=10))

        (h,) = _apply(store, "alice", 1060, _op("harvest"))
        assert (h["delay"], h["harvested"]) == (1, 100)
        (s,) = _apply(store, "bob", 1060, _op("stake", amount=10))
        assert (s["debt"], s["total_shares"]) == (100, 20)

        (ha,) = _apply(store, "alice", 1125, _op("harvest"))
        assert (ha["delay"], ha["harvested"]) == (2, 50)
        hb, ub, _ = _apply(
            store, "bob", 1125,
            _op("harvest"), _op("unstake", amount=10), _op("close_participant"),
        )
        assert hb["harvested"] == 50
        assert (ub["harvested"], ub["total_shares"]) == (0, 10)
        assert store.get_participant("bob", POOL) is None
        assert store.get_pool(POOL).compensation == -5 * 10**18

        (ha,) = _apply(store, "alice", 1180, _op("harvest"))
        assert (ha["delay"], ha["harvested"]) == (3, 100)
        _apply(store, "alice", 1180, _op("unstake", amount=10), _op("close_participant"))

        pool = store.get_pool(POOL)
        assert (pool.total_shares, pool.compensation) == (0, 0)
        assert store.ledger.get("alice", "RWD") == 250
        assert store.ledger.get("bob", "RWD") == 50
        assert store.ledger.get("alice", "STK") == 100
        assert store.ledger.get("bob", "STK") == 100
        assert store.ledger.get(pool_treasury_account(POOL), "STK") == 0

        (closed,) = _apply(store, "owner", 1200, _op("close_pool"))
        assert closed["returned_rewards"] == 9_700
        assert store.get_pool(POOL) is None
        assert store.ledger.get("owner", "RWD") == 9_700

    def test_effects_carry_action_pool_and_owner(self) -> None:
        store = _store()
        (effect,) = _apply(store, "alice", 1000, _op("stake", amount=3))
        assert effect["action"] == "stake"
        assert effect["pool_id"] == POOL
        assert effect["owner"] == "alice"
        assert effect["amount"] == 3

    def test_initialize_participant_then_stake(self) -> None:
        store = _store()
        _apply(store, "alice", 1000, _op("initialize_participant"))
        assert store.get_participant("alice", POOL) == ParticipantRecord(POOL, "alice")
        with pytest.raises(ValueError, match="already exists"):
            _apply(store, "alice", 1000, _op("initialize_participant"))
        _apply(store, "alice", 1000, _op("stake", amount=5))
        assert store.get_participant("alice", POOL).shares == 5

    def test_ownership_transfer_moves_admin_rights(self) -> None:
        store = _store()
        _apply(store, "owner", 1000, _op("transfer_pool_ownership", new_owner="carol"))
        assert store.get_pool(POOL).owner == "carol"
        with pytest.raises(ValueError, match="owner only"):
            _apply(store, "owner", 1000, _op("freeze_pool"))
        _apply(store, "carol", 1000, _op("freeze_pool"))
        assert store.get_pool(POOL).is_frozen()


class TestRejections:
    def test_frozen_pool_rejects_stake_until_thawed(self) -> None:
        store = _store()
        _apply(store, "owner", 1000, _op("freeze_pool"))
        before = store.commitment_hex()
        result = apply_farm_ops(store, [_op("stake", amount=10)], tx_sender="alice", now=1000)
        assert not result.ok
        assert result.code == "rejected"
        assert "frozen" in result.error
        assert store.commitment_hex() == before
        _apply(store, "owner", 1000, _op("thaw_pool"))
        _apply(store, "alice", 1000, _op("stake", amount=10))

    def test_failed_op_rolls_back_whole_transaction(self) -> None:
        store = _store()
        before = store.commitment_hex()
        result = apply_farm_ops(
            store, [_op("stake", amount=10), _op("unstake", amount=20)], tx_sender="alice", now=1000,
        )
        assert not result.ok
        assert store.commitment_hex() == before
        assert store.get_participant("alice", POOL) is None
        assert store.ledger.get("alice", "STK") == 100

    def test_unfunded_harvest_is_rejected_without_advancing_debt(self) -> None:
        store = _store(seed=0)
        _apply(store, "alice", 1000, _op("stake", amount=10))
        result = apply_farm_ops(store, [_op("harvest")], tx_sender="alice", now=1060)
        assert not result.ok
        assert "Insufficient" in result.error
        assert store.get_participant("alice", POOL).debt == 0
        assert store.ledger.get(pool_reward_account(POOL), "RWD") == 0

    def test_corrupted_debt_reports_engine_code(self) -> None:
        store = _store()
        _apply(store, "alice", 1000, _op("stake", amount=10))
        store.put_participant(ParticipantRecord(POOL, "alice", shares=10, debt=1_000))
        result = apply_farm_ops(store, [_op("harvest")], tx_sender="alice", now=1060)
        assert (result.ok, result.code) == (False, "non_monotonic_debt")
        with pytest.raises(NonMonotonicDebtError):
            _apply(store, "alice", 1060, _op("harvest"))

    def test_inconsistent_pool_total_fails_invariant_check(self) -> None:
        store = _store()
        _apply(store, "alice", 1000, _op("stake", amount=10))
        store.put_pool(replace(store.get_pool(POOL), total_shares=20))
        before = store.commitment_hex()
        result = apply_farm_ops(store, [_op("harvest")], tx_sender="alice", now=1000)
        assert (result.ok, result.code) == (False, "invariant")
        assert store.commitment_hex() == before

    def test_non_owner_cannot_unseed(self) -> None:
        store = _store()
        result = apply_farm_ops(store, [_op("unseed", amount=1)], tx_sender="alice", now=1000)
        assert not result.ok
        assert "owner only" in result.error

    def test_close_pool_requires_empty_pool(self) -> None:
        store = _store()
        _apply(store, "alice", 1000, _op("stake", amount=1))
        result = apply_farm_ops(store, [_op("close_pool")], tx_sender="owner", now=1000)
        assert not result.ok
        assert store.get_pool(POOL) is not None

    def test_close_participant_requires_empty_position(self) -> None:
        store = _store()
        _apply(store, "alice", 1000, _op("stake", amount=1))
        result = apply_farm_ops(store, [_op("close_participant")], tx_sender="alice", now=1000)
        assert not result.ok
        assert store.get_participant("alice", POOL) is not None

    @pytest.mark.parametrize(
        "op",
        [
            _op("teleport"),
            _op("stake", amount=1, memo="x"),
            {**_op("stake", amount=1), "module": "Swap"},
            {**_op("stake", amount=1), "version": "9.9"},
            _op("stake", amount=0),
            _op("stake", amount=True),
            _op("stake", amount=1.5),
        ],
    )
    def test_malformed_ops_rejected(self, op: Dict[str, Any]) -> None:
        store = _store()
        before = store.commitment_hex()
        result = apply_farm_ops(store, [op], tx_sender="alice", now=1000)
        assert (result.ok, result.code) == (False, "rejected")
        assert store.commitment_hex() == before

    def test_clock_before_genesis_rejected(self) -> None:
        store = _store()
        result = apply_farm_ops(store, [_op("stake", amount=1)], tx_sender="alice", now=GENESIS - 1)
        assert not result.ok
        assert "genesis" in result.error

    def test_duplicate_pool_rejected(self) -> None:
        store = _store()
        result = apply_farm_ops(store, [_init_op()], tx_sender="owner", now=1000)
        assert not result.ok
        assert "already exists" in result.error

    def test_operator_restriction(self) -> None:
        store = AccountStore()
        cfg = FarmEngineConfig(operator_pubkey="operator")
        denied = apply_farm_ops(store, [_init_op()], tx_sender="mallory", now=1000, config=cfg)
        assert not denied.ok
        allowed = apply_farm_ops(store, [_init_op()], tx_sender="operator", now=1000, config=cfg)
        assert allowed.ok
        assert store.get_pool(POOL).owner == "operator"

    def test_max_ops_enforced(self) -> None:
        store = _store()
        cfg = FarmEngineConfig(max_ops=1)
        result = apply_farm_ops(store, [_op("harvest"), _op("harvest")], tx_sender="alice", now=1000, config=cfg)
        assert not result.ok
        assert "too many" in result.error

    def test_period_bounds_enforced(self) -> None:
        store = AccountStore()
        cfg = FarmEngineConfig(min_period_seconds=60)
        op = _op("initialize_pool", reward_rate=1, period=59, stake_asset="STK", reward_asset="RWD")
        assert not apply_farm_ops(store, [op], tx_sender="owner", now=0, config=cfg).ok


def test_int_fields_keep_their_exact_value() -> None:
    store = _store()
    big = 2**64 - 1
    store.ledger.credit("whale", "STK", big)
    (effect,) = _apply(store, "whale", 1000, _op("stake", amount=big))
    assert effect["amount"] == big
    assert type(effect["amount"]) is int
    assert store.get_participant("whale", POOL).shares == big
