"""
Farm instruction processor.

This module applies farming operations to an `AccountStore` in a deterministic,
fail-closed way:
- All operations of one transaction share a single ``now`` timestamp and run
  inside one store transaction; any failure discards every staged write.
- Stake, unstake and harvest all run the reward engine's
  settle -> withdraw -> deposit cycle (`farmledger.core.farming.rebalance`)
  and move tokens with the ledger using the amounts it returns.
- Pool-admin actions require tx_sender == pool owner.
- Unknown fields/actions are rejected.

Operations are plain dicts::

    {"module": "Farm", "version": "0.1", "action": "stake", "pool_id": "p1", "amount": 10}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from ..core.epoch import SystemClock, elapsed_periods
from ..core.farming import FarmingError, PoolInvariantError, check_pool, rebalance
from ..core.farming.math import U64_MAX
from ..state.balances import pool_reward_account, pool_treasury_account
from ..state.canonical import canonical_json_bytes
from ..state.records import ParticipantRecord, PoolRecord, PoolStatus
from ..state.store import AccountStore
from .config import FarmEngineConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FarmOp:
    pool_id: str
    action: str
    data: Dict[str, Any]


@dataclass(frozen=True)
class FarmTxResult:
    ok: bool
    effects: Optional[List[Dict[str, Any]]] = None
    error: Optional[str] = None
    code: Optional[str] = None


_COMMON_FIELDS = {"module", "version", "action", "pool_id"}

# action -> fields allowed beyond the common ones
_ACTION_FIELDS: Dict[str, set[str]] = {
    "initialize_pool": {"reward_rate", "period", "stake_asset", "reward_asset"},
    "initialize_participant": set(),
    "stake": {"amount"},
    "unstake": {"amount"},
    "harvest": set(),
    "freeze_pool": set(),
    "thaw_pool": set(),
    "seed": {"amount"},
    "unseed": {"amount"},
    "transfer_pool_ownership": {"new_owner"},
    "close_participant": set(),
    "close_pool": set(),
}


def _require_str(value: Any, *, name: str, max_len: int = 256) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string")
    if not value:
        raise ValueError(f"{name} must be non-empty")
    if len(value) > max_len:
        raise ValueError(f"{name} too large")
    return value


def _require_int(value: Any, *, name: str, lo: int = 0, hi: int = U64_MAX) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{name} must be an int")
    if value < lo or value > hi:
        raise ValueError(f"{name} out of range [{lo}, {hi}]")
    return value


def _require_amount(op: FarmOp) -> int:
    return _require_int(op.data.get("amount"), name="amount", lo=1)


def parse_farm_ops(operations: Sequence[Mapping[str, Any]], *, config: FarmEngineConfig) -> List[FarmOp]:
    if isinstance(operations, (str, bytes)) or not isinstance(operations, Sequence):
        raise ValueError(f"operations must be a list, got {type(operations)}")
    if len(operations) > config.max_ops:
        raise ValueError(f"too many farm ops: {len(operations)} > {config.max_ops}")

    out: List[FarmOp] = []
    for i, entry in enumerate(operations):
        if not isinstance(entry, Mapping):
            raise ValueError(f"farm op {i} must be an object")
        op_obj = dict(entry)
        try:
            op_bytes = len(canonical_json_bytes(op_obj))
        except TypeError as exc:
            raise ValueError(f"invalid farm op {i}: {exc}") from exc
        if op_bytes > config.max_op_bytes:
            raise ValueError(f"farm op {i} too large")

        module = _require_str(op_obj.get("module"), name="farm.module", max_len=64)
        if module != config.module:
            raise ValueError(f"invalid farm module: {module}")
        version = _require_str(op_obj.get("version"), name="farm.version", max_len=64)
        if version != config.version:
            raise ValueError(f"invalid farm version: {version}")
        action = _require_str(op_obj.get("action"), name="farm.action", max_len=64)
        allowed = _ACTION_FIELDS.get(action)
        if allowed is None:
            raise ValueError(f"unknown farm action: {action}")
        unknown = set(op_obj) - _COMMON_FIELDS - allowed
        if unknown:
            raise ValueError(f"unknown fields for {action}: {sorted(unknown)}")
        pool_id = _require_str(op_obj.get("pool_id"), name="farm.pool_id")

        out.append(FarmOp(pool_id=pool_id, action=action, data=op_obj))
    return out


# -- helpers -----------------------------------------------------------------

def _require_pool(store: AccountStore, pool_id: str) -> PoolRecord:
    pool = store.get_pool(pool_id)
    if pool is None:
        raise ValueError(f"unknown pool: {pool_id}")
    return pool


def _require_owner(pool: PoolRecord, tx_sender: str) -> None:
    if pool.owner != tx_sender:
        raise ValueError("pool owner only")


def _require_active(pool: PoolRecord) -> None:
    if pool.is_frozen():
        raise ValueError(f"pool is frozen: {pool.pool_id}")


def _require_participant(store: AccountStore, tx_sender: str, pool_id: str) -> ParticipantRecord:
    participant = store.get_participant(tx_sender, pool_id)
    if participant is None:
        raise ValueError(f"no participant record for {tx_sender} in {pool_id}")
    return participant


def _move_stake(
    store: AccountStore,
    pool: PoolRecord,
    participant: ParticipantRecord,
    *,
    next_shares: int,
    now: int,
) -> Dict[str, Any]:
    """Run the reward cycle, persist the new records and pay out the harvest."""
    delay = elapsed_periods(pool.genesis_time, pool.period_length, now)
    result = rebalance(
        shares=participant.shares,
        debt=participant.debt,
        compensation=pool.compensation,
        delay=delay,
        reward_rate=pool.reward_rate,
        total_shares=pool.total_shares,
        next_shares=next_shares,
    )
    store.put_pool(replace(pool, total_shares=result.total_shares, compensation=result.position.compensation))
    store.put_participant(replace(participant, shares=result.position.shares, debt=result.position.debt))

    if result.harvested > 0:
        store.ledger.transfer(
            pool_reward_account(pool.pool_id), participant.owner, pool.reward_asset, result.harvested,
        )
    return {
        "delay": delay,
        "harvested": result.harvested,
        "shares": result.position.shares,
        "debt": result.position.debt,
        "total_shares": result.total_shares,
    }


# -- handlers ----------------------------------------------------------------

HandlerFn = Callable[[AccountStore, FarmOp, str, int, FarmEngineConfig], Dict[str, Any]]


def _initialize_pool(store: AccountStore, op: FarmOp, tx_sender: str, now: int, config: FarmEngineConfig) -> Dict[str, Any]:
    if config.operator_pubkey and tx_sender != config.operator_pubkey:
        raise ValueError("operator only")
    if store.get_pool(op.pool_id) is not None:
        raise ValueError(f"pool already exists: {op.pool_id}")
    reward_rate = _require_int(op.data.get("reward_rate"), name="reward_rate", hi=config.max_reward_rate)
    period = _require_int(
        op.data.get("period"), name="period", lo=config.min_period_seconds, hi=config.max_period_seconds,
    )
    pool = PoolRecord(
        pool_id=op.pool_id,
        owner=tx_sender,
        status=PoolStatus.INITIALIZED,
        genesis_time=now,
        period_length=period,
        reward_rate=reward_rate,
        total_shares=0,
        compensation=0,
        stake_asset=_require_str(op.data.get("stake_asset"), name="stake_asset"),
        reward_asset=_require_str(op.data.get("reward_asset"), name="reward_asset"),
    )
    store.put_pool(pool)
    logger.info("pool %s initialized by %s (reward_rate=%d period=%d)", op.pool_id, tx_sender, reward_rate, period)
    return {"genesis_time": now}


def _initialize_participant(store: AccountStore, op: FarmOp, tx_sender: str, now: int, config: FarmEngineConfig) -> Dict[str, Any]:
    _require_pool(store, op.pool_id)
    if store.get_participant(tx_sender, op.pool_id) is not None:
        raise ValueError(f"participant already exists: {tx_sender} in {op.pool_id}")
    store.put_participant(ParticipantRecord(pool_id=op.pool_id, owner=tx_sender))
    return {}


def _stake(store: AccountStore, op: FarmOp, tx_sender: str, now: int, config: FarmEngineConfig) -> Dict[str, Any]:
    pool = _require_pool(store, op.pool_id)
    _require_active(pool)
    amount = _require_amount(op)
    participant = store.get_participant(tx_sender, op.pool_id)
    if participant is None:
        participant = ParticipantRecord(pool_id=op.pool_id, owner=tx_sender)
    store.ledger.transfer(tx_sender, pool_treasury_account(pool.pool_id), pool.stake_asset, amount)
    effect = _move_stake(store, pool, participant, next_shares=participant.shares + amount, now=now)
    effect["amount"] = amount
    return effect


def _unstake(store: AccountStore, op: FarmOp, tx_sender: str, now: int, config: FarmEngineConfig) -> Dict[str, Any]:
    pool = _require_pool(store, op.pool_id)
    _require_active(pool)
    amount = _require_amount(op)
    participant = _require_participant(store, tx_sender, op.pool_id)
    if amount > participant.shares:
        raise ValueError(f"unstake exceeds shares: {amount} > {participant.shares}")
    effect = _move_stake(store, pool, participant, next_shares=participant.shares - amount, now=now)
    store.ledger.transfer(pool_treasury_account(pool.pool_id), tx_sender, pool.stake_asset, amount)
    effect["amount"] = amount
    return effect


def _harvest(store: AccountStore, op: FarmOp, tx_sender: str, now: int, config: FarmEngineConfig) -> Dict[str, Any]:
    pool = _require_pool(store, op.pool_id)
    _require_active(pool)
    participant = _require_participant(store, tx_sender, op.pool_id)
    return _move_stake(store, pool, participant, next_shares=participant.shares, now=now)


def _set_status(status: PoolStatus) -> HandlerFn:
    def handler(store: AccountStore, op: FarmOp, tx_sender: str, now: int, config: FarmEngineConfig) -> Dict[str, Any]:
        pool = _require_pool(store, op.pool_id)
        _require_owner(pool, tx_sender)
        store.put_pool(replace(pool, status=status))
        return {"status": status.value}

    return handler


def _seed(store: AccountStore, op: FarmOp, tx_sender: str, now: int, config: FarmEngineConfig) -> Dict[str, Any]:
    pool = _require_pool(store, op.pool_id)
    amount = _require_amount(op)
    store.ledger.transfer(tx_sender, pool_reward_account(pool.pool_id), pool.reward_asset, amount)
    return {"amount": amount}


def _unseed(store: AccountStore, op: FarmOp, tx_sender: str, now: int, config: FarmEngineConfig) -> Dict[str, Any]:
    pool = _require_pool(store, op.pool_id)
    _require_owner(pool, tx_sender)
    amount = _require_amount(op)
    store.ledger.transfer(pool_reward_account(pool.pool_id), tx_sender, pool.reward_asset, amount)
    return {"amount": amount}


def _transfer_pool_ownership(store: AccountStore, op: FarmOp, tx_sender: str, now: int, config: FarmEngineConfig) -> Dict[str, Any]:
    pool = _require_pool(store, op.pool_id)
    _require_owner(pool, tx_sender)
    new_owner = _require_str(op.data.get("new_owner"), name="new_owner")
    store.put_pool(replace(pool, owner=new_owner))
    logger.info("pool %s ownership %s -> %s", pool.pool_id, tx_sender, new_owner)
    return {"owner": new_owner}


def _close_participant(store: AccountStore, op: FarmOp, tx_sender: str, now: int, config: FarmEngineConfig) -> Dict[str, Any]:
    participant = _require_participant(store, tx_sender, op.pool_id)
    if not participant.is_closable():
        raise ValueError("participant still holds shares or debt")
    store.delete_participant(tx_sender, op.pool_id)
    return {}


def _close_pool(store: AccountStore, op: FarmOp, tx_sender: str, now: int, config: FarmEngineConfig) -> Dict[str, Any]:
    pool = _require_pool(store, op.pool_id)
    _require_owner(pool, tx_sender)
    if pool.total_shares != 0:
        raise ValueError(f"pool still holds shares: {pool.total_shares}")
    for participant in store.participants_of(pool.pool_id):
        if not participant.is_closable():
            raise ValueError(f"participant {participant.owner} still holds shares or debt")
        store.delete_participant(participant.owner, pool.pool_id)
    reward_account = pool_reward_account(pool.pool_id)
    leftover = store.ledger.get(reward_account, pool.reward_asset)
    if leftover > 0:
        store.ledger.transfer(reward_account, tx_sender, pool.reward_asset, leftover)
    store.delete_pool(pool.pool_id)
    logger.info("pool %s closed (returned %d reward units)", pool.pool_id, leftover)
    return {"returned_rewards": leftover}


_HANDLERS: Dict[str, HandlerFn] = {
    "initialize_pool": _initialize_pool,
    "initialize_participant": _initialize_participant,
    "stake": _stake,
    "unstake": _unstake,
    "harvest": _harvest,
    "freeze_pool": _set_status(PoolStatus.FROZEN),
    "thaw_pool": _set_status(PoolStatus.INITIALIZED),
    "seed": _seed,
    "unseed": _unseed,
    "transfer_pool_ownership": _transfer_pool_ownership,
    "close_participant": _close_participant,
    "close_pool": _close_pool,
}


def _check_touched_pools(store: AccountStore, pool_ids: set[str]) -> None:
    for pool_id in sorted(pool_ids):
        pool = store.get_pool(pool_id)
        if pool is None:
            continue
        participants = store.participants_of(pool_id)
        violations = check_pool(
            total_shares=pool.total_shares,
            compensation=pool.compensation,
            participant_shares=[p.shares for p in participants],
            participant_debts=[p.debt for p in participants],
        )
        if violations:
            raise PoolInvariantError(pool_id, violations)


def apply_farm_ops_or_raise(
    store: AccountStore,
    operations: Sequence[Mapping[str, Any]],
    *,
    tx_sender: str,
    now: Optional[int] = None,
    config: Optional[FarmEngineConfig] = None,
) -> List[Dict[str, Any]]:
    """
    Apply a transaction of farm operations atomically.

    Returns one effect dict per operation. On any error the store is left
    exactly as it was and the original exception propagates.

    Raises:
        FarmingError: The reward engine rejected a transition.
        ValueError: Malformed operation or failed authorization/balance check.
    """
    cfg = config or FarmEngineConfig()
    tx_sender = _require_str(tx_sender, name="tx_sender")
    ts = SystemClock().now() if now is None else _require_int(now, name="now")
    ops = parse_farm_ops(operations, config=cfg)

    effects: List[Dict[str, Any]] = []
    with store.transaction() as staged:
        for op in ops:
            effect = _HANDLERS[op.action](staged, op, tx_sender, ts, cfg)
            logger.debug("applied %s on %s for %s: %s", op.action, op.pool_id, tx_sender, effect)
            effects.append({"action": op.action, "pool_id": op.pool_id, "owner": tx_sender, **effect})
        _check_touched_pools(staged, {op.pool_id for op in ops})
    logger.info("committed %d farm ops for %s", len(ops), tx_sender)
    return effects


def apply_farm_ops(
    store: AccountStore,
    operations: Sequence[Mapping[str, Any]],
    *,
    tx_sender: str,
    now: Optional[int] = None,
    config: Optional[FarmEngineConfig] = None,
) -> FarmTxResult:
    """Like ``apply_farm_ops_or_raise()`` but reports rejection in a ``FarmTxResult``."""
    try:
        effects = apply_farm_ops_or_raise(store, operations, tx_sender=tx_sender, now=now, config=config)
    except FarmingError as exc:
        logger.warning("farm tx rejected (%s): %s", exc.code, exc)
        return FarmTxResult(ok=False, error=str(exc), code=exc.code)
    except (ValueError, TypeError, KeyError) as exc:
        logger.warning("farm tx rejected: %s", exc)
        return FarmTxResult(ok=False, error=str(exc), code="rejected")
    return FarmTxResult(ok=True, effects=effects)
