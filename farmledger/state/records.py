"""
Persisted farm records (protocol-level, snapshot-friendly).

These are the values the account store keeps between operations. The reward
engine in `farmledger/core/farming` reads and produces the numeric fields;
everything else is owned by the instruction processor.

Records serialize to plain dicts tagged with ``RECORD_VERSION`` so the stored
layout can evolve independently of the in-memory types.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping

from ..core.farming.math import I128_MAX, I128_MIN, U64_MAX, U128_MAX


RECORD_VERSION = 1

POOL_RECORD_KEYS: tuple[str, ...] = (
    "pool_id",
    "owner",
    "status",
    "genesis_time",
    "period_length",
    "reward_rate",
    "total_shares",
    "compensation",
    "stake_asset",
    "reward_asset",
)
PARTICIPANT_RECORD_KEYS: tuple[str, ...] = ("pool_id", "owner", "shares", "debt")


class PoolStatus(Enum):
    """Pool status enumeration."""
    INITIALIZED = "INITIALIZED"
    FROZEN = "FROZEN"


def _check_int(value: Any, name: str, lo: int, hi: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < lo or value > hi:
        raise ValueError(f"{name} out of range [{lo}, {hi}]: {value}")


def _check_str(value: Any, name: str) -> None:
    if not isinstance(value, str) or not value:
        raise TypeError(f"{name} must be a non-empty string")


@dataclass(frozen=True)
class PoolRecord:
    """
    State of one farming pool.

    Attributes:
        pool_id: Pool identifier
        owner: Pubkey allowed to freeze/thaw/unseed/close the pool
        status: Pool status
        genesis_time: Unix timestamp of pool creation
        period_length: Seconds per reward period (> 0)
        reward_rate: Reward units released per period
        total_shares: Sum of all participants' shares
        compensation: Signed reward-per-share correction (scaled by 1e18)
        stake_asset: Asset staked into the pool
        reward_asset: Asset paid out as reward
    """
    pool_id: str
    owner: str
    status: PoolStatus
    genesis_time: int
    period_length: int
    reward_rate: int
    total_shares: int
    compensation: int
    stake_asset: str
    reward_asset: str

    def __post_init__(self) -> None:
        _check_str(self.pool_id, "pool_id")
        _check_str(self.owner, "owner")
        if not isinstance(self.status, PoolStatus):
            raise TypeError("status must be a PoolStatus")
        _check_int(self.genesis_time, "genesis_time", 0, U64_MAX)
        _check_int(self.period_length, "period_length", 1, U64_MAX)
        _check_int(self.reward_rate, "reward_rate", 0, U64_MAX)
        _check_int(self.total_shares, "total_shares", 0, U64_MAX)
        _check_int(self.compensation, "compensation", I128_MIN, I128_MAX)
        _check_str(self.stake_asset, "stake_asset")
        _check_str(self.reward_asset, "reward_asset")

    def is_frozen(self) -> bool:
        return self.status is PoolStatus.FROZEN


@dataclass(frozen=True)
class ParticipantRecord:
    """Stake and settled-reward bookkeeping of one owner in one pool."""

    pool_id: str
    owner: str
    shares: int = 0
    debt: int = 0

    def __post_init__(self) -> None:
        _check_str(self.pool_id, "pool_id")
        _check_str(self.owner, "owner")
        _check_int(self.shares, "shares", 0, U64_MAX)
        _check_int(self.debt, "debt", 0, U128_MAX)

    def is_closable(self) -> bool:
        return self.shares == 0 and self.debt == 0


def _require_version(d: Mapping[str, Any], kind: str) -> None:
    version = d.get("version")
    if version != RECORD_VERSION:
        raise ValueError(f"unsupported {kind} record version: {version!r}")


def _require_exact_keys(d: Mapping[str, Any], keys: tuple[str, ...], kind: str) -> None:
    expected = set(keys) | {"version"}
    missing = expected - set(d)
    if missing:
        raise KeyError(f"{kind} record missing fields: {sorted(missing)}")
    extra = set(d) - expected
    if extra:
        raise ValueError(f"{kind} record has unknown fields: {sorted(extra)}")


def pool_to_dict(pool: PoolRecord) -> Dict[str, Any]:
    out: Dict[str, Any] = {name: getattr(pool, name) for name in POOL_RECORD_KEYS}
    out["status"] = pool.status.value
    out["version"] = RECORD_VERSION
    return out


def pool_from_dict(d: Mapping[str, Any]) -> PoolRecord:
    _require_version(d, "pool")
    _require_exact_keys(d, POOL_RECORD_KEYS, "pool")
    kwargs = {name: d[name] for name in POOL_RECORD_KEYS}
    kwargs["status"] = PoolStatus(d["status"])
    return PoolRecord(**kwargs)


def participant_to_dict(participant: ParticipantRecord) -> Dict[str, Any]:
    out: Dict[str, Any] = {name: getattr(participant, name) for name in PARTICIPANT_RECORD_KEYS}
    out["version"] = RECORD_VERSION
    return out


def participant_from_dict(d: Mapping[str, Any]) -> ParticipantRecord:
    _require_version(d, "participant")
    _require_exact_keys(d, PARTICIPANT_RECORD_KEYS, "participant")
    return ParticipantRecord(**{name: d[name] for name in PARTICIPANT_RECORD_KEYS})
