"""
Runtime configuration for the farm instruction processor.

Defaults live on ``FarmEngineConfig``. ``load_config()`` layers an optional
YAML file and then ``FARM_*`` environment variables on top of them.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml

from ..core.farming.math import U64_MAX


FARM_OP_MODULE = "Farm"
FARM_OP_VERSION = "0.1"

_TEN_YEARS_SECONDS = 10 * 365 * 24 * 60 * 60


@dataclass(frozen=True)
class FarmEngineConfig:
    module: str = FARM_OP_MODULE
    version: str = FARM_OP_VERSION
    max_ops: int = 256
    max_op_bytes: int = 64_000
    min_period_seconds: int = 1
    max_period_seconds: int = _TEN_YEARS_SECONDS
    max_reward_rate: int = U64_MAX
    # When set, only this pubkey may initialize pools.
    operator_pubkey: Optional[str] = None

    def __post_init__(self) -> None:
        if self.max_ops <= 0:
            raise ValueError("max_ops must be positive")
        if self.max_op_bytes <= 0:
            raise ValueError("max_op_bytes must be positive")
        if not 1 <= self.min_period_seconds <= self.max_period_seconds:
            raise ValueError("period bounds must satisfy 1 <= min <= max")
        if not 0 <= self.max_reward_rate <= U64_MAX:
            raise ValueError("max_reward_rate must fit u64")


_INT_FIELDS = {"max_ops", "max_op_bytes", "min_period_seconds", "max_period_seconds", "max_reward_rate"}
_STR_FIELDS = {"module", "version", "operator_pubkey"}


def _env_int(name: str, default: int, *, lo: int, hi: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return int(default)
    try:
        v = int(raw.strip())
    except ValueError:
        return int(default)
    if v < lo:
        return int(lo)
    if v > hi:
        return int(hi)
    return int(v)


def _env_str(name: str, default: Optional[str]) -> Optional[str]:
    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip()
    return v if v else default


def config_from_mapping(data: Mapping[str, Any]) -> FarmEngineConfig:
    """Build a config from a parsed mapping. Unknown keys are rejected."""
    known = {f.name for f in fields(FarmEngineConfig)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"unknown config keys: {sorted(unknown)}")
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        if key in _INT_FIELDS:
            if not isinstance(value, int) or isinstance(value, bool):
                raise TypeError(f"config {key} must be an int")
        elif key in _STR_FIELDS:
            if value is not None and not isinstance(value, str):
                raise TypeError(f"config {key} must be a string")
        kwargs[key] = value
    return FarmEngineConfig(**kwargs)


def load_config(path: Optional[Union[str, Path]] = None) -> FarmEngineConfig:
    """Load config from an optional YAML file, then apply environment overrides."""
    config = FarmEngineConfig()
    if path is not None:
        obj = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
        if obj is None:
            obj = {}
        if not isinstance(obj, Mapping):
            raise TypeError("config YAML must be a mapping")
        config = config_from_mapping(obj)

    # The max bound is clamped against the already-resolved min.
    min_period = _env_int("FARM_MIN_PERIOD_SECONDS", config.min_period_seconds, lo=1, hi=U64_MAX)
    max_period = _env_int(
        "FARM_MAX_PERIOD_SECONDS", max(config.max_period_seconds, min_period), lo=min_period, hi=U64_MAX,
    )
    return replace(
        config,
        max_ops=_env_int("FARM_MAX_OPS", config.max_ops, lo=1, hi=4096),
        min_period_seconds=min_period,
        max_period_seconds=max_period,
        operator_pubkey=_env_str("FARM_OPERATOR_PUBKEY", config.operator_pubkey),
    )
