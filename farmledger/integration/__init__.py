"""
Imperative shell: instruction processing and runtime configuration.
"""

from .config import FarmEngineConfig, load_config
from .farm_engine import FarmOp, FarmTxResult, apply_farm_ops, apply_farm_ops_or_raise, parse_farm_ops

__all__ = [
    "FarmEngineConfig",
    "FarmOp",
    "FarmTxResult",
    "apply_farm_ops",
    "apply_farm_ops_or_raise",
    "load_config",
    "parse_farm_ops",
]
