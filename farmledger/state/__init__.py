"""
Persisted state for farming pools
"""

from .balances import TokenLedger, pool_reward_account, pool_treasury_account
from .records import ParticipantRecord, PoolRecord, PoolStatus
from .store import AccountStore

__all__ = [
    "AccountStore",
    "ParticipantRecord",
    "PoolRecord",
    "PoolStatus",
    "TokenLedger",
    "pool_reward_account",
    "pool_treasury_account",
]
