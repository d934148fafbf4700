"""Confidential constant-product pool."""

from confidential_amm.pool.contract import ConfidentialPool
from confidential_amm.pool.operations import DepositResult, SwapResult, WithdrawalResult
from confidential_amm.pool.state import PoolState

__all__ = [
    "ConfidentialPool",
    "DepositResult",
    "PoolState",
    "SwapResult",
    "WithdrawalResult",
]
