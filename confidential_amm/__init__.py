"""Confidential AMM - constant-product pool over encrypted reserves."""

from confidential_amm.chain import Chain
from confidential_amm.client import FheInstance
from confidential_amm.config import DEFAULT_POOL_CONFIG, PoolConfig
from confidential_amm.pool import ConfidentialPool
from confidential_amm.token import ConfidentialToken

__version__ = "0.1.0"
__all__ = [
    "Chain",
    "ConfidentialPool",
    "ConfidentialToken",
    "DEFAULT_POOL_CONFIG",
    "FheInstance",
    "PoolConfig",
    "__version__",
]
