"""Test helpers module for shared test utilities.

This module consolidates common test utilities to reduce duplication:
- constants: Scenario amounts and account names
- factories: Deployment factory and reveal helpers
"""

from tests.helpers.constants import (
    ACCOUNT_NAMES,
    LIQUIDITY_AMOUNT,
    STRANGER,
    SWAP_AMOUNT,
    TOKENS_TO_MINT,
)
from tests.helpers.factories import (
    PoolDeployment,
    deploy_pool,
    read_balance,
    read_reserves,
    read_total_supply,
    reveal,
    reveal_bool,
)

__all__ = [
    # Constants
    "ACCOUNT_NAMES",
    "LIQUIDITY_AMOUNT",
    "STRANGER",
    "SWAP_AMOUNT",
    "TOKENS_TO_MINT",
    # Factories
    "PoolDeployment",
    "deploy_pool",
    "read_balance",
    "read_reserves",
    "read_total_supply",
    "reveal",
    "reveal_bool",
]
