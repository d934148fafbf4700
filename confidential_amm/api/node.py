"""Development node: one chain, two tokens and a pool behind the API.

The node plays the role of a local development chain with unlocked
accounts: requests name their ``sender`` and the node submits the call on
that account's behalf. Reads still require the account's EIP-712 signature
over the re-encryption key, exactly as on a real deployment.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from eth_account.signers.local import LocalAccount

from confidential_amm.chain import Chain
from confidential_amm.config import DEFAULT_POOL_CONFIG, PoolConfig
from confidential_amm.constants import DEFAULT_CHAIN_ID
from confidential_amm.errors import Unauthorized
from confidential_amm.models.types import normalize_address
from confidential_amm.pool import ConfidentialPool
from confidential_amm.token import ConfidentialToken

logger = structlog.get_logger()

# Named accounts, in deterministic-key order; the first one deploys everything
DEV_ACCOUNT_NAMES = ["alice", "bob", "carol", "dave", "eve"]


@dataclass
class DevNode:
    """Deployed contracts and unlocked accounts of a development chain."""

    chain: Chain
    accounts: dict[str, LocalAccount]
    token0: ConfidentialToken
    token1: ConfidentialToken
    pool: ConfidentialPool

    def account(self, address: str) -> LocalAccount:
        """Resolve an unlocked account by address.

        Raises:
            Unauthorized: If the node does not hold the account's key
        """
        address = normalize_address(address)
        for account in self.accounts.values():
            if normalize_address(account.address) == address:
                return account
        raise Unauthorized(f"Account {address} is not unlocked on this node")

    def token(self, address: str) -> ConfidentialToken:
        """Resolve one of the pool's tokens by address.

        Raises:
            KeyError: If ``address`` is not one of the node's tokens
        """
        address = normalize_address(address)
        for token in (self.token0, self.token1):
            if token.address == address:
                return token
        raise KeyError(f"No token deployed at {address}")


def build_dev_node(
    chain_id: int = DEFAULT_CHAIN_ID,
    config: PoolConfig = DEFAULT_POOL_CONFIG,
) -> DevNode:
    """Deploy two tokens and a pool on a fresh chain."""
    chain = Chain(chain_id=chain_id)
    accounts = chain.dev_accounts(DEV_ACCOUNT_NAMES)
    deployer = accounts[DEV_ACCOUNT_NAMES[0]]

    token0 = chain.deploy(ConfidentialToken, deployer, "Token0", "TKN0", bits=config.amount_bits)
    token1 = chain.deploy(ConfidentialToken, deployer, "Token1", "TKN1", bits=config.amount_bits)
    pool = chain.deploy(ConfidentialPool, deployer, token0.address, token1.address, config=config)

    logger.info("dev_node_ready", chain_id=chain_id, pool=pool.address, accounts=len(accounts))
    return DevNode(chain=chain, accounts=accounts, token0=token0, token1=token1, pool=pool)
