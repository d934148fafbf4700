"""Pytest configuration and fixtures."""

import pytest

from confidential_amm.chain import Chain
from confidential_amm.client import FheInstance, create_instances
from confidential_amm.config import DEFAULT_POOL_CONFIG
from confidential_amm.fhe.encrypted_int import EncryptedInt
from confidential_amm.fhe.runtime import FheRuntime
from tests.helpers import ACCOUNT_NAMES, TOKENS_TO_MINT, PoolDeployment, deploy_pool


@pytest.fixture
def runtime() -> FheRuntime:
    """Fresh runtime with its own network keypair."""
    return FheRuntime()


@pytest.fixture
def chain(runtime) -> Chain:
    """Fresh chain on top of the runtime fixture."""
    return Chain(runtime=runtime)


@pytest.fixture
def signers(chain):
    """Named deterministic accounts: alice deploys and mints."""
    return chain.dev_accounts(ACCOUNT_NAMES)


@pytest.fixture
def instances(chain, signers) -> dict[str, FheInstance]:
    """One client instance per signer."""
    return create_instances(chain.runtime.network_public_key, chain.chain_id, signers)


@pytest.fixture
def deployment(chain, signers) -> PoolDeployment:
    """Token0, Token1 and an empty pool, deployed by alice."""
    return deploy_pool(chain, signers["alice"])


@pytest.fixture
def funded(deployment, signers, instances) -> PoolDeployment:
    """Deployment where alice holds TOKENS_TO_MINT of each token and has approved the pool for all of it."""
    alice = signers["alice"]
    enc = instances["alice"]
    for token in (deployment.token0, deployment.token1):
        token.connect(alice).mint(alice.address, enc.encrypt16(TOKENS_TO_MINT))
        token.connect(alice).approve(deployment.pool.address, enc.encrypt16(TOKENS_TO_MINT))
    return deployment


@pytest.fixture
def make_int(runtime):
    """Factory for encrypted constants on the runtime fixture."""

    def _make(value: int, bits: int = DEFAULT_POOL_CONFIG.amount_bits) -> EncryptedInt:
        return EncryptedInt.trivial(runtime, value, bits)

    return _make
