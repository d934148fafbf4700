"""API endpoints for the confidential AMM dev node."""

import os
from collections.abc import Iterator
from functools import lru_cache

import structlog
from fastapi import APIRouter, Depends

from confidential_amm.api.node import DevNode, build_dev_node
from confidential_amm.constants import DEFAULT_CHAIN_ID
from confidential_amm.models.api import (
    AddLiquidityRequest,
    ApproveRequest,
    CiphertextResponse,
    MintRequest,
    NetworkInfo,
    PoolInfo,
    ReencryptRequest,
    RemoveLiquidityRequest,
    ReservesResponse,
    SwapRequest,
    TransactionReceipt,
    TransferRequest,
)
from confidential_amm.models.types import hex_to_bytes

logger = structlog.get_logger()

router = APIRouter()

# Chain id of the dev node (configurable via CAMM_CHAIN_ID)
CHAIN_ID = int(os.environ.get("CAMM_CHAIN_ID", str(DEFAULT_CHAIN_ID)))


@lru_cache(maxsize=1)
def get_default_node() -> DevNode:
    """Lazily build the process-wide dev node."""
    return build_dev_node(chain_id=CHAIN_ID)


def get_node() -> DevNode:
    """Dependency provider for the dev node.

    Override this in tests to inject a fresh node:
        app.dependency_overrides[get_node] = lambda: node
    """
    return get_default_node()


def node_session(node: DevNode = Depends(get_node)) -> Iterator[DevNode]:
    """Dev node for one request; handles the request left outside storage are released afterwards."""
    try:
        yield node
    finally:
        node.chain.collect_garbage()


@router.get("/network")
def network(node: DevNode = Depends(node_session)) -> NetworkInfo:
    """Chain id, the key inputs are sealed to, and the unlocked accounts."""
    return NetworkInfo(
        chainId=node.chain.chain_id,
        networkPublicKey=node.chain.runtime.network_public_key,
        accounts=[account.address for account in node.accounts.values()],
    )


# --- Pool ---


@router.get("/pool")
def pool_info(node: DevNode = Depends(node_session)) -> PoolInfo:
    """Public pool metadata."""
    return PoolInfo(
        address=node.pool.address,
        token0=node.pool.token0(),
        token1=node.pool.token1(),
        amountBits=node.pool.config.amount_bits,
        shareBits=node.pool.config.share_bits,
    )


@router.post("/pool/add-liquidity")
def add_liquidity(request: AddLiquidityRequest, node: DevNode = Depends(node_session)) -> TransactionReceipt:
    account = node.account(request.sender)
    node.pool.connect(account).add_liquidity(hex_to_bytes(request.amount0), hex_to_bytes(request.amount1))
    return TransactionReceipt(sender=account.address)


@router.post("/pool/remove-liquidity")
def remove_liquidity(request: RemoveLiquidityRequest, node: DevNode = Depends(node_session)) -> TransactionReceipt:
    account = node.account(request.sender)
    node.pool.connect(account).remove_liquidity(hex_to_bytes(request.shares))
    return TransactionReceipt(sender=account.address)


@router.post("/pool/swap")
def swap(request: SwapRequest, node: DevNode = Depends(node_session)) -> TransactionReceipt:
    account = node.account(request.sender)
    node.pool.connect(account).swap(request.token_in, hex_to_bytes(request.amount_in))
    return TransactionReceipt(sender=account.address)


@router.post("/pool/reserves")
def reserves(request: ReencryptRequest, node: DevNode = Depends(node_session)) -> ReservesResponse:
    reserve0, reserve1 = node.pool.connect(request.sender).get_reserves(
        hex_to_bytes(request.public_key), hex_to_bytes(request.signature)
    )
    return ReservesResponse(reserve0=reserve0, reserve1=reserve1)


@router.post("/pool/total-supply")
def total_supply(request: ReencryptRequest, node: DevNode = Depends(node_session)) -> CiphertextResponse:
    ciphertext = node.pool.connect(request.sender).get_total_supply(
        hex_to_bytes(request.public_key), hex_to_bytes(request.signature)
    )
    return CiphertextResponse(ciphertext=ciphertext)


@router.post("/pool/balance")
def pool_balance(request: ReencryptRequest, node: DevNode = Depends(node_session)) -> CiphertextResponse:
    ciphertext = node.pool.connect(request.sender).balance_of(
        hex_to_bytes(request.public_key), hex_to_bytes(request.signature)
    )
    return CiphertextResponse(ciphertext=ciphertext)


# --- Tokens ---


@router.post("/tokens/{address}/mint")
def mint(address: str, request: MintRequest, node: DevNode = Depends(node_session)) -> TransactionReceipt:
    account = node.account(request.sender)
    node.token(address).connect(account).mint(request.to, hex_to_bytes(request.amount))
    return TransactionReceipt(sender=account.address)


@router.post("/tokens/{address}/approve")
def approve(address: str, request: ApproveRequest, node: DevNode = Depends(node_session)) -> TransactionReceipt:
    account = node.account(request.sender)
    node.token(address).connect(account).approve(request.spender, hex_to_bytes(request.amount))
    return TransactionReceipt(sender=account.address)


@router.post("/tokens/{address}/transfer")
def transfer(address: str, request: TransferRequest, node: DevNode = Depends(node_session)) -> TransactionReceipt:
    account = node.account(request.sender)
    node.token(address).connect(account).transfer(request.to, hex_to_bytes(request.amount))
    return TransactionReceipt(sender=account.address)


@router.post("/tokens/{address}/balance")
def token_balance(address: str, request: ReencryptRequest, node: DevNode = Depends(node_session)) -> CiphertextResponse:
    ciphertext = node.token(address).connect(request.sender).balance_of(
        hex_to_bytes(request.public_key), hex_to_bytes(request.signature)
    )
    return CiphertextResponse(ciphertext=ciphertext)
