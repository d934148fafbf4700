"""Pydantic models and shared types for the confidential AMM."""

from confidential_amm.models.api import (
    AddLiquidityRequest,
    ApproveRequest,
    CiphertextResponse,
    ErrorResponse,
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
from confidential_amm.models.types import Address, Bytes32, HexBytes

__all__ = [
    # Types
    "Address",
    "Bytes32",
    "HexBytes",
    # Requests
    "AddLiquidityRequest",
    "ApproveRequest",
    "MintRequest",
    "ReencryptRequest",
    "RemoveLiquidityRequest",
    "SwapRequest",
    "TransferRequest",
    # Responses
    "CiphertextResponse",
    "ErrorResponse",
    "NetworkInfo",
    "PoolInfo",
    "ReservesResponse",
    "TransactionReceipt",
]
