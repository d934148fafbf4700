"""Pydantic models for the dev-node API.

Ciphertexts, public keys and signatures travel as 0x-prefixed hex.
"""

from pydantic import BaseModel, Field

from confidential_amm.models.types import Address, Bytes32, HexBytes


class SenderRequest(BaseModel):
    """Base for requests submitted by one of the node's unlocked accounts."""

    sender: Address


class AddLiquidityRequest(SenderRequest):
    amount0: HexBytes = Field(description="Input ciphertext for token0")
    amount1: HexBytes = Field(description="Input ciphertext for token1")


class RemoveLiquidityRequest(SenderRequest):
    shares: HexBytes = Field(description="Input ciphertext for the shares to burn")


class SwapRequest(SenderRequest):
    token_in: Address = Field(alias="tokenIn")
    amount_in: HexBytes = Field(alias="amountIn", description="Input ciphertext for the amount sold")

    model_config = {"populate_by_name": True}


class ReencryptRequest(SenderRequest):
    """Owner-gated read: the sender's re-encryption key and its EIP-712 signature."""

    public_key: Bytes32 = Field(alias="publicKey")
    signature: HexBytes

    model_config = {"populate_by_name": True}


class MintRequest(SenderRequest):
    to: Address
    amount: HexBytes


class ApproveRequest(SenderRequest):
    spender: Address
    amount: HexBytes


class TransferRequest(SenderRequest):
    to: Address
    amount: HexBytes


class TransactionReceipt(BaseModel):
    """Acknowledgement of a committed transaction."""

    status: str = "committed"
    sender: Address


class PoolInfo(BaseModel):
    address: Address
    token0: Address
    token1: Address
    amount_bits: int = Field(alias="amountBits")
    share_bits: int = Field(alias="shareBits")

    model_config = {"populate_by_name": True}


class NetworkInfo(BaseModel):
    chain_id: int = Field(alias="chainId")
    network_public_key: HexBytes = Field(alias="networkPublicKey")
    accounts: list[Address]

    model_config = {"populate_by_name": True}


class CiphertextResponse(BaseModel):
    ciphertext: HexBytes


class ReservesResponse(BaseModel):
    reserve0: HexBytes
    reserve1: HexBytes


class ErrorResponse(BaseModel):
    error: str
    detail: str
