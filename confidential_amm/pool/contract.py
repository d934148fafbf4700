"""Confidential constant-product pool contract.

ConfidentialPool wires the pure state transitions in
``confidential_amm.pool.operations`` to the two token ledgers. Every
mutating entry point follows the same shape:

1. decode the caller's ciphertexts
2. move tokens on the ledgers (any failure aborts the whole call)
3. commit the next PoolState

The host chain reverts ledger storage on failure and the pool commits its
state last, so a failed call leaves both exactly as they were.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING

import structlog

from confidential_amm.access import AccessGate
from confidential_amm.chain import Contract
from confidential_amm.config import DEFAULT_POOL_CONFIG, PoolConfig
from confidential_amm.errors import UnknownToken
from confidential_amm.fhe.encrypted_int import EncryptedInt
from confidential_amm.models.types import normalize_address
from confidential_amm.pool import operations
from confidential_amm.pool.state import PoolState
from confidential_amm.token import ConfidentialToken

if TYPE_CHECKING:
    from confidential_amm.chain import Chain

logger = structlog.get_logger()


class ConfidentialPool(Contract):
    """Two-asset liquidity pool over encrypted reserves and shares."""

    def __init__(
        self,
        chain: Chain,
        address: str,
        deployer: str,
        token0: str,
        token1: str,
        config: PoolConfig = DEFAULT_POOL_CONFIG,
    ) -> None:
        super().__init__(chain, address, deployer)
        token0 = normalize_address(token0, validate=True)
        token1 = normalize_address(token1, validate=True)
        if token0 == token1:
            raise ValueError(f"Pool tokens must differ, got {token0} twice")

        self._token0 = self._resolve_token(token0, config)
        self._token1 = self._resolve_token(token1, config)
        self.config = config
        self._state = PoolState.empty(self.runtime, config)
        self._state.check_invariants()
        self._gate = AccessGate(self.runtime, chain.chain_id, self.address)

    def _resolve_token(self, address: str, config: PoolConfig) -> ConfidentialToken:
        contract = self.chain.contract_at(address)
        if not isinstance(contract, ConfidentialToken):
            raise ValueError(f"{address} is not a confidential token")
        if contract.bits != config.amount_bits:
            raise ValueError(f"{contract.symbol} is {contract.bits}-bit, pool expects {config.amount_bits}-bit amounts")
        return contract

    def __repr__(self) -> str:
        return f"ConfidentialPool({self._token0.symbol}/{self._token1.symbol}, {self.address})"

    # --- Storage ---

    @property
    def state(self) -> PoolState:
        """Current encrypted state (read-only; values stay encrypted)."""
        return self._state

    def _snapshot(self) -> PoolState:
        return self._state

    def _restore(self, snapshot: PoolState) -> None:
        self._state = snapshot

    def _handles(self) -> Iterator[bytes]:
        return self._state.handles()

    def _commit(self, state: PoolState) -> None:
        state.check_invariants()
        self._state = state

    # --- Plaintext accessors ---

    def token0(self) -> str:
        return self._token0.address

    def token1(self) -> str:
        return self._token1.address

    def _is_token0(self, token: str) -> bool:
        """Which side of the pool ``token`` is on; token identity is public."""
        token = normalize_address(token)
        if token == self._token0.address:
            return True
        if token == self._token1.address:
            return False
        raise UnknownToken(f"Token {token} not in pool")

    # --- Mutating operations ---

    def add_liquidity(self, amount0: bytes | EncryptedInt, amount1: bytes | EncryptedInt) -> None:
        """Deposit both tokens and receive liquidity shares.

        The caller must have approved both amounts to the pool on each ledger.

        Raises:
            CiphertextDecodeError: If an amount is malformed
            InsufficientAllowance: If a ledger allowance is too small
            InsufficientBalance: If a ledger balance is too small
        """
        provider = self.msg_sender
        a0 = self.encrypted(amount0, self.config.amount_bits)
        a1 = self.encrypted(amount1, self.config.amount_bits)

        self.call(self._token0).transfer_from(provider, self.address, a0)
        self.call(self._token1).transfer_from(provider, self.address, a1)

        result = operations.add_liquidity(self._state, provider, a0, a1)
        self._commit(result.state)
        logger.info("liquidity_added", pool=self.address, provider=provider, holders=len(result.state.share_balances))

    def remove_liquidity(self, share_amount: bytes | EncryptedInt) -> None:
        """Burn shares (clamped to the caller's balance) and withdraw both tokens.

        Raises:
            CiphertextDecodeError: If the amount is malformed
        """
        provider = self.msg_sender
        shares = self.encrypted(share_amount, self.config.share_bits)

        result = operations.remove_liquidity(self._state, provider, shares)

        self.call(self._token0).transfer(provider, result.amount0)
        self.call(self._token1).transfer(provider, result.amount1)

        self._commit(result.state)
        logger.info("liquidity_removed", pool=self.address, provider=provider)

    def swap(self, token_in: str, amount_in: bytes | EncryptedInt) -> None:
        """Sell ``amount_in`` of ``token_in`` for the other token.

        Raises:
            UnknownToken: If ``token_in`` is not one of the pool's tokens
            CiphertextDecodeError: If the amount is malformed
            InsufficientAllowance: If the ledger allowance is too small
            InsufficientBalance: If the ledger balance is too small
        """
        trader = self.msg_sender
        zero_for_one = self._is_token0(token_in)
        sold, bought = (self._token0, self._token1) if zero_for_one else (self._token1, self._token0)
        value = self.encrypted(amount_in, self.config.amount_bits)

        self.call(sold).transfer_from(trader, self.address, value)
        result = operations.swap(self._state, zero_for_one, value)
        self.call(bought).transfer(trader, result.amount_out)

        self._commit(result.state)
        logger.info("swap_executed", pool=self.address, trader=trader, token_in=sold.address, token_out=bought.address)

    # --- Owner-gated reads ---

    def get_reserves(self, public_key: bytes, signature: bytes) -> tuple[bytes, bytes]:
        """Both reserves, re-encrypted under ``public_key``.

        Raises:
            AuthenticationError: If ``signature`` does not authorize ``public_key`` for the caller
        """
        capability = self._gate.authorize(self.msg_sender, public_key, signature)
        return (
            self._gate.disclose(capability, self._state.reserve0),
            self._gate.disclose(capability, self._state.reserve1),
        )

    def get_total_supply(self, public_key: bytes, signature: bytes) -> bytes:
        """Total share supply, re-encrypted under ``public_key``."""
        capability = self._gate.authorize(self.msg_sender, public_key, signature)
        return self._gate.disclose(capability, self._state.total_shares)

    def balance_of(self, public_key: bytes, signature: bytes) -> bytes:
        """Caller's share balance, re-encrypted under ``public_key``."""
        capability = self._gate.authorize(self.msg_sender, public_key, signature)
        return self._gate.disclose(capability, self._state.share_balance(capability.owner))
