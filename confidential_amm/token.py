"""Confidential token ledger.

ConfidentialToken keeps encrypted balances and allowances for one asset. The
pool consumes it as a collaborator: it pulls deposits with transfer_from()
and pays out with transfer().

Balance and allowance checks are evaluated homomorphically; the runtime then
reveals only the pass/fail bit so a failed check can abort the transaction.
Which check failed is the only information a failed transfer discloses.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING

import structlog

from confidential_amm.access import AccessGate
from confidential_amm.chain import Contract
from confidential_amm.constants import DEFAULT_AMOUNT_BITS, SUPPORTED_BITS, ZERO_ADDRESS
from confidential_amm.errors import (
    InsufficientAllowance,
    InsufficientBalance,
    SupplyOverflow,
    Unauthorized,
)
from confidential_amm.fhe.encrypted_int import EncryptedBool, EncryptedInt
from confidential_amm.models.types import normalize_address

if TYPE_CHECKING:
    from confidential_amm.chain import Chain

logger = structlog.get_logger()

Amount = bytes | EncryptedInt


class ConfidentialToken(Contract):
    """Encrypted-balance token with owner-gated reads.

    Attributes:
        name: Token name
        symbol: Token symbol
        bits: Width of every balance, allowance and amount
    """

    def __init__(
        self,
        chain: Chain,
        address: str,
        deployer: str,
        name: str,
        symbol: str,
        bits: int = DEFAULT_AMOUNT_BITS,
    ) -> None:
        super().__init__(chain, address, deployer)
        if bits not in SUPPORTED_BITS:
            raise ValueError(f"Token width must be one of {SUPPORTED_BITS}, got {bits}")
        self.name = name
        self.symbol = symbol
        self.bits = bits
        self._total_supply = EncryptedInt.zero(self.runtime, bits)
        self._balances: dict[str, EncryptedInt] = {}
        self._allowances: dict[tuple[str, str], EncryptedInt] = {}
        self._gate = AccessGate(self.runtime, chain.chain_id, self.address)

    def __repr__(self) -> str:
        return f"ConfidentialToken({self.symbol}, {self.address})"

    # --- Storage ---

    def _snapshot(self) -> tuple[EncryptedInt, dict[str, EncryptedInt], dict[tuple[str, str], EncryptedInt]]:
        return self._total_supply, dict(self._balances), dict(self._allowances)

    def _restore(
        self, snapshot: tuple[EncryptedInt, dict[str, EncryptedInt], dict[tuple[str, str], EncryptedInt]]
    ) -> None:
        self._total_supply, balances, allowances = snapshot
        self._balances = dict(balances)
        self._allowances = dict(allowances)

    def _handles(self) -> Iterator[bytes]:
        yield self._total_supply.handle
        for value in (*self._balances.values(), *self._allowances.values()):
            yield value.handle

    def _balance(self, holder: str) -> EncryptedInt:
        balance = self._balances.get(holder)
        if balance is None:
            return EncryptedInt.zero(self.runtime, self.bits)
        return balance

    def _allowance(self, owner: str, spender: str) -> EncryptedInt:
        allowance = self._allowances.get((owner, spender))
        if allowance is None:
            return EncryptedInt.zero(self.runtime, self.bits)
        return allowance

    def _counterparty(self, address: str) -> str:
        address = normalize_address(address, validate=True)
        if address == ZERO_ADDRESS:
            raise ValueError(f"{self.symbol}: zero address")
        return address

    def _require(self, predicate: EncryptedBool, error: Exception) -> None:
        if not self.runtime.reveal_predicate(predicate.handle):
            raise error

    def _move(self, sender: str, recipient: str, amount: EncryptedInt) -> None:
        self._balances[sender] = self._balance(sender) - amount
        self._balances[recipient] = self._balance(recipient) + amount

    # --- Mutating operations ---

    def mint(self, to: str, amount: Amount) -> None:
        """Create ``amount`` new tokens for ``to``. Owner only.

        Raises:
            Unauthorized: If the caller is not the deployer
            ValueError: If ``to`` is the zero address
            SupplyOverflow: If the total supply would exceed the token width
        """
        if self.msg_sender != self.deployer:
            raise Unauthorized(f"Only the owner can mint {self.symbol}")
        to = self._counterparty(to)
        value = self.encrypted(amount, self.bits)

        new_supply = self._total_supply + value
        # A wrapped sum is smaller than the old supply
        self._require(new_supply.ge(self._total_supply), SupplyOverflow(f"{self.symbol} supply overflow"))
        self._total_supply = new_supply
        self._balances[to] = self._balance(to) + value
        logger.info("tokens_minted", token=self.symbol, to=to)

    def approve(self, spender: str, amount: Amount) -> None:
        """Set the caller's allowance for ``spender`` to ``amount``."""
        owner = self.msg_sender
        spender = self._counterparty(spender)
        self._allowances[(owner, spender)] = self.encrypted(amount, self.bits)
        logger.info("allowance_set", token=self.symbol, owner=owner, spender=spender)

    def transfer(self, to: str, amount: Amount) -> None:
        """Move ``amount`` from the caller to ``to``.

        Raises:
            InsufficientBalance: If the caller's hidden balance is below ``amount``
        """
        sender = self.msg_sender
        to = self._counterparty(to)
        value = self.encrypted(amount, self.bits)

        self._require(value.le(self._balance(sender)), InsufficientBalance(f"{self.symbol}: insufficient balance"))
        self._move(sender, to, value)
        logger.info("tokens_transferred", token=self.symbol, sender=sender, to=to)

    def transfer_from(self, from_: str, to: str, amount: Amount) -> None:
        """Move ``amount`` from ``from_`` to ``to`` using the caller's allowance.

        Raises:
            InsufficientAllowance: If the hidden allowance is below ``amount``
            InsufficientBalance: If the hidden balance of ``from_`` is below ``amount``
        """
        spender = self.msg_sender
        from_ = normalize_address(from_, validate=True)
        to = self._counterparty(to)
        value = self.encrypted(amount, self.bits)

        allowance = self._allowance(from_, spender)
        self._require(value.le(allowance), InsufficientAllowance(f"{self.symbol}: insufficient allowance"))
        self._require(value.le(self._balance(from_)), InsufficientBalance(f"{self.symbol}: insufficient balance"))

        self._allowances[(from_, spender)] = allowance - value
        self._move(from_, to, value)
        logger.info("tokens_transferred_from", token=self.symbol, spender=spender, sender=from_, to=to)

    # --- Owner-gated reads ---

    def balance_of(self, public_key: bytes, signature: bytes) -> bytes:
        """Caller's balance, re-encrypted under ``public_key``.

        Raises:
            AuthenticationError: If ``signature`` does not authorize ``public_key`` for the caller
        """
        capability = self._gate.authorize(self.msg_sender, public_key, signature)
        return self._gate.disclose(capability, self._balance(capability.owner))

    def allowance(self, spender: str, public_key: bytes, signature: bytes) -> bytes:
        """Caller's allowance for ``spender``, re-encrypted under ``public_key``."""
        capability = self._gate.authorize(self.msg_sender, public_key, signature)
        return self._gate.disclose(capability, self._allowance(capability.owner, normalize_address(spender)))
