"""Encrypted pool state.

PoolState is immutable: every operation receives one and returns a new one,
and the contract swaps its reference only when the whole call succeeds.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType

from confidential_amm.config import DEFAULT_POOL_CONFIG, PoolConfig
from confidential_amm.fhe.encrypted_int import EncryptedInt
from confidential_amm.fhe.runtime import FheRuntime
from confidential_amm.models.types import is_valid_address


@dataclass(frozen=True)
class PoolState:
    """Reserves, share supply and per-holder share balances.

    Attributes:
        reserve0: Pool holdings of token0 (amount_bits)
        reserve1: Pool holdings of token1 (amount_bits)
        total_shares: Outstanding liquidity shares (share_bits)
        share_balances: Holder address -> shares (share_bits); entries are
            created on first deposit and never removed
        config: Widths the values above are stored at
    """

    reserve0: EncryptedInt
    reserve1: EncryptedInt
    total_shares: EncryptedInt
    share_balances: Mapping[str, EncryptedInt] = field(default_factory=lambda: MappingProxyType({}))
    config: PoolConfig = DEFAULT_POOL_CONFIG

    @classmethod
    def empty(cls, runtime: FheRuntime, config: PoolConfig = DEFAULT_POOL_CONFIG) -> PoolState:
        """State of a freshly deployed pool: encrypted zeros, no holders."""
        return cls(
            reserve0=EncryptedInt.zero(runtime, config.amount_bits),
            reserve1=EncryptedInt.zero(runtime, config.amount_bits),
            total_shares=EncryptedInt.zero(runtime, config.share_bits),
            config=config,
        )

    @property
    def runtime(self) -> FheRuntime:
        return self.reserve0.runtime

    @property
    def holders(self) -> list[str]:
        return list(self.share_balances)

    def share_balance(self, holder: str) -> EncryptedInt:
        """Shares held by ``holder``; an encrypted zero if they never deposited."""
        balance = self.share_balances.get(holder)
        if balance is None:
            return EncryptedInt.zero(self.runtime, self.config.share_bits)
        return balance

    def has_holder(self, holder: str) -> bool:
        return holder in self.share_balances

    def handles(self) -> Iterator[bytes]:
        """Handles of every stored value."""
        for value in (self.reserve0, self.reserve1, self.total_shares, *self.share_balances.values()):
            yield value.handle

    def reserves_for(self, zero_for_one: bool) -> tuple[EncryptedInt, EncryptedInt]:
        """Reserves ordered as (reserve_in, reserve_out)."""
        if zero_for_one:
            return self.reserve0, self.reserve1
        return self.reserve1, self.reserve0

    def with_reserves_for(self, zero_for_one: bool, reserve_in: EncryptedInt, reserve_out: EncryptedInt) -> PoolState:
        if zero_for_one:
            return replace(self, reserve0=reserve_in, reserve1=reserve_out)
        return replace(self, reserve0=reserve_out, reserve1=reserve_in)

    def with_share_balance(self, holder: str, balance: EncryptedInt) -> PoolState:
        balances = dict(self.share_balances)
        balances[holder] = balance
        return replace(self, share_balances=MappingProxyType(balances))

    def check_invariants(self) -> None:
        """Check everything about the state that is public.

        Values are encrypted, so only widths, runtime identity and holder
        keys can be verified here; the arithmetic invariants hold by
        construction of the operations.

        Raises:
            ValueError: If a stored value has the wrong width, belongs to a
                different runtime, or a holder key is not a normalized address
        """
        runtime = self.runtime
        expected = [
            ("reserve0", self.reserve0, self.config.amount_bits),
            ("reserve1", self.reserve1, self.config.amount_bits),
            ("total_shares", self.total_shares, self.config.share_bits),
        ]
        expected.extend(
            (f"share_balances[{holder}]", balance, self.config.share_bits)
            for holder, balance in self.share_balances.items()
        )

        for name, value, bits in expected:
            if value.bits != bits:
                raise ValueError(f"{name} is {value.bits}-bit, expected {bits}-bit")
            if value.runtime is not runtime:
                raise ValueError(f"{name} belongs to a different runtime")

        for holder in self.share_balances:
            if holder != holder.lower() or not is_valid_address(holder):
                raise ValueError(f"Holder key is not a normalized address: {holder}")
