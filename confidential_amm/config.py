"""Width configuration for the confidential pool."""

from dataclasses import dataclass

from confidential_amm.constants import (
    DEFAULT_AMOUNT_BITS,
    DEFAULT_SHARE_BITS,
    DEFAULT_WIDE_BITS,
    SUPPORTED_BITS,
)
from confidential_amm.errors import ArithmeticOverflow


@dataclass(frozen=True)
class PoolConfig:
    """Ciphertext widths used by the pool arithmetic.

    Every intermediate product is computed at ``wide_bits`` and truncated
    back to its stored width, so the widths must leave room for the largest
    product the pool ever forms. Inconsistent widths are rejected at
    construction instead of overflowing silently inside a homomorphic op.

    Attributes:
        amount_bits: Width of token amounts and reserves (default: 16)
        share_bits: Width of liquidity-share balances and supply (default: 32)
        wide_bits: Width of intermediate products (default: 64)
    """

    amount_bits: int = DEFAULT_AMOUNT_BITS
    share_bits: int = DEFAULT_SHARE_BITS
    wide_bits: int = DEFAULT_WIDE_BITS

    def __post_init__(self) -> None:
        for name in ("amount_bits", "share_bits", "wide_bits"):
            bits = getattr(self, name)
            if bits not in SUPPORTED_BITS:
                raise ValueError(f"{name} must be one of {SUPPORTED_BITS}, got {bits}")

        # The supply is bounded by maxAmount * maxAmount
        if self.share_bits < 2 * self.amount_bits:
            raise ArithmeticOverflow(
                f"share_bits ({self.share_bits}) must be at least 2 * amount_bits ({2 * self.amount_bits})"
            )
        # reserve * shares and amount * totalShares
        if self.wide_bits < self.amount_bits + self.share_bits:
            raise ArithmeticOverflow(
                f"wide_bits ({self.wide_bits}) cannot hold amount * shares "
                f"({self.amount_bits} + {self.share_bits} bits)"
            )
        # amountIn * reserveOut and reserveIn + amountIn
        if self.wide_bits < 2 * self.amount_bits + 1:
            raise ArithmeticOverflow(
                f"wide_bits ({self.wide_bits}) cannot hold amount * amount "
                f"(2 * {self.amount_bits} + 1 bits)"
            )


# Default configuration instance
DEFAULT_POOL_CONFIG = PoolConfig()
