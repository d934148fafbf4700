"""Oblivious constant-product math.

Every function here computes all candidate results unconditionally and picks
among them with select(); none of them branches on an encrypted value.
Products are formed at ``config.wide_bits`` and only the final result is
narrowed back to its stored width. Division truncates toward zero, which
always rounds in the pool's favor.
"""

from __future__ import annotations

from confidential_amm.config import PoolConfig
from confidential_amm.fhe.encrypted_int import EncryptedInt, select


def mint_shares(
    amount0: EncryptedInt,
    amount1: EncryptedInt,
    reserve0: EncryptedInt,
    reserve1: EncryptedInt,
    total_shares: EncryptedInt,
    config: PoolConfig,
) -> EncryptedInt:
    """Shares minted for a deposit of (amount0, amount1).

    Empty pool:     amount0 + amount1
    Non-empty pool: min(amount0 * total / reserve0, amount1 * total / reserve1),
                    or 0 while either reserve is zero

    With this rule total**2 / (reserve0 * reserve1) never grows, so the
    supply stays below 2**(2 * amount_bits) and fits in ``share_bits``.

    Args:
        amount0: Deposit of token0
        amount1: Deposit of token1
        reserve0: Reserve of token0 before the deposit
        reserve1: Reserve of token1 before the deposit
        total_shares: Share supply before the deposit
        config: Pool widths

    Returns:
        Minted shares at ``config.share_bits``
    """
    wide = config.wide_bits
    a0, a1 = amount0.widen(wide), amount1.widen(wide)
    supply = total_shares.widen(wide)

    initial = a0 + a1

    # A zero reserve with shares outstanding (left by a single-sided first
    # deposit) has no price to mint against, so the deposit mints nothing.
    # The substitute divisor only keeps the discarded quotients defined.
    share0 = a0 * supply // reserve0.widen(wide).nonzero_or_one()
    share1 = a1 * supply // reserve1.widen(wide).nonzero_or_one()
    proportional = select(reserve0.eq(0) | reserve1.eq(0), 0, share0.min(share1))

    return select(total_shares.eq(0), initial, proportional).narrow(config.share_bits)


def withdrawal_amount(
    reserve: EncryptedInt,
    shares: EncryptedInt,
    total_shares: EncryptedInt,
    config: PoolConfig,
) -> EncryptedInt:
    """Tokens paid out for burning ``shares``: reserve * shares / total.

    ``shares`` must already be clamped to at most ``total_shares``, so the
    result never exceeds ``reserve``. A zero supply is replaced by a divisor
    of one; the result is then zero because ``shares`` is zero too.

    Returns:
        Payout at ``config.amount_bits``
    """
    wide = config.wide_bits
    numerator = reserve.widen(wide) * shares.widen(wide)
    return (numerator // total_shares.widen(wide).nonzero_or_one()).narrow(config.amount_bits)


def swap_amount_out(
    amount_in: EncryptedInt,
    reserve_in: EncryptedInt,
    reserve_out: EncryptedInt,
    config: PoolConfig,
) -> EncryptedInt:
    """Output of a fee-less constant-product swap.

    reserve_out - reserve_in * reserve_out / (reserve_in + amount_in) equals
    amount_in * reserve_out / (reserve_in + amount_in) exactly; the second form
    is evaluated so the truncated remainder stays in the pool and the
    product of reserves never decreases.

    Returns:
        Output amount at ``config.amount_bits``
    """
    wide = config.wide_bits
    a = amount_in.widen(wide)
    r_in = reserve_in.widen(wide)
    r_out = reserve_out.widen(wide)

    denominator = (r_in + a).nonzero_or_one()
    return (a * r_out // denominator).narrow(config.amount_bits)
