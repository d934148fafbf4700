"""Pool state transitions.

Each function takes a PoolState and returns a result holding the next state
plus the encrypted amounts the contract must settle on the token ledgers.
They never touch a ledger themselves and never branch on an encrypted value.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from confidential_amm.fhe.encrypted_int import EncryptedInt, select
from confidential_amm.pool.math import mint_shares, swap_amount_out, withdrawal_amount
from confidential_amm.pool.state import PoolState


@dataclass(frozen=True)
class DepositResult:
    """Outcome of add_liquidity."""

    state: PoolState
    minted: EncryptedInt


@dataclass(frozen=True)
class WithdrawalResult:
    """Outcome of remove_liquidity."""

    state: PoolState
    burned: EncryptedInt
    amount0: EncryptedInt
    amount1: EncryptedInt


@dataclass(frozen=True)
class SwapResult:
    """Outcome of swap."""

    state: PoolState
    zero_for_one: bool
    amount_in: EncryptedInt
    amount_out: EncryptedInt


def add_liquidity(state: PoolState, provider: str, amount0: EncryptedInt, amount1: EncryptedInt) -> DepositResult:
    """Credit a deposit that the caller has already pulled into the pool.

    Args:
        state: State before the deposit
        provider: Normalized address receiving the shares
        amount0: Deposit of token0 (amount_bits)
        amount1: Deposit of token1 (amount_bits)
    """
    config = state.config
    minted = mint_shares(amount0, amount1, state.reserve0, state.reserve1, state.total_shares, config)

    next_state = replace(
        state,
        reserve0=state.reserve0 + amount0,
        reserve1=state.reserve1 + amount1,
        total_shares=state.total_shares + minted,
    )
    next_state = next_state.with_share_balance(provider, state.share_balance(provider) + minted)
    return DepositResult(state=next_state, minted=minted)


def remove_liquidity(state: PoolState, provider: str, share_amount: EncryptedInt) -> WithdrawalResult:
    """Burn up to ``share_amount`` of the provider's shares.

    The burn is clamped to the provider's balance with select(), so asking
    for more than is held burns exactly the balance and nothing wraps. A
    provider without a share entry burns an encrypted zero and no entry is
    created for them.

    Args:
        state: State before the withdrawal
        provider: Normalized address burning shares
        share_amount: Requested burn (share_bits)
    """
    config = state.config
    balance = state.share_balance(provider)
    requested = share_amount.widen(config.share_bits)
    burned = select(requested.le(balance), requested, balance)

    amount0 = withdrawal_amount(state.reserve0, burned, state.total_shares, config)
    amount1 = withdrawal_amount(state.reserve1, burned, state.total_shares, config)

    next_state = replace(
        state,
        reserve0=state.reserve0 - amount0,
        reserve1=state.reserve1 - amount1,
        total_shares=state.total_shares - burned,
    )
    if state.has_holder(provider):
        next_state = next_state.with_share_balance(provider, balance - burned)

    return WithdrawalResult(state=next_state, burned=burned, amount0=amount0, amount1=amount1)


def swap(state: PoolState, zero_for_one: bool, amount_in: EncryptedInt) -> SwapResult:
    """Price and apply a swap whose input has already been pulled into the pool.

    Args:
        state: State before the swap
        zero_for_one: True when selling token0 for token1 (public)
        amount_in: Input amount (amount_bits)
    """
    reserve_in, reserve_out = state.reserves_for(zero_for_one)
    amount_out = swap_amount_out(amount_in, reserve_in, reserve_out, state.config)

    next_state = state.with_reserves_for(zero_for_one, reserve_in + amount_in, reserve_out - amount_out)
    return SwapResult(state=next_state, zero_for_one=zero_for_one, amount_in=amount_in, amount_out=amount_out)
