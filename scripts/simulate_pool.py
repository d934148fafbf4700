#!/usr/bin/env python3
"""Replay a deposit-then-swap scenario against a fresh confidential pool.

Alice mints both tokens, deposits liquidity, and funds Bob, who then sells
token0 into the pool. Every value printed is obtained the way a wallet would
get it: a signed re-encryption read decrypted with the holder's own key.

Usage:
    python scripts/simulate_pool.py
    python scripts/simulate_pool.py --mint 1000 --deposit 500 --swap 100 --verbose
"""

from __future__ import annotations

import argparse
import logging
import sys

import structlog

from confidential_amm.api.node import build_dev_node
from confidential_amm.client import FheInstance, create_instances
from confidential_amm.config import PoolConfig
from confidential_amm.pool import ConfidentialPool
from confidential_amm.token import ConfidentialToken

logger = structlog.get_logger()


def reveal_balance(instance: FheInstance, contract: ConfidentialToken | ConfidentialPool) -> int:
    token = instance.get_token_signature(contract.address)
    blob = contract.connect(instance.account).balance_of(token.public_key, token.signature)
    return instance.decrypt(contract.address, blob)


def main() -> int:
    parser = argparse.ArgumentParser(description="Simulate a confidential AMM deposit and swap")
    parser.add_argument("--mint", type=int, default=1000, help="Tokens minted to alice per asset (default: 1000)")
    parser.add_argument("--deposit", type=int, default=500, help="Liquidity deposited per asset (default: 500)")
    parser.add_argument("--swap", type=int, default=100, help="Token0 sold by bob (default: 100)")
    parser.add_argument(
        "--amount-bits", type=int, choices=[8, 16], default=16, help="Token/reserve width (default: 16)"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    args = parser.parse_args()

    log_level = logging.DEBUG if args.verbose else logging.WARNING
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
    )

    if args.mint >= 1 << args.amount_bits:
        logger.error("mint_exceeds_width", mint=args.mint, amount_bits=args.amount_bits)
        print(f"Error: --mint must fit in {args.amount_bits} bits", file=sys.stderr)
        return 1
    if args.deposit > args.mint or args.swap > args.mint - args.deposit:
        logger.error("invalid_amounts", mint=args.mint, deposit=args.deposit, swap=args.swap)
        print("Error: deposit and swap must fit in the minted supply", file=sys.stderr)
        return 1

    config = PoolConfig(amount_bits=args.amount_bits, share_bits=2 * args.amount_bits)
    node = build_dev_node(config=config)
    alice, bob = node.accounts["alice"], node.accounts["bob"]
    instances = create_instances(node.chain.runtime.network_public_key, node.chain.chain_id, node.accounts)
    enc = instances["alice"]
    bob_enc = instances["bob"]
    bits = config.amount_bits

    for token in (node.token0, node.token1):
        token.connect(alice).mint(alice.address, enc.encrypt(args.mint, bits))
        token.connect(alice).approve(node.pool.address, enc.encrypt(args.mint, bits))

    node.pool.connect(alice).add_liquidity(enc.encrypt(args.deposit, bits), enc.encrypt(args.deposit, bits))

    node.token0.connect(alice).transfer(bob.address, enc.encrypt(args.swap, bits))
    node.token0.connect(bob).approve(node.pool.address, bob_enc.encrypt(args.swap, bits))
    node.pool.connect(bob).swap(node.token0.address, bob_enc.encrypt(args.swap, bits))

    pool_token = enc.get_token_signature(node.pool.address)
    reserve0, reserve1 = node.pool.connect(alice).get_reserves(pool_token.public_key, pool_token.signature)
    supply = node.pool.connect(alice).get_total_supply(pool_token.public_key, pool_token.signature)

    print(f"reserve0        {enc.decrypt(node.pool.address, reserve0)}")
    print(f"reserve1        {enc.decrypt(node.pool.address, reserve1)}")
    print(f"total shares    {enc.decrypt(node.pool.address, supply)}")
    print(f"alice shares    {reveal_balance(enc, node.pool)}")
    print(f"bob token0      {reveal_balance(bob_enc, node.token0)}")
    print(f"bob token1      {reveal_balance(bob_enc, node.token1)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
