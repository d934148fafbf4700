"""Tests for pool width configuration."""

import pytest

from confidential_amm.config import DEFAULT_POOL_CONFIG, PoolConfig
from confidential_amm.errors import ArithmeticOverflow


class TestPoolConfig:
    """Tests for PoolConfig validation."""

    def test_defaults(self):
        """Defaults are 16-bit amounts, 32-bit shares, 64-bit intermediates."""
        assert DEFAULT_POOL_CONFIG == PoolConfig(amount_bits=16, share_bits=32, wide_bits=64)

    def test_eight_bit_amounts(self):
        """8-bit amounts with 16-bit shares fit in 32-bit intermediates."""
        config = PoolConfig(amount_bits=8, share_bits=16, wide_bits=32)
        assert config.wide_bits == 32

    def test_frozen(self):
        """Configs are immutable."""
        with pytest.raises(AttributeError):
            DEFAULT_POOL_CONFIG.amount_bits = 8  # type: ignore[misc]

    @pytest.mark.parametrize("field", ["amount_bits", "share_bits", "wide_bits"])
    def test_unsupported_width(self, field):
        """Widths outside 8/16/32/64 are rejected."""
        with pytest.raises(ValueError, match=field):
            PoolConfig(**{field: 24})

    def test_shares_must_hold_amount_squared(self):
        """The supply can reach maxAmount * maxAmount, so 16-bit amounts need 32-bit shares."""
        with pytest.raises(ArithmeticOverflow, match="2 \\* amount_bits"):
            PoolConfig(amount_bits=16, share_bits=16)

    def test_wide_must_hold_amount_times_shares(self):
        """16-bit amounts times 32-bit shares need 48 bits."""
        with pytest.raises(ArithmeticOverflow, match="amount \\* shares"):
            PoolConfig(amount_bits=16, share_bits=32, wide_bits=32)

    def test_wide_must_hold_32_bit_products(self):
        """32-bit amounts cannot be multiplied exactly within 64 bits."""
        with pytest.raises(ArithmeticOverflow):
            PoolConfig(amount_bits=32, share_bits=64, wide_bits=64)

    def test_overflow_is_arithmetic_error(self):
        """ArithmeticOverflow is catchable as ArithmeticError."""
        assert issubclass(ArithmeticOverflow, ArithmeticError)
