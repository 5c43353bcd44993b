"""
Test suite for pool identity and price math

Covers:
  - PoolKey.create: checksumming, canonical currency order
  - Deterministic pool ids (keccak over the ABI-encoded key)
  - Static key validation
  - InMemoryPoolRegistry
  - sqrt-price / tick / 18-decimal price helpers
"""

import pytest

from poolhook.constants import MAX_LP_FEE, MAX_TICK, PRICE_PRECISION, Q96
from poolhook.exceptions import InvalidAddress, InvalidPoolParameters, PoolNotFound
from poolhook.exchange.pool_key import InMemoryPoolRegistry, PoolKey, normalize_address
from poolhook.exchange.pricing import (
    estimate_remaining,
    full_range_liquidity,
    full_range_ticks,
    impact_bps,
    price_to_sqrt_price,
    quote,
    reserve_price,
    sqrt_price_at_tick,
    sqrt_price_to_price,
    tick_at_sqrt_price,
)


TOKEN_A = "0x" + "aa" * 20
TOKEN_B = "0x" + "bb" * 20
HOOK = "0x" + "33" * 20


class TestPoolKey:

    def test_currencies_sorted(self):
        key = PoolKey.create(TOKEN_B, TOKEN_A, 3000, 60, HOOK)
        assert int(key.currency0, 16) < int(key.currency1, 16)
        assert key.currency0 == normalize_address(TOKEN_A)

    def test_pool_id_independent_of_argument_order(self):
        k1 = PoolKey.create(TOKEN_A, TOKEN_B, 3000, 60, HOOK)
        k2 = PoolKey.create(TOKEN_B, TOKEN_A, 3000, 60, HOOK)
        assert k1.pool_id == k2.pool_id

    def test_pool_id_format(self):
        pool_id = PoolKey.create(TOKEN_A, TOKEN_B, 3000, 60, HOOK).pool_id
        assert pool_id.startswith("0x")
        assert len(pool_id) == 66

    def test_fee_tier_changes_pool_id(self):
        k1 = PoolKey.create(TOKEN_A, TOKEN_B, 3000, 60, HOOK)
        k2 = PoolKey.create(TOKEN_A, TOKEN_B, 500, 60, HOOK)
        assert k1.pool_id != k2.pool_id

    def test_malformed_address_rejected(self):
        with pytest.raises(InvalidAddress):
            PoolKey.create("0x1234", TOKEN_B, 3000, 60, HOOK)

    def test_identical_currencies_rejected(self):
        key = PoolKey.create(TOKEN_A, TOKEN_A, 3000, 60, HOOK)
        with pytest.raises(InvalidPoolParameters, match="identical"):
            key.validate()

    def test_unsorted_currencies_rejected(self):
        a, b = normalize_address(TOKEN_A), normalize_address(TOKEN_B)
        with pytest.raises(InvalidPoolParameters, match="sorted"):
            PoolKey(b, a, 3000, 60, normalize_address(HOOK)).validate()

    def test_fee_above_maximum_rejected(self):
        key = PoolKey.create(TOKEN_A, TOKEN_B, MAX_LP_FEE + 1, 60, HOOK)
        with pytest.raises(InvalidPoolParameters, match="fee"):
            key.validate()

    @pytest.mark.parametrize("spacing", [0, 32768])
    def test_tick_spacing_bounds(self, spacing):
        key = PoolKey.create(TOKEN_A, TOKEN_B, 3000, spacing, HOOK)
        with pytest.raises(InvalidPoolParameters, match="tick spacing"):
            key.validate()


class TestRegistry:

    def test_register_and_lookup(self):
        registry = InMemoryPoolRegistry()
        key = PoolKey.create(TOKEN_A, TOKEN_B, 3000, 60, HOOK)
        pool_id = registry.register(key)
        assert registry.pool_exists(pool_id)
        assert registry.validate_pool(pool_id)
        assert registry.get_hook(pool_id) == normalize_address(HOOK)
        assert registry.get_pool_key(pool_id) == (key.currency0, key.currency1, 3000, key.hooks)
        assert registry.pool_count == 1

    def test_unknown_pool(self):
        registry = InMemoryPoolRegistry()
        assert not registry.validate_pool("0x" + "00" * 32)
        with pytest.raises(PoolNotFound):
            registry.get_hook("0x" + "00" * 32)


class TestPricing:

    def test_tick_zero_is_q96(self):
        assert sqrt_price_at_tick(0) == Q96
        assert tick_at_sqrt_price(Q96) == 0

    def test_tick_out_of_range(self):
        with pytest.raises(ValueError):
            sqrt_price_at_tick(MAX_TICK + 1)

    def test_price_round_trip_at_unity(self):
        assert sqrt_price_to_price(Q96) == PRICE_PRECISION
        assert price_to_sqrt_price(PRICE_PRECISION) == Q96

    def test_reserve_price(self):
        assert reserve_price(1000, 2000) == 2 * PRICE_PRECISION
        assert reserve_price(0, 0) == 0

    def test_full_range_liquidity(self):
        assert full_range_liquidity(1_000_000, 4_000_000) == 2_000_000

    def test_estimate_remaining(self):
        assert estimate_remaining(1_000_000, 250_000, 1_000_000) == 750_000
        assert estimate_remaining(1_000_000, 2_000_000, 1_000_000) == 0

    def test_quote_directions(self):
        assert quote(1000, 2 * PRICE_PRECISION, True) == 2000
        assert quote(1000, 2 * PRICE_PRECISION, False) == 500

    def test_impact_rounds_up(self):
        assert impact_bps(1000, 1000) == 0
        assert impact_bps(1000, 989) == 110
        assert impact_bps(3, 2) == 3334

    def test_full_range_ticks_aligned(self):
        lower, upper = full_range_ticks(60)
        assert upper == 887220
        assert lower == -upper
        assert upper % 60 == 0
