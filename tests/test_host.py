"""
Test suite for the simulated host engine and clock

Covers:
  - Constant-product output with LP fee
  - Invariant never decreases across a sequence of swaps
  - Clock pinning and monotonicity
"""

import pytest

from poolhook.exchange.clock import Clock
from poolhook.exchange.host import swap_output

from conftest import LP, OTHER, TRADER


class TestSwapOutput:

    def test_fee_free_output(self):
        assert swap_output(1000, 1_000_000, 1_000_000, 0) == 999

    def test_fee_reduces_output(self):
        assert swap_output(1000, 1_000_000, 1_000_000, 3000) == 996

    def test_degenerate_inputs(self):
        assert swap_output(0, 1_000_000, 1_000_000, 3000) == 0
        assert swap_output(1000, 0, 1_000_000, 3000) == 0

    def test_full_fee_yields_nothing(self):
        assert swap_output(1000, 1_000_000, 1_000_000, 1_000_000) == 0


class TestLifecycle:

    def test_invariant_never_decreases_across_swaps(self, hook, host, key, clock, funded_pool):
        invariant = hook.get_pool_state(funded_pool).last_invariant
        for i, (account, zero_for_one) in enumerate(
            [(TRADER, True), (OTHER, False), (TRADER, False), (OTHER, True)]
        ):
            if i >= 2:
                clock.advance(60)
            host.swap(account, key, zero_for_one, 25_000)
            current = hook.get_pool_state(funded_pool).last_invariant
            assert current >= invariant
            invariant = current

    def test_add_swap_remove(self, hook, host, key, clock, funded_pool):
        host.swap(TRADER, key, True, 10_000)
        clock.advance(60)
        delta = host.remove_liquidity(LP, key, 100_000)
        assert delta.amount0 < 0 and delta.amount1 < 0
        reserve0, reserve1 = hook.get_reserves(funded_pool)
        assert reserve0 >= 1000 and reserve1 >= 1000


class TestClock:

    def test_pinned_start(self):
        clock = Clock(start=100.0)
        assert clock.is_pinned
        assert clock.now() == 100.0

    def test_advance(self):
        clock = Clock(start=100.0)
        assert clock.advance(60) == 160.0

    def test_backwards_rejected(self):
        clock = Clock(start=100.0)
        with pytest.raises(ValueError):
            clock.set(99.0)
        with pytest.raises(ValueError):
            clock.advance(-1)

    def test_wall_clock_by_default(self):
        assert not Clock().is_pinned
        assert Clock().now() > 0
