"""
Simulated host engine.

Stands in for the pool manager that owns settlement: for each operation it
computes the balance delta itself, calls the hook's before-callback, then
the after-callback with that delta. Either callback failing aborts the
whole operation; the hook's own transaction has already rolled back.

Positions are full-range; swap output follows the constant-product curve
with the pool's LP fee taken from the input, rounded down.
"""

from __future__ import annotations

from typing import Optional

from ..constants import FEE_DENOMINATOR
from ..exceptions import InvalidAmount
from ..logger import get_logger
from .hooks import ModifyLiquidityParams, PoolHook, SwapParams
from .ledger import BalanceDelta
from .pool_key import InMemoryPoolRegistry, PoolKey, normalize_address
from .pricing import full_range_liquidity, full_range_ticks, tick_at_sqrt_price

logger = get_logger(__name__)


def swap_output(amount_in: int, reserve_in: int, reserve_out: int, fee: int) -> int:
    """Constant-product output for ``amount_in`` with ``fee`` in hundredths of a bip."""
    if amount_in <= 0 or reserve_in <= 0 or reserve_out <= 0:
        return 0
    amount_in_with_fee = amount_in * (FEE_DENOMINATOR - fee)
    return amount_in_with_fee * reserve_out // (reserve_in * FEE_DENOMINATOR + amount_in_with_fee)


class SimulatedHost:
    """Drives full pool lifecycles through a ``PoolHook``."""

    def __init__(self, hook: PoolHook, address: str, registry: Optional[InMemoryPoolRegistry] = None):
        self.hook = hook
        self.address = normalize_address(address)
        self.registry = registry

    def initialize(self, sender: str, key: PoolKey, sqrt_price_x96: int) -> str:
        if self.registry is not None:
            self.registry.register(key)
        self.hook.before_initialize(self.address, sender, key, sqrt_price_x96)
        tick = tick_at_sqrt_price(sqrt_price_x96)
        self.hook.after_initialize(self.address, sender, key, sqrt_price_x96, tick)
        return key.pool_id

    def add_liquidity(
        self,
        sender: str,
        key: PoolKey,
        amount0: int,
        amount1: int,
        tick_lower: Optional[int] = None,
        tick_upper: Optional[int] = None,
    ) -> BalanceDelta:
        if tick_lower is None or tick_upper is None:
            tick_lower, tick_upper = full_range_ticks(key.tick_spacing)
        params = ModifyLiquidityParams(
            tick_lower=tick_lower,
            tick_upper=tick_upper,
            liquidity_delta=full_range_liquidity(max(amount0, 0), max(amount1, 0)),
        )
        self.hook.before_add_liquidity(self.address, sender, key, params)
        delta = BalanceDelta(amount0, amount1)
        self.hook.after_add_liquidity(self.address, sender, key, params, delta)
        return delta

    def remove_liquidity(self, sender: str, key: PoolKey, liquidity: int) -> BalanceDelta:
        if liquidity <= 0:
            raise InvalidAmount("liquidity must be positive", liquidity=liquidity)
        tick_lower, tick_upper = full_range_ticks(key.tick_spacing)
        params = ModifyLiquidityParams(tick_lower, tick_upper, -liquidity)
        self.hook.before_remove_liquidity(self.address, sender, key, params)

        reserve0, reserve1 = self.hook.get_reserves(key.pool_id)
        total = full_range_liquidity(reserve0, reserve1)
        delta = BalanceDelta(-(reserve0 * liquidity // total), -(reserve1 * liquidity // total))
        self.hook.after_remove_liquidity(self.address, sender, key, params, delta)
        return delta

    def swap(
        self,
        sender: str,
        key: PoolKey,
        zero_for_one: bool,
        amount_in: int,
        sqrt_price_limit_x96: Optional[int] = None,
    ) -> BalanceDelta:
        """Exact-input swap; returns the pool-perspective delta."""
        params = SwapParams(zero_for_one, -amount_in, sqrt_price_limit_x96)
        self.hook.before_swap(self.address, sender, key, params)

        state = self.hook.get_pool_state(key.pool_id)
        if zero_for_one:
            out = swap_output(amount_in, state.reserve0, state.reserve1, state.lp_fee)
            delta = BalanceDelta(amount_in, -out)
        else:
            out = swap_output(amount_in, state.reserve1, state.reserve0, state.lp_fee)
            delta = BalanceDelta(-out, amount_in)
        logger.debug("Swap %s in=%d out=%d fee=%d", key.pool_id, amount_in, out, state.lp_fee)

        self.hook.after_swap(self.address, sender, key, params, delta)
        return delta

    def donate(self, sender: str, key: PoolKey, amount0: int, amount1: int) -> BalanceDelta:
        self.hook.before_donate(self.address, sender, key, amount0, amount1)
        self.hook.after_donate(self.address, sender, key, amount0, amount1)
        return BalanceDelta(amount0, amount1)
