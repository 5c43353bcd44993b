"""
Price math helpers.

  - sqrt-price (Q64.96) ↔ tick conversion, Uniswap style
  - 18-decimal fixed-point spot prices (token1 per token0)
  - full-range liquidity estimate and price-impact estimate in bps

All values are integers; nothing here touches pool state.
"""

from __future__ import annotations

import math

from ..constants import (
    BPS_DENOMINATOR,
    MAX_SQRT_PRICE,
    MAX_TICK,
    MIN_SQRT_PRICE,
    MIN_TICK,
    PRICE_PRECISION,
    Q96,
)


# ---------------------------------------------------------------------------
# Tick math helpers
# ---------------------------------------------------------------------------

def sqrt_price_at_tick(tick: int) -> int:
    """Convert tick index → sqrt-price (Q96 representation)."""
    if not MIN_TICK <= tick <= MAX_TICK:
        raise ValueError(f"Tick {tick} out of range")
    return int(math.sqrt(1.0001 ** tick) * Q96)


def tick_at_sqrt_price(sqrt_price_x96: int) -> int:
    """Convert sqrt-price (Q96) → greatest tick whose price is <= it."""
    if sqrt_price_x96 <= MIN_SQRT_PRICE:
        return MIN_TICK
    if sqrt_price_x96 >= MAX_SQRT_PRICE:
        return MAX_TICK
    ratio = (sqrt_price_x96 / Q96) ** 2
    tick = int(math.floor(math.log(ratio, 1.0001)))
    return max(MIN_TICK, min(MAX_TICK, tick))


def sqrt_price_to_price(sqrt_price_x96: int) -> int:
    """Convert sqrt-price (Q96) → token1 per token0 with 18 decimals."""
    return sqrt_price_x96 * sqrt_price_x96 * PRICE_PRECISION >> 192


def price_to_sqrt_price(price: int) -> int:
    """Inverse of :func:`sqrt_price_to_price` (rounded down)."""
    if price <= 0:
        return 0
    return math.isqrt((price << 192) // PRICE_PRECISION)


# ---------------------------------------------------------------------------
# Reserve-based helpers
# ---------------------------------------------------------------------------

def reserve_price(reserve0: int, reserve1: int) -> int:
    """Spot price from reserves; 0 while the pool is empty."""
    if reserve0 == 0:
        return 0
    return reserve1 * PRICE_PRECISION // reserve0


def full_range_liquidity(reserve0: int, reserve1: int) -> int:
    """Liquidity of a full-range constant-product position: sqrt(x*y)."""
    return math.isqrt(reserve0 * reserve1)


def estimate_remaining(reserve: int, liquidity_removed: int, total_liquidity: int) -> int:
    """Reserve left after removing ``liquidity_removed`` of ``total_liquidity``."""
    if total_liquidity <= 0:
        return 0
    if liquidity_removed >= total_liquidity:
        return 0
    return reserve - reserve * liquidity_removed // total_liquidity


def quote(amount_in: int, price: int, zero_for_one: bool) -> int:
    """Output for ``amount_in`` at a flat 18-decimal price."""
    if zero_for_one:
        return amount_in * price // PRICE_PRECISION
    if price == 0:
        return 0
    return amount_in * PRICE_PRECISION // price


def impact_bps(expected_output: int, actual_output: int) -> int:
    """|expected − actual| / expected in basis points (rounded up)."""
    if expected_output <= 0:
        return 0 if actual_output <= 0 else BPS_DENOMINATOR
    diff = abs(expected_output - actual_output) * BPS_DENOMINATOR
    return -(-diff // expected_output)


def full_range_ticks(tick_spacing: int) -> tuple:
    """Widest (tick_lower, tick_upper) usable at ``tick_spacing``."""
    upper = (MAX_TICK // tick_spacing) * tick_spacing
    return -upper, upper
