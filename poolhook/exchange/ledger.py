"""
Reserve Ledger

Per-pool reserve bookkeeping. Reserves change only by applying a signed
balance delta reported by the host engine:

  - positive delta: tokens entered the pool (reserve increases)
  - negative delta: tokens left the pool (reserve decreases)

After every application the ledger refreshes

  last_invariant = reserve0 * reserve1
  last_price     = reserve1 * 1e18 / reserve0   (0 while reserve0 == 0)

The ledger never computes deltas itself.
"""

from __future__ import annotations

import copy
import time
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from ..constants import BPS_DENOMINATOR, MAX_RESERVE, MIN_LIQUIDITY
from ..exceptions import (
    InsufficientLiquidity,
    InsufficientReserve,
    InvariantDecreased,
    PoolAlreadyInitialized,
    PoolNotInitialized,
    ReserveOverflow,
)
from ..logger import get_logger
from .pricing import reserve_price

logger = get_logger(__name__)


@dataclass(frozen=True)
class BalanceDelta:
    """Signed change of a pool's two token balances, pool perspective."""
    amount0: int = 0
    amount1: int = 0

    @property
    def is_zero(self) -> bool:
        return self.amount0 == 0 and self.amount1 == 0

    def __neg__(self) -> "BalanceDelta":
        return BalanceDelta(-self.amount0, -self.amount1)


ZERO_DELTA = BalanceDelta(0, 0)


@dataclass
class PoolState:
    """
    State of a single pool as tracked by the hook.

    reserve0 == 0 <=> reserve1 == 0 only before the first deposit; after
    that both stay at or above MIN_LIQUIDITY.
    """
    pool_id: str
    sqrt_price_x96: int
    tick: int
    lp_fee: int
    protocol_fee_bps: int = 0

    reserve0: int = 0
    reserve1: int = 0
    last_invariant: int = 0
    last_price: int = 0
    last_update_timestamp: float = 0.0

    # Protocol-fee share skimmed from liquidity movements, not yet collected
    protocol_fees0: int = 0
    protocol_fees1: int = 0

    created_at: float = field(default_factory=time.time)

    @property
    def invariant(self) -> int:
        return self.reserve0 * self.reserve1

    @property
    def has_liquidity(self) -> bool:
        return self.reserve0 > 0 and self.reserve1 > 0

    @property
    def reserves(self) -> Tuple[int, int]:
        return self.reserve0, self.reserve1

    def to_dict(self) -> Dict[str, object]:
        return {
            "poolId": self.pool_id,
            "sqrtPriceX96": self.sqrt_price_x96,
            "tick": self.tick,
            "lpFee": self.lp_fee,
            "protocolFeeBps": self.protocol_fee_bps,
            "reserve0": self.reserve0,
            "reserve1": self.reserve1,
            "lastInvariant": self.last_invariant,
            "lastPrice": self.last_price,
            "lastUpdateTimestamp": self.last_update_timestamp,
            "protocolFees0": self.protocol_fees0,
            "protocolFees1": self.protocol_fees1,
        }


class ReserveLedger:
    """Keyed store of PoolState, pool id → state."""

    def __init__(self, min_liquidity: int = MIN_LIQUIDITY, max_reserve: int = MAX_RESERVE):
        self.min_liquidity = min_liquidity
        self.max_reserve = max_reserve
        self._pools: Dict[str, PoolState] = {}

    # -- Lookup -------------------------------------------------------------

    def exists(self, pool_id: str) -> bool:
        return pool_id in self._pools

    def get(self, pool_id: str) -> PoolState:
        state = self._pools.get(pool_id)
        if state is None:
            raise PoolNotInitialized(pool_id)
        return state

    def find(self, pool_id: str) -> Optional[PoolState]:
        return self._pools.get(pool_id)

    @property
    def pool_count(self) -> int:
        return len(self._pools)

    # -- Mutation -----------------------------------------------------------

    def create(
        self,
        pool_id: str,
        sqrt_price_x96: int,
        tick: int,
        lp_fee: int,
        protocol_fee_bps: int,
        now: float,
    ) -> PoolState:
        if pool_id in self._pools:
            raise PoolAlreadyInitialized(pool_id)
        state = PoolState(
            pool_id=pool_id,
            sqrt_price_x96=sqrt_price_x96,
            tick=tick,
            lp_fee=lp_fee,
            protocol_fee_bps=protocol_fee_bps,
            last_update_timestamp=now,
            created_at=now,
        )
        self._pools[pool_id] = state
        return state

    def apply_delta(self, pool_id: str, delta0: int, delta1: int, now: float) -> PoolState:
        """
        Apply a signed delta pair to a pool's reserves.

        Both legs are validated before either is written.

        Raises:
            PoolNotInitialized: unknown pool
            InsufficientReserve: a decrease would drive a reserve negative
            ReserveOverflow: an increase would exceed MAX_RESERVE
        """
        state = self.get(pool_id)
        new0 = self._checked(pool_id, 0, state.reserve0, delta0)
        new1 = self._checked(pool_id, 1, state.reserve1, delta1)

        state.reserve0 = new0
        state.reserve1 = new1
        self._refresh(state, now)
        return state

    def deduct_protocol_fee(self, pool_id: str, amount0: int, amount1: int, now: float) -> Tuple[int, int]:
        """
        Move ``protocol_fee_bps`` of the given gross amounts from reserves into
        the pool's accrued protocol fees.

        Returns:
            (fee0, fee1) actually deducted
        """
        state = self.get(pool_id)
        if state.protocol_fee_bps == 0:
            return 0, 0
        fee0 = abs(amount0) * state.protocol_fee_bps // BPS_DENOMINATOR
        fee1 = abs(amount1) * state.protocol_fee_bps // BPS_DENOMINATOR
        if fee0 == 0 and fee1 == 0:
            return 0, 0
        self.apply_delta(pool_id, -fee0, -fee1, now)
        state.protocol_fees0 += fee0
        state.protocol_fees1 += fee1
        return fee0, fee1

    def collect_protocol_fees(self, pool_id: str) -> Tuple[int, int]:
        state = self.get(pool_id)
        collected = (state.protocol_fees0, state.protocol_fees1)
        state.protocol_fees0 = 0
        state.protocol_fees1 = 0
        return collected

    def set_fee(self, pool_id: str, new_fee: int) -> int:
        """Write the pool's LP fee; returns the previous value."""
        state = self.get(pool_id)
        old = state.lp_fee
        state.lp_fee = new_fee
        return old

    def set_protocol_fee(self, pool_id: str, bps: int) -> int:
        state = self.get(pool_id)
        old = state.protocol_fee_bps
        state.protocol_fee_bps = bps
        return old

    # -- Invariant checks ---------------------------------------------------

    def ensure_invariant_not_decreased(self, pool_id: str, before: int) -> None:
        state = self.get(pool_id)
        if state.last_invariant < before:
            raise InvariantDecreased(pool_id, before, state.last_invariant)

    def ensure_min_liquidity(self, pool_id: str) -> None:
        """Funded pools keep both reserves at or above the floor."""
        state = self.get(pool_id)
        if state.reserve0 < self.min_liquidity or state.reserve1 < self.min_liquidity:
            raise InsufficientLiquidity(pool_id, state.reserve0, state.reserve1, self.min_liquidity)

    # -- Snapshot / restore -------------------------------------------------

    def snapshot(self) -> Dict[str, PoolState]:
        return copy.deepcopy(self._pools)

    def restore(self, snapshot: Dict[str, PoolState]) -> None:
        self._pools = snapshot

    # -- Internal -----------------------------------------------------------

    def _checked(self, pool_id: str, token: int, reserve: int, delta: int) -> int:
        result = reserve + delta
        if result < 0:
            raise InsufficientReserve(pool_id, token, reserve, delta)
        if result > self.max_reserve:
            raise ReserveOverflow(pool_id, token, reserve, delta, self.max_reserve)
        return result

    @staticmethod
    def _refresh(state: PoolState, now: float) -> None:
        state.last_invariant = state.reserve0 * state.reserve1
        state.last_price = reserve_price(state.reserve0, state.reserve1)
        state.last_update_timestamp = now
