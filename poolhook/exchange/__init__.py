"""
Pool Hook Exchange Components

Components:
  - Pool keys and deterministic pool ids (keccak over the ABI-encoded key)
  - Reserve Ledger (signed balance deltas, invariant and price tracking)
  - MEV Guard (blacklist, per-account cooldown, slippage bound)
  - Hook Callback State Machine (ten before/after callbacks, one dispatch)
  - Simulated host engine (drives full pool lifecycles through the hook)
  - TWAP Oracle (hourly bucketed price snapshots)
"""

from .clock import Clock
from .pool_key import (
    PoolKey,
    PoolRegistry,
    InMemoryPoolRegistry,
    normalize_address,
)
from .ledger import (
    BalanceDelta,
    PoolState,
    ReserveLedger,
    ZERO_DELTA,
)
from .guard import (
    GuardState,
    MEVGuard,
)
from .events import (
    Event,
    EventLog,
)
from .hooks import (
    HookCall,
    HookFlags,
    HookResult,
    HookStage,
    ModifyLiquidityParams,
    PoolHook,
    SwapParams,
    BeforeInitialize,
    AfterInitialize,
    BeforeAddLiquidity,
    AfterAddLiquidity,
    BeforeRemoveLiquidity,
    AfterRemoveLiquidity,
    BeforeSwap,
    AfterSwap,
    BeforeDonate,
    AfterDonate,
)
from .host import SimulatedHost, swap_output
from .oracle import Observation, TWAPOracle

__all__ = [
    # Clock
    "Clock",
    # Pool keys
    "PoolKey",
    "PoolRegistry",
    "InMemoryPoolRegistry",
    "normalize_address",
    # Ledger
    "BalanceDelta",
    "PoolState",
    "ReserveLedger",
    "ZERO_DELTA",
    # Guard
    "GuardState",
    "MEVGuard",
    # Events
    "Event",
    "EventLog",
    # Hooks
    "HookCall",
    "HookFlags",
    "HookResult",
    "HookStage",
    "ModifyLiquidityParams",
    "PoolHook",
    "SwapParams",
    "BeforeInitialize",
    "AfterInitialize",
    "BeforeAddLiquidity",
    "AfterAddLiquidity",
    "BeforeRemoveLiquidity",
    "AfterRemoveLiquidity",
    "BeforeSwap",
    "AfterSwap",
    "BeforeDonate",
    "AfterDonate",
    # Host
    "SimulatedHost",
    "swap_output",
    # Oracle
    "Observation",
    "TWAPOracle",
]
