"""
Pool Hook: callback state machine

The host engine calls the hook synchronously before and after every pool
lifecycle event:

  - beforeInitialize / afterInitialize
  - beforeAddLiquidity / afterAddLiquidity
  - beforeRemoveLiquidity / afterRemoveLiquidity
  - beforeSwap / afterSwap
  - beforeDonate / afterDonate

Each callback is a frozen ``HookCall`` variant consumed by one entry point,
``PoolHook.dispatch``. Before-callbacks only validate (blacklist, cooldown,
ranges, price bounds, slippage estimate); after-callbacks apply the delta
the engine reports to the reserve ledger, re-check invariants and emit
events.

Security:
  - Only registered host engines may invoke callbacks
  - Reentrancy lock around every callback
  - Each callback runs in a transaction: ledger, guard and buffered events
    are restored on any failure, so nothing is partially applied
  - Only authorised fee governors may change a pool's LP fee
"""

from __future__ import annotations

import dataclasses
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum, Flag, auto
from typing import Callable, ClassVar, Dict, Iterator, Optional, Set, Tuple, Type, Union

from ..config import HookConfig
from ..constants import (
    MAX_LP_FEE,
    MAX_PROTOCOL_FEE_BPS,
    MAX_SQRT_PRICE,
    MAX_TICK,
    MIN_SQRT_PRICE,
    MIN_TICK,
    PRICE_PRECISION,
)
from ..exceptions import (
    InsufficientLiquidity,
    InvalidAmount,
    InvalidFee,
    InvalidPoolParameters,
    InvalidPrice,
    InvalidTickRange,
    PoolAlreadyInitialized,
    PoolNotFound,
    ReentrancyDetected,
    ReserveOverflow,
    SlippageExceeded,
    UnauthorizedCaller,
)
from ..logger import get_logger
from .clock import Clock
from .events import (
    BlacklistUpdated,
    DonationProcessed,
    EventLog,
    FeeUpdated,
    LiquidityAdded,
    LiquidityRemoved,
    PoolInitialized,
    ProtocolFeesCollected,
    SwapCompleted,
)
from .guard import MEVGuard
from .ledger import ZERO_DELTA, BalanceDelta, PoolState, ReserveLedger
from .pool_key import PoolKey, PoolRegistry, normalize_address
from .pricing import (
    estimate_remaining,
    full_range_liquidity,
    impact_bps,
    price_to_sqrt_price,
    quote,
    sqrt_price_to_price,
    tick_at_sqrt_price,
)

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Hook flags: which callbacks the hook wants to receive
# ---------------------------------------------------------------------------

class HookFlags(Flag):
    NONE = 0
    BEFORE_INITIALIZE = auto()
    AFTER_INITIALIZE = auto()
    BEFORE_ADD_LIQUIDITY = auto()
    AFTER_ADD_LIQUIDITY = auto()
    BEFORE_REMOVE_LIQUIDITY = auto()
    AFTER_REMOVE_LIQUIDITY = auto()
    BEFORE_SWAP = auto()
    AFTER_SWAP = auto()
    BEFORE_DONATE = auto()
    AFTER_DONATE = auto()
    ALL = (
        BEFORE_INITIALIZE | AFTER_INITIALIZE
        | BEFORE_ADD_LIQUIDITY | AFTER_ADD_LIQUIDITY
        | BEFORE_REMOVE_LIQUIDITY | AFTER_REMOVE_LIQUIDITY
        | BEFORE_SWAP | AFTER_SWAP
        | BEFORE_DONATE | AFTER_DONATE
    )


class HookStage(Enum):
    """Lifecycle stage; the value doubles as the callback's success selector."""
    BEFORE_INITIALIZE = "beforeInitialize"
    AFTER_INITIALIZE = "afterInitialize"
    BEFORE_ADD_LIQUIDITY = "beforeAddLiquidity"
    AFTER_ADD_LIQUIDITY = "afterAddLiquidity"
    BEFORE_REMOVE_LIQUIDITY = "beforeRemoveLiquidity"
    AFTER_REMOVE_LIQUIDITY = "afterRemoveLiquidity"
    BEFORE_SWAP = "beforeSwap"
    AFTER_SWAP = "afterSwap"
    BEFORE_DONATE = "beforeDonate"
    AFTER_DONATE = "afterDonate"

    @property
    def flag(self) -> HookFlags:
        return HookFlags[self.name]

    @property
    def is_before(self) -> bool:
        return self.name.startswith("BEFORE_")


# ---------------------------------------------------------------------------
# Operation parameters (as passed through by the host engine)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ModifyLiquidityParams:
    tick_lower: int
    tick_upper: int
    liquidity_delta: int
    salt: int = 0


@dataclass(frozen=True)
class SwapParams:
    """
    ``amount_specified`` < 0 is exact-input, > 0 exact-output.
    ``sqrt_price_limit_x96`` None means no limit was supplied.
    """
    zero_for_one: bool
    amount_specified: int
    sqrt_price_limit_x96: Optional[int] = None


# ---------------------------------------------------------------------------
# Hook calls: one variant per callback
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BeforeInitialize:
    stage: ClassVar[HookStage] = HookStage.BEFORE_INITIALIZE
    sender: str
    key: PoolKey
    sqrt_price_x96: int


@dataclass(frozen=True)
class AfterInitialize:
    stage: ClassVar[HookStage] = HookStage.AFTER_INITIALIZE
    sender: str
    key: PoolKey
    sqrt_price_x96: int
    tick: int


@dataclass(frozen=True)
class BeforeAddLiquidity:
    stage: ClassVar[HookStage] = HookStage.BEFORE_ADD_LIQUIDITY
    sender: str
    key: PoolKey
    params: ModifyLiquidityParams


@dataclass(frozen=True)
class AfterAddLiquidity:
    stage: ClassVar[HookStage] = HookStage.AFTER_ADD_LIQUIDITY
    sender: str
    key: PoolKey
    params: ModifyLiquidityParams
    delta: BalanceDelta


@dataclass(frozen=True)
class BeforeRemoveLiquidity:
    stage: ClassVar[HookStage] = HookStage.BEFORE_REMOVE_LIQUIDITY
    sender: str
    key: PoolKey
    params: ModifyLiquidityParams


@dataclass(frozen=True)
class AfterRemoveLiquidity:
    stage: ClassVar[HookStage] = HookStage.AFTER_REMOVE_LIQUIDITY
    sender: str
    key: PoolKey
    params: ModifyLiquidityParams
    delta: BalanceDelta


@dataclass(frozen=True)
class BeforeSwap:
    stage: ClassVar[HookStage] = HookStage.BEFORE_SWAP
    sender: str
    key: PoolKey
    params: SwapParams


@dataclass(frozen=True)
class AfterSwap:
    stage: ClassVar[HookStage] = HookStage.AFTER_SWAP
    sender: str
    key: PoolKey
    params: SwapParams
    delta: BalanceDelta


@dataclass(frozen=True)
class BeforeDonate:
    stage: ClassVar[HookStage] = HookStage.BEFORE_DONATE
    sender: str
    key: PoolKey
    amount0: int
    amount1: int


@dataclass(frozen=True)
class AfterDonate:
    stage: ClassVar[HookStage] = HookStage.AFTER_DONATE
    sender: str
    key: PoolKey
    amount0: int
    amount1: int


HookCall = Union[
    BeforeInitialize, AfterInitialize,
    BeforeAddLiquidity, AfterAddLiquidity,
    BeforeRemoveLiquidity, AfterRemoveLiquidity,
    BeforeSwap, AfterSwap,
    BeforeDonate, AfterDonate,
]


@dataclass(frozen=True)
class HookResult:
    """Returned to the host: success selector plus the (always zero) delta adjustment."""
    stage: HookStage
    delta: BalanceDelta = ZERO_DELTA

    @property
    def selector(self) -> str:
        return self.stage.value


# ---------------------------------------------------------------------------
# Pool Hook
# ---------------------------------------------------------------------------

class PoolHook:
    """
    Hook contract shared by every pool whose key names ``address``.

    Owns the reserve ledger and the MEV guard; publishes domain events to
    ``events``.
    """

    def __init__(
        self,
        address: str,
        owner: str,
        clock: Optional[Clock] = None,
        config: Optional[HookConfig] = None,
        registry: Optional[PoolRegistry] = None,
        events: Optional[EventLog] = None,
    ):
        self.address = normalize_address(address)
        self.owner = normalize_address(owner)
        self.clock = clock if clock is not None else Clock()
        self.config = config if config is not None else HookConfig()
        self.registry = registry
        self.events = events if events is not None else EventLog()

        self.ledger = ReserveLedger()
        self.guard = MEVGuard(
            admins=[self.owner],
            cooldown=self.config.guard.cooldown_seconds,
            max_slippage_bps=self.config.guard.max_slippage_bps,
        )

        self._hosts: Set[str] = set()
        self._fee_governors: Set[str] = set()
        self._locked: bool = False
        self._active_stage: str = ""

        self._handlers: Dict[Type, Callable] = {
            BeforeInitialize: self._before_initialize,
            AfterInitialize: self._after_initialize,
            BeforeAddLiquidity: self._before_add_liquidity,
            AfterAddLiquidity: self._after_add_liquidity,
            BeforeRemoveLiquidity: self._before_remove_liquidity,
            AfterRemoveLiquidity: self._after_remove_liquidity,
            BeforeSwap: self._before_swap,
            AfterSwap: self._after_swap,
            BeforeDonate: self._before_donate,
            AfterDonate: self._after_donate,
        }

    @property
    def flags(self) -> HookFlags:
        return HookFlags.ALL

    # =====================================================================
    #  Capabilities
    # =====================================================================

    def _require_owner(self, caller: str, action: str) -> str:
        caller = normalize_address(caller)
        if caller != self.owner:
            raise UnauthorizedCaller(caller, action)
        return caller

    def register_host(self, caller: str, host: str) -> None:
        self._require_owner(caller, "register a host engine")
        self._hosts.add(normalize_address(host))
        logger.info("Host engine registered: %s", host)

    def authorize_fee_governor(self, caller: str, governor: str) -> None:
        self._require_owner(caller, "authorize a fee governor")
        self._fee_governors.add(normalize_address(governor))
        logger.info("Fee governor authorized: %s", governor)

    def revoke_fee_governor(self, caller: str, governor: str) -> None:
        self._require_owner(caller, "revoke a fee governor")
        self._fee_governors.discard(normalize_address(governor))
        logger.info("Fee governor revoked: %s", governor)

    def is_host(self, account: str) -> bool:
        return normalize_address(account) in self._hosts

    def is_fee_governor(self, account: str) -> bool:
        return normalize_address(account) in self._fee_governors

    # =====================================================================
    #  Transaction / reentrancy
    # =====================================================================

    @contextmanager
    def _transaction(self, stage: str) -> Iterator[None]:
        if self._locked:
            raise ReentrancyDetected(self._active_stage or stage)
        self._locked = True
        self._active_stage = stage
        ledger_snapshot = self.ledger.snapshot()
        guard_snapshot = self.guard.snapshot()
        self.events.begin()
        try:
            yield
        except Exception:
            self.ledger.restore(ledger_snapshot)
            self.guard.restore(guard_snapshot)
            self.events.rollback()
            raise
        finally:
            self._locked = False
            self._active_stage = ""
        # Subscribers run after the lock is released
        self.events.commit()

    # =====================================================================
    #  Dispatch
    # =====================================================================

    def dispatch(self, caller: str, call: HookCall) -> HookResult:
        """
        Single entry point for all ten callbacks.

        Raises:
            UnauthorizedCaller: caller is not a registered host engine
            ReentrancyDetected: a callback is already running
            PoolHookError: any validation / invariant failure (state untouched)
        """
        handler = self._handlers.get(type(call))
        if handler is None:
            raise TypeError(f"Unknown hook call {type(call).__name__}")
        caller = normalize_address(caller)
        if caller not in self._hosts:
            raise UnauthorizedCaller(caller, f"invoke {call.stage.value}")

        with self._transaction(call.stage.value):
            handler(call)
        return HookResult(stage=call.stage)

    # Named wrappers, one per callback ------------------------------------

    def before_initialize(self, caller: str, sender: str, key: PoolKey, sqrt_price_x96: int) -> HookResult:
        return self.dispatch(caller, BeforeInitialize(sender, key, sqrt_price_x96))

    def after_initialize(self, caller: str, sender: str, key: PoolKey, sqrt_price_x96: int, tick: int) -> HookResult:
        return self.dispatch(caller, AfterInitialize(sender, key, sqrt_price_x96, tick))

    def before_add_liquidity(self, caller: str, sender: str, key: PoolKey, params: ModifyLiquidityParams) -> HookResult:
        return self.dispatch(caller, BeforeAddLiquidity(sender, key, params))

    def after_add_liquidity(
        self, caller: str, sender: str, key: PoolKey, params: ModifyLiquidityParams, delta: BalanceDelta,
    ) -> HookResult:
        return self.dispatch(caller, AfterAddLiquidity(sender, key, params, delta))

    def before_remove_liquidity(self, caller: str, sender: str, key: PoolKey, params: ModifyLiquidityParams) -> HookResult:
        return self.dispatch(caller, BeforeRemoveLiquidity(sender, key, params))

    def after_remove_liquidity(
        self, caller: str, sender: str, key: PoolKey, params: ModifyLiquidityParams, delta: BalanceDelta,
    ) -> HookResult:
        return self.dispatch(caller, AfterRemoveLiquidity(sender, key, params, delta))

    def before_swap(self, caller: str, sender: str, key: PoolKey, params: SwapParams) -> HookResult:
        return self.dispatch(caller, BeforeSwap(sender, key, params))

    def after_swap(self, caller: str, sender: str, key: PoolKey, params: SwapParams, delta: BalanceDelta) -> HookResult:
        return self.dispatch(caller, AfterSwap(sender, key, params, delta))

    def before_donate(self, caller: str, sender: str, key: PoolKey, amount0: int, amount1: int) -> HookResult:
        return self.dispatch(caller, BeforeDonate(sender, key, amount0, amount1))

    def after_donate(self, caller: str, sender: str, key: PoolKey, amount0: int, amount1: int) -> HookResult:
        return self.dispatch(caller, AfterDonate(sender, key, amount0, amount1))

    # =====================================================================
    #  Initialize
    # =====================================================================

    def _before_initialize(self, call: BeforeInitialize) -> None:
        sender = normalize_address(call.sender)
        self.guard.ensure_not_blacklisted(sender)

        key = call.key
        key.validate()
        if normalize_address(key.hooks) != self.address:
            raise InvalidPoolParameters("hook address mismatch", hooks=key.hooks, expected=self.address)

        pool_id = key.pool_id
        if self.registry is not None and not self.registry.validate_pool(pool_id):
            raise PoolNotFound(pool_id)
        if self.ledger.exists(pool_id):
            raise PoolAlreadyInitialized(pool_id)
        self._validate_sqrt_price(call.sqrt_price_x96)

    def _after_initialize(self, call: AfterInitialize) -> None:
        sender = normalize_address(call.sender)
        self._validate_sqrt_price(call.sqrt_price_x96)
        now = self.clock.now()
        key = call.key
        state = self.ledger.create(
            pool_id=key.pool_id,
            sqrt_price_x96=call.sqrt_price_x96,
            tick=call.tick,
            lp_fee=key.fee,
            protocol_fee_bps=self.config.fees.protocol_fee_bps,
            now=now,
        )
        self.events.publish(PoolInitialized(
            timestamp=now,
            pool_id=state.pool_id,
            sender=sender,
            currency0=key.currency0,
            currency1=key.currency1,
            fee=key.fee,
            tick_spacing=key.tick_spacing,
            sqrt_price_x96=call.sqrt_price_x96,
            tick=call.tick,
        ))
        logger.info("Pool %s initialized at tick %d (fee=%d)", state.pool_id, call.tick, key.fee)

    # =====================================================================
    #  Liquidity
    # =====================================================================

    def _before_add_liquidity(self, call: BeforeAddLiquidity) -> None:
        sender = normalize_address(call.sender)
        self.guard.ensure_not_blacklisted(sender)
        self.ledger.get(call.key.pool_id)
        self._validate_tick_range(call.key, call.params)
        if call.params.liquidity_delta <= 0:
            raise InvalidAmount("liquidity_delta must be positive", liquidity_delta=call.params.liquidity_delta)

    def _after_add_liquidity(self, call: AfterAddLiquidity) -> None:
        sender = normalize_address(call.sender)
        pool_id = call.key.pool_id
        delta = call.delta
        if delta.amount0 < 0 or delta.amount1 < 0 or delta.is_zero:
            raise InvalidAmount("add-liquidity delta must be positive", amount0=delta.amount0, amount1=delta.amount1)

        now = self.clock.now()
        state = self.ledger.get(pool_id)
        r0_before, r1_before, inv_before = state.reserve0, state.reserve1, state.last_invariant

        self.ledger.apply_delta(pool_id, delta.amount0, delta.amount1, now)
        self._collect_protocol_share(pool_id, delta, now)
        self.ledger.ensure_min_liquidity(pool_id)
        self.ledger.ensure_invariant_not_decreased(pool_id, inv_before)
        self._sync_price(state)
        self.guard.record(sender, now)

        self.events.publish(LiquidityAdded(
            timestamp=now,
            pool_id=pool_id,
            sender=sender,
            amount0=delta.amount0,
            amount1=delta.amount1,
            reserve0_before=r0_before,
            reserve1_before=r1_before,
            reserve0_after=state.reserve0,
            reserve1_after=state.reserve1,
            invariant_before=inv_before,
            invariant_after=state.last_invariant,
        ))
        logger.info(
            "Liquidity added to %s by %s: (%d, %d) → reserves (%d, %d)",
            pool_id, sender, delta.amount0, delta.amount1, state.reserve0, state.reserve1,
        )

    def _before_remove_liquidity(self, call: BeforeRemoveLiquidity) -> None:
        sender = normalize_address(call.sender)
        self.guard.ensure_not_blacklisted(sender)
        state = self.ledger.get(call.key.pool_id)
        self._validate_tick_range(call.key, call.params)
        if call.params.liquidity_delta >= 0:
            raise InvalidAmount("liquidity_delta must be negative", liquidity_delta=call.params.liquidity_delta)
        if not state.has_liquidity:
            raise InsufficientLiquidity(state.pool_id, state.reserve0, state.reserve1, self.ledger.min_liquidity)

        # Full-range position: reserves shrink in proportion to liquidity removed
        total = full_range_liquidity(state.reserve0, state.reserve1)
        removed = -call.params.liquidity_delta
        remaining0 = estimate_remaining(state.reserve0, removed, total)
        remaining1 = estimate_remaining(state.reserve1, removed, total)
        floor = self.ledger.min_liquidity
        if remaining0 < floor or remaining1 < floor:
            raise InsufficientLiquidity(state.pool_id, remaining0, remaining1, floor)

    def _after_remove_liquidity(self, call: AfterRemoveLiquidity) -> None:
        sender = normalize_address(call.sender)
        pool_id = call.key.pool_id
        delta = call.delta
        if delta.amount0 > 0 or delta.amount1 > 0 or delta.is_zero:
            raise InvalidAmount("remove-liquidity delta must be negative", amount0=delta.amount0, amount1=delta.amount1)

        now = self.clock.now()
        state = self.ledger.get(pool_id)
        r0_before, r1_before, inv_before = state.reserve0, state.reserve1, state.last_invariant

        # Liquidity removal is the only sanctioned invariant-decreasing path
        self.ledger.apply_delta(pool_id, delta.amount0, delta.amount1, now)
        self._collect_protocol_share(pool_id, delta, now)
        self.ledger.ensure_min_liquidity(pool_id)
        self._sync_price(state)
        self.guard.record(sender, now)

        self.events.publish(LiquidityRemoved(
            timestamp=now,
            pool_id=pool_id,
            sender=sender,
            amount0=-delta.amount0,
            amount1=-delta.amount1,
            reserve0_before=r0_before,
            reserve1_before=r1_before,
            reserve0_after=state.reserve0,
            reserve1_after=state.reserve1,
            invariant_before=inv_before,
            invariant_after=state.last_invariant,
        ))
        logger.info(
            "Liquidity removed from %s by %s: (%d, %d) → reserves (%d, %d)",
            pool_id, sender, -delta.amount0, -delta.amount1, state.reserve0, state.reserve1,
        )

    # =====================================================================
    #  Swap
    # =====================================================================

    def _before_swap(self, call: BeforeSwap) -> None:
        sender = normalize_address(call.sender)
        now = self.clock.now()
        self.guard.ensure_not_blacklisted(sender)
        state = self.ledger.get(call.key.pool_id)
        if not state.has_liquidity:
            raise InsufficientLiquidity(state.pool_id, state.reserve0, state.reserve1, self.ledger.min_liquidity)
        params = call.params
        if params.amount_specified == 0:
            raise InvalidAmount("amount_specified must be non-zero", amount_specified=0)

        self.guard.check(sender, now)

        if params.sqrt_price_limit_x96 is not None:
            self._validate_sqrt_price(params.sqrt_price_limit_x96)
            impact = self.estimate_price_impact(state, params)
            logger.debug("Estimated impact for %s on %s: %d bps", sender, state.pool_id, impact)
            self.guard.check_slippage(impact)

    def _after_swap(self, call: AfterSwap) -> None:
        sender = normalize_address(call.sender)
        pool_id = call.key.pool_id
        params = call.params
        delta = call.delta
        if params.zero_for_one:
            direction_ok = delta.amount0 >= 0 and delta.amount1 <= 0
        else:
            direction_ok = delta.amount0 <= 0 and delta.amount1 >= 0
        if not direction_ok or delta.is_zero:
            raise InvalidAmount(
                "swap delta does not match direction",
                zero_for_one=params.zero_for_one, amount0=delta.amount0, amount1=delta.amount1,
            )

        now = self.clock.now()
        state = self.ledger.get(pool_id)
        price_before = state.last_price
        inv_before = state.last_invariant

        self.ledger.apply_delta(pool_id, delta.amount0, delta.amount1, now)
        self.ledger.ensure_min_liquidity(pool_id)
        self.ledger.ensure_invariant_not_decreased(pool_id, inv_before)
        if params.sqrt_price_limit_x96 is not None:
            self._check_realized_slippage(pool_id, params, delta, price_before)
        self._sync_price(state)
        self.guard.record(sender, now)

        self.events.publish(SwapCompleted(
            timestamp=now,
            pool_id=pool_id,
            sender=sender,
            zero_for_one=params.zero_for_one,
            delta0=delta.amount0,
            delta1=delta.amount1,
            price_before=price_before,
            price_after=state.last_price,
            reserve0_after=state.reserve0,
            reserve1_after=state.reserve1,
        ))
        logger.info(
            "Swap on %s by %s: Δ=(%d, %d) price %d → %d",
            pool_id, sender, delta.amount0, delta.amount1, price_before, state.last_price,
        )

    def estimate_price_impact(self, state: PoolState, params: SwapParams) -> int:
        """
        Approximate price impact in bps of trading at the limit price instead
        of the pool's current price. A guard, not a quote.
        """
        # Scaled so floor division cannot zero out small trades
        amount = abs(params.amount_specified) * PRICE_PRECISION
        current = state.last_price or sqrt_price_to_price(state.sqrt_price_x96)
        limit = sqrt_price_to_price(params.sqrt_price_limit_x96)
        expected = quote(amount, current, params.zero_for_one)
        actual = quote(amount, limit, params.zero_for_one)
        return impact_bps(expected, actual)

    def _check_realized_slippage(
        self, pool_id: str, params: SwapParams, delta: BalanceDelta, price_before: int,
    ) -> None:
        if params.zero_for_one:
            amount_in, amount_out = delta.amount0, -delta.amount1
        else:
            amount_in, amount_out = delta.amount1, -delta.amount0
        expected = quote(amount_in, price_before, params.zero_for_one)
        impact = impact_bps(expected, amount_out)
        try:
            self.guard.check_slippage(impact)
        except SlippageExceeded:
            if self.config.guard.strict_realized_slippage:
                raise
            logger.warning(
                "Realized impact on %s of %d bps exceeds %d bps (advisory)",
                pool_id, impact, self.guard.max_slippage_bps,
            )

    # =====================================================================
    #  Donate
    # =====================================================================

    def _before_donate(self, call: BeforeDonate) -> None:
        sender = normalize_address(call.sender)
        self.guard.ensure_not_blacklisted(sender)
        state = self.ledger.get(call.key.pool_id)
        if call.amount0 < 0 or call.amount1 < 0:
            raise InvalidAmount("donation must be non-negative", amount0=call.amount0, amount1=call.amount1)
        if call.amount0 == 0 and call.amount1 == 0:
            raise InvalidAmount("donation must be non-zero", amount0=0, amount1=0)
        if not state.has_liquidity:
            raise InsufficientLiquidity(state.pool_id, state.reserve0, state.reserve1, self.ledger.min_liquidity)
        maximum = self.ledger.max_reserve
        if state.reserve0 + call.amount0 > maximum:
            raise ReserveOverflow(state.pool_id, 0, state.reserve0, call.amount0, maximum)
        if state.reserve1 + call.amount1 > maximum:
            raise ReserveOverflow(state.pool_id, 1, state.reserve1, call.amount1, maximum)

    def _after_donate(self, call: AfterDonate) -> None:
        sender = normalize_address(call.sender)
        pool_id = call.key.pool_id
        now = self.clock.now()
        # Donations only ever raise the invariant; no check needed
        state = self.ledger.apply_delta(pool_id, call.amount0, call.amount1, now)
        self._sync_price(state)
        self.events.publish(DonationProcessed(
            timestamp=now,
            pool_id=pool_id,
            sender=sender,
            amount0=call.amount0,
            amount1=call.amount1,
            reserve0_after=state.reserve0,
            reserve1_after=state.reserve1,
        ))
        logger.info("Donation to %s by %s: (%d, %d)", pool_id, sender, call.amount0, call.amount1)

    # =====================================================================
    #  Governance / admin entry points
    # =====================================================================

    def update_fee(self, caller: str, pool_id: str, new_fee: int) -> bool:
        """
        Set a pool's LP fee. Only authorised fee governors may call this.

        Raises:
            UnauthorizedCaller, InvalidFee, PoolNotFound
        """
        caller = normalize_address(caller)
        if caller not in self._fee_governors:
            raise UnauthorizedCaller(caller, "update pool fees")
        if not 0 <= new_fee <= MAX_LP_FEE:
            raise InvalidFee(new_fee, MAX_LP_FEE)
        self._require_pool(pool_id)

        with self._transaction("updateFee"):
            old = self.ledger.set_fee(pool_id, new_fee)
            self.events.publish(FeeUpdated(
                timestamp=self.clock.now(), pool_id=pool_id, caller=caller, old_fee=old, new_fee=new_fee,
            ))
        logger.info("Fee of %s updated %d → %d by %s", pool_id, old, new_fee, caller)
        return True

    def set_protocol_fee(self, caller: str, pool_id: str, bps: int) -> None:
        self._require_owner(caller, "set the protocol fee")
        if not 0 <= bps <= MAX_PROTOCOL_FEE_BPS:
            raise InvalidFee(bps, MAX_PROTOCOL_FEE_BPS)
        self._require_pool(pool_id)
        with self._transaction("setProtocolFee"):
            old = self.ledger.set_protocol_fee(pool_id, bps)
        logger.info("Protocol fee of %s: %d → %d bps", pool_id, old, bps)

    def collect_protocol_fees(self, caller: str, pool_id: str) -> Tuple[int, int]:
        """Zero the pool's accrued protocol fees and return them to the owner."""
        self._require_owner(caller, "collect protocol fees")
        self._require_pool(pool_id)
        with self._transaction("collectProtocolFees"):
            collected = self.ledger.collect_protocol_fees(pool_id)
        logger.info("Protocol fees collected from %s: %s", pool_id, collected)
        return collected

    def set_blacklisted(self, caller: str, account: str, flag: bool) -> None:
        caller = normalize_address(caller)
        with self._transaction("setBlacklisted"):
            self.guard.set_blacklisted(caller, account, flag)
            self.events.publish(BlacklistUpdated(
                timestamp=self.clock.now(),
                account=normalize_address(account),
                blacklisted=flag,
                admin=caller,
            ))

    # =====================================================================
    #  Query interface (read-only)
    # =====================================================================

    def pool_exists(self, pool_id: str) -> bool:
        return self.ledger.exists(pool_id)

    def get_reserves(self, pool_id: str) -> Tuple[int, int]:
        return self._require_pool(pool_id).reserves

    def get_price(self, pool_id: str) -> Tuple[int, float]:
        state = self._require_pool(pool_id)
        return state.last_price, state.last_update_timestamp

    def get_fee(self, pool_id: str) -> int:
        return self._require_pool(pool_id).lp_fee

    def get_pool_state(self, pool_id: str) -> PoolState:
        """Detached copy of the pool's state."""
        return dataclasses.replace(self._require_pool(pool_id))

    # =====================================================================
    #  Internal
    # =====================================================================

    def _require_pool(self, pool_id: str) -> PoolState:
        state = self.ledger.find(pool_id)
        if state is None:
            raise PoolNotFound(pool_id)
        return state

    def _collect_protocol_share(self, pool_id: str, delta: BalanceDelta, now: float) -> None:
        fee0, fee1 = self.ledger.deduct_protocol_fee(pool_id, delta.amount0, delta.amount1, now)
        if fee0 or fee1:
            state = self.ledger.get(pool_id)
            self.events.publish(ProtocolFeesCollected(
                timestamp=now,
                pool_id=pool_id,
                amount0=fee0,
                amount1=fee1,
                total0=state.protocol_fees0,
                total1=state.protocol_fees1,
            ))

    @staticmethod
    def _sync_price(state: PoolState) -> None:
        if state.has_liquidity:
            state.sqrt_price_x96 = price_to_sqrt_price(state.last_price) or state.sqrt_price_x96
            state.tick = tick_at_sqrt_price(state.sqrt_price_x96)

    @staticmethod
    def _validate_sqrt_price(sqrt_price_x96: int) -> None:
        if not MIN_SQRT_PRICE <= sqrt_price_x96 < MAX_SQRT_PRICE:
            raise InvalidPrice(sqrt_price_x96, MIN_SQRT_PRICE, MAX_SQRT_PRICE)

    @staticmethod
    def _validate_tick_range(key: PoolKey, params: ModifyLiquidityParams) -> None:
        lower, upper, spacing = params.tick_lower, params.tick_upper, key.tick_spacing
        if (
            lower >= upper
            or lower < MIN_TICK
            or upper > MAX_TICK
            or lower % spacing != 0
            or upper % spacing != 0
        ):
            raise InvalidTickRange(lower, upper, spacing)
