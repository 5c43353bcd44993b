"""
poolhook Exceptions

Custom exception classes for the pool hook. Every failure aborts the
operation that raised it; the exception carries the offending values so
routers and tests can branch on cause.
"""

from typing import Any, Dict


class PoolHookError(Exception):
    """Base exception for the pool hook."""

    category = "error"

    def __init__(self, message: str = "", **details: Any):
        self.details: Dict[str, Any] = details
        for key, value in details.items():
            setattr(self, key, value)
        super().__init__(message or self.__class__.__name__)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "category": self.category,
            "message": str(self),
            **self.details,
        }


class ConfigurationError(PoolHookError):
    """Configuration error."""
    category = "configuration"


# ══════════════════════════════════════════════════════════════════════
#  ACCESS
# ══════════════════════════════════════════════════════════════════════

class AccessError(PoolHookError):
    category = "access"


class UnauthorizedCaller(AccessError):
    def __init__(self, caller: str, action: str):
        super().__init__(
            f"{caller} is not authorized to {action}",
            caller=caller, action=action,
        )


class Blacklisted(AccessError):
    def __init__(self, account: str):
        super().__init__(f"Account {account} is blacklisted", account=account)


class ReentrancyDetected(AccessError):
    def __init__(self, stage: str):
        super().__init__(f"Re-entrant hook call during {stage}", stage=stage)


# ══════════════════════════════════════════════════════════════════════
#  TEMPORAL
# ══════════════════════════════════════════════════════════════════════

class TemporalError(PoolHookError):
    category = "temporal"


class CooldownActive(TemporalError):
    def __init__(self, account: str, last_operation: float, available_at: float, now: float):
        super().__init__(
            f"Cooldown active for {account}: next operation allowed at "
            f"{available_at} (now={now})",
            account=account, last_operation=last_operation,
            available_at=available_at, now=now,
        )


class DelayNotElapsed(TemporalError):
    def __init__(self, proposal_id: int, executable_at: float, now: float):
        super().__init__(
            f"Proposal #{proposal_id} timelock not expired "
            f"(executable at {executable_at}, now={now})",
            proposal_id=proposal_id, executable_at=executable_at, now=now,
        )


class StalePrice(TemporalError):
    def __init__(self, pool_id: str, last_timestamp: float, now: float, max_age: int):
        super().__init__(
            f"Latest observation for {pool_id} is {now - last_timestamp}s old "
            f"(max {max_age}s)",
            pool_id=pool_id, last_timestamp=last_timestamp, now=now, max_age=max_age,
        )


class InvalidPeriod(TemporalError):
    def __init__(self, seconds_ago: int, max_period: int):
        super().__init__(
            f"Invalid lookback {seconds_ago}s: must be in [1, {max_period}]",
            seconds_ago=seconds_ago, max_period=max_period,
        )


# ══════════════════════════════════════════════════════════════════════
#  VALIDATION
# ══════════════════════════════════════════════════════════════════════

class ValidationError(PoolHookError):
    category = "validation"


class InvalidTickRange(ValidationError):
    def __init__(self, tick_lower: int, tick_upper: int, tick_spacing: int):
        super().__init__(
            f"Invalid tick range [{tick_lower}, {tick_upper}) for spacing {tick_spacing}",
            tick_lower=tick_lower, tick_upper=tick_upper, tick_spacing=tick_spacing,
        )


class InvalidFee(ValidationError):
    def __init__(self, fee: int, max_fee: int):
        super().__init__(f"Fee {fee} exceeds maximum {max_fee}", fee=fee, max_fee=max_fee)


class InvalidDelay(ValidationError):
    def __init__(self, delay: int, min_delay: int, max_delay: int):
        super().__init__(
            f"Delay {delay}s outside [{min_delay}s, {max_delay}s]",
            delay=delay, min_delay=min_delay, max_delay=max_delay,
        )


class InvalidPrice(ValidationError):
    def __init__(self, sqrt_price_x96: int, min_price: int, max_price: int):
        super().__init__(
            f"sqrt price {sqrt_price_x96} outside [{min_price}, {max_price})",
            sqrt_price_x96=sqrt_price_x96, min_price=min_price, max_price=max_price,
        )


class InvalidPoolParameters(ValidationError):
    def __init__(self, reason: str, **details: Any):
        super().__init__(f"Invalid pool parameters: {reason}", reason=reason, **details)


class InvalidAmount(ValidationError):
    def __init__(self, reason: str, **details: Any):
        super().__init__(f"Invalid amount: {reason}", reason=reason, **details)


class InvalidAddress(ValidationError):
    def __init__(self, address: str):
        super().__init__(f"Malformed address {address!r}", address=address)


class PoolAlreadyInitialized(ValidationError):
    def __init__(self, pool_id: str):
        super().__init__(f"Pool {pool_id} already initialized", pool_id=pool_id)


# ══════════════════════════════════════════════════════════════════════
#  INVARIANT
# ══════════════════════════════════════════════════════════════════════

class InvariantError(PoolHookError):
    category = "invariant"


class InsufficientReserve(InvariantError):
    def __init__(self, pool_id: str, token: int, reserve: int, delta: int):
        super().__init__(
            f"Delta {delta} would drive reserve{token} ({reserve}) of {pool_id} negative",
            pool_id=pool_id, token=token, reserve=reserve, delta=delta,
        )


class InsufficientLiquidity(InvariantError):
    def __init__(self, pool_id: str, reserve0: int, reserve1: int, minimum: int):
        super().__init__(
            f"Pool {pool_id} reserves ({reserve0}, {reserve1}) below minimum {minimum}",
            pool_id=pool_id, reserve0=reserve0, reserve1=reserve1, minimum=minimum,
        )


class ReserveOverflow(InvariantError):
    def __init__(self, pool_id: str, token: int, reserve: int, delta: int, maximum: int):
        super().__init__(
            f"Delta {delta} would overflow reserve{token} ({reserve}) of {pool_id}",
            pool_id=pool_id, token=token, reserve=reserve, delta=delta, maximum=maximum,
        )


class SlippageExceeded(InvariantError):
    def __init__(self, impact_bps: int, max_bps: int):
        super().__init__(
            f"Price impact {impact_bps} bps exceeds maximum {max_bps} bps",
            impact_bps=impact_bps, max_bps=max_bps,
        )


class InvariantDecreased(InvariantError):
    def __init__(self, pool_id: str, before: int, after: int):
        super().__init__(
            f"Invariant of {pool_id} decreased from {before} to {after}",
            pool_id=pool_id, before=before, after=after,
        )


# ══════════════════════════════════════════════════════════════════════
#  LOOKUP
# ══════════════════════════════════════════════════════════════════════

class NotFoundError(PoolHookError):
    category = "lookup"


class PoolNotFound(NotFoundError):
    def __init__(self, pool_id: str):
        super().__init__(f"Pool {pool_id} does not exist", pool_id=pool_id)


class PoolNotInitialized(NotFoundError):
    def __init__(self, pool_id: str):
        super().__init__(f"Pool {pool_id} is not initialized", pool_id=pool_id)


class NoObservations(NotFoundError):
    def __init__(self, pool_id: str, timestamp: float = 0):
        super().__init__(
            f"No observation available for {pool_id} near {timestamp}",
            pool_id=pool_id, timestamp=timestamp,
        )


class ProposalNotFound(NotFoundError):
    def __init__(self, proposal_id: int):
        super().__init__(f"Proposal #{proposal_id} does not exist", proposal_id=proposal_id)


class ProposalNotActive(NotFoundError):
    def __init__(self, proposal_id: int, status: str):
        super().__init__(
            f"Proposal #{proposal_id} is not active (status={status})",
            proposal_id=proposal_id, status=status,
        )
