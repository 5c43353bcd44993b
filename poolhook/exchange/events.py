"""
Domain events emitted for off-chain observers.

Each event carries enough fields to reconstruct the state transition it
reports (pool id, account, before/after amounts, timestamp). Events are
published through an ``EventLog``; while an operation is in flight they
are buffered and only delivered when the operation commits, so an aborted
operation leaves no trace in the log.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, List, Optional

from ..logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Event:
    timestamp: float

    @property
    def name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        return {"event": self.name, **asdict(self)}


# ---------------------------------------------------------------------------
# Hook events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PoolInitialized(Event):
    pool_id: str
    sender: str
    currency0: str
    currency1: str
    fee: int
    tick_spacing: int
    sqrt_price_x96: int
    tick: int


@dataclass(frozen=True)
class LiquidityAdded(Event):
    pool_id: str
    sender: str
    amount0: int
    amount1: int
    reserve0_before: int
    reserve1_before: int
    reserve0_after: int
    reserve1_after: int
    invariant_before: int
    invariant_after: int


@dataclass(frozen=True)
class LiquidityRemoved(Event):
    pool_id: str
    sender: str
    amount0: int
    amount1: int
    reserve0_before: int
    reserve1_before: int
    reserve0_after: int
    reserve1_after: int
    invariant_before: int
    invariant_after: int


@dataclass(frozen=True)
class SwapCompleted(Event):
    pool_id: str
    sender: str
    zero_for_one: bool
    delta0: int
    delta1: int
    price_before: int
    price_after: int
    reserve0_after: int
    reserve1_after: int


@dataclass(frozen=True)
class DonationProcessed(Event):
    pool_id: str
    sender: str
    amount0: int
    amount1: int
    reserve0_after: int
    reserve1_after: int


@dataclass(frozen=True)
class ProtocolFeesCollected(Event):
    pool_id: str
    amount0: int
    amount1: int
    total0: int
    total1: int


@dataclass(frozen=True)
class FeeUpdated(Event):
    pool_id: str
    caller: str
    old_fee: int
    new_fee: int


@dataclass(frozen=True)
class BlacklistUpdated(Event):
    account: str
    blacklisted: bool
    admin: str


# ---------------------------------------------------------------------------
# Governance events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProposalCreated(Event):
    proposal_id: int
    proposer: str
    pool_id: str
    new_fee: int
    delay: int
    status: str


@dataclass(frozen=True)
class ProposalApproved(Event):
    proposal_id: int
    approver: str


@dataclass(frozen=True)
class ProposalExecuted(Event):
    proposal_id: int
    executor: str
    pool_id: str
    old_fee: int
    new_fee: int


@dataclass(frozen=True)
class ProposalCancelled(Event):
    proposal_id: int
    cancelled_by: str
    pool_id: str


# ---------------------------------------------------------------------------
# Oracle events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ObservationRecorded(Event):
    pool_id: str
    bucket: int
    price: int
    reserve0: int
    reserve1: int


Subscriber = Callable[[Event], None]


class EventLog:
    """
    Append-only log of published events with transactional buffering.

    ``begin`` opens a buffer, ``commit`` hands it to the enclosing buffer
    (or delivers it when outermost), ``rollback`` discards it.
    """

    def __init__(self) -> None:
        self._events: List[Event] = []
        self._buffers: List[List[Event]] = []
        self._subscribers: List[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        self._subscribers = [s for s in self._subscribers if s != callback]

    def publish(self, event: Event) -> None:
        if self._buffers:
            self._buffers[-1].append(event)
        else:
            self._deliver([event])

    def begin(self) -> None:
        self._buffers.append([])

    def commit(self) -> None:
        buffered = self._buffers.pop()
        if self._buffers:
            self._buffers[-1].extend(buffered)
        else:
            self._deliver(buffered)

    def rollback(self) -> None:
        discarded = self._buffers.pop()
        if discarded:
            logger.debug("Discarded %d buffered events", len(discarded))

    def _deliver(self, events: List[Event]) -> None:
        for event in events:
            self._events.append(event)
            logger.debug("%s %s", event.name, event.to_dict())
            for callback in self._subscribers:
                callback(event)

    @property
    def events(self) -> List[Event]:
        return list(self._events)

    def filter(self, name: str) -> List[Event]:
        return [e for e in self._events if e.name == name]

    def last(self, name: Optional[str] = None) -> Optional[Event]:
        for event in reversed(self._events):
            if name is None or event.name == name:
                return event
        return None

    def __len__(self) -> int:
        return len(self._events)
