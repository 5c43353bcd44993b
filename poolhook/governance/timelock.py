"""
Fee Governance Timelock

Delayed, cancellable LP-fee changes. A proposal names a pool, a new fee
and a delay; once ``created_at + delay`` has passed anyone may execute it,
which applies the fee through the hook's ``update_fee`` entry point with
the timelock's own address as caller.

Lifecycle:

    PENDING ──approve──▶ ACTIVE ──execute──▶ EXECUTED
       │                   │
       └──────cancel───────┴──────────────▶ CANCELLED

Proposals start ACTIVE unless the governance config requires owner
approval. EXECUTED and CANCELLED are terminal.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Optional, Set

from ..config import GovernanceConfig
from ..constants import MAX_LP_FEE
from ..exceptions import (
    DelayNotElapsed,
    InvalidDelay,
    InvalidFee,
    PoolNotFound,
    ProposalNotActive,
    ProposalNotFound,
    UnauthorizedCaller,
)
from ..exchange.clock import Clock
from ..exchange.events import (
    EventLog,
    ProposalApproved,
    ProposalCancelled,
    ProposalCreated,
    ProposalExecuted,
)
from ..exchange.hooks import PoolHook
from ..exchange.pool_key import normalize_address
from ..logger import get_logger

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  STATUS
# ══════════════════════════════════════════════════════════════════════

class ProposalStatus(IntEnum):
    PENDING = 0      # Awaiting owner approval
    ACTIVE = 1       # Timelock running; executable once the delay passes
    EXECUTED = 2     # Fee applied
    CANCELLED = 3    # Withdrawn before execution


_VALID_TRANSITIONS: Dict[ProposalStatus, set] = {
    ProposalStatus.PENDING:   {ProposalStatus.ACTIVE, ProposalStatus.CANCELLED},
    ProposalStatus.ACTIVE:    {ProposalStatus.EXECUTED, ProposalStatus.CANCELLED},
    # Terminal states
    ProposalStatus.EXECUTED:  set(),
    ProposalStatus.CANCELLED: set(),
}


# ══════════════════════════════════════════════════════════════════════
#  PROPOSAL
# ══════════════════════════════════════════════════════════════════════

@dataclass
class Proposal:
    """
    A pending change of one pool's LP fee.

    Fields:
        id:           Monotonic identifier, starting at 1
        proposer:     Checksummed address of the creator
        pool_id:      Target pool
        new_fee:      Fee to apply, hundredths of a bip
        delay:        Seconds between creation and earliest execution
        created_at:   Creation timestamp
    """
    id: int
    proposer: str
    pool_id: str
    new_fee: int
    delay: int
    created_at: float
    status: ProposalStatus = ProposalStatus.ACTIVE
    executed_at: Optional[float] = None
    cancelled_at: Optional[float] = None
    _history: List[Dict[str, Any]] = field(default_factory=list, repr=False)

    @property
    def executable_at(self) -> float:
        return self.created_at + self.delay

    @property
    def is_terminal(self) -> bool:
        return self.status in (ProposalStatus.EXECUTED, ProposalStatus.CANCELLED)

    @property
    def history(self) -> List[Dict[str, Any]]:
        return list(self._history)

    def is_ready(self, now: float) -> bool:
        return self.status == ProposalStatus.ACTIVE and now >= self.executable_at

    def transition_to(self, new_status: ProposalStatus, now: float, reason: str = "") -> None:
        """
        Move to *new_status*.

        Raises ProposalNotActive on transitions out of a state that does
        not allow it.
        """
        if new_status not in _VALID_TRANSITIONS[self.status]:
            raise ProposalNotActive(self.id, self.status.name)
        old = self.status
        self._history.append({
            "from": old.name,
            "to": new_status.name,
            "reason": reason,
            "timestamp": now,
        })
        self.status = new_status
        logger.info(f"Proposal #{self.id}: {old.name} → {new_status.name} | {reason}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "proposer": self.proposer,
            "poolId": self.pool_id,
            "newFee": self.new_fee,
            "delay": self.delay,
            "status": self.status.name,
            "createdAt": self.created_at,
            "executableAt": self.executable_at,
            "executedAt": self.executed_at,
            "cancelledAt": self.cancelled_at,
            "historyLength": len(self._history),
        }

    def __repr__(self) -> str:
        return (
            f"<Proposal #{self.id} pool={self.pool_id[:10]}… "
            f"fee={self.new_fee} status={self.status.name}>"
        )


# ══════════════════════════════════════════════════════════════════════
#  TIMELOCK
# ══════════════════════════════════════════════════════════════════════

class FeeTimelock:
    """
    Owns the proposal table and is the only writer of pool fees.

    The timelock's ``address`` must be authorised as a fee governor on the
    hook before proposals can execute.
    """

    def __init__(
        self,
        hook: PoolHook,
        owner: str,
        address: str,
        clock: Optional[Clock] = None,
        config: Optional[GovernanceConfig] = None,
        events: Optional[EventLog] = None,
    ):
        self.hook = hook
        self.owner = normalize_address(owner)
        self.address = normalize_address(address)
        self.clock = clock if clock is not None else hook.clock
        self.config = config if config is not None else hook.config.governance
        self.events = events if events is not None else hook.events

        self._proposals: Dict[int, Proposal] = {}
        self._next_id = 1
        self._proposers: Set[str] = set()
        self._authorized: Set[str] = set()

    # ── Roles ─────────────────────────────────────────────────────────

    def _require_owner(self, caller: str, action: str) -> str:
        caller = normalize_address(caller)
        if caller != self.owner:
            raise UnauthorizedCaller(caller, action)
        return caller

    def grant_proposer(self, caller: str, account: str) -> None:
        self._require_owner(caller, "grant the proposer role")
        self._proposers.add(normalize_address(account))
        logger.info(f"Proposer role granted to {account}")

    def revoke_proposer(self, caller: str, account: str) -> None:
        self._require_owner(caller, "revoke the proposer role")
        self._proposers.discard(normalize_address(account))
        logger.info(f"Proposer role revoked from {account}")

    def authorize(self, caller: str, account: str) -> None:
        self._require_owner(caller, "authorize accounts")
        self._authorized.add(normalize_address(account))
        logger.info(f"Account authorized: {account}")

    def deauthorize(self, caller: str, account: str) -> None:
        self._require_owner(caller, "deauthorize accounts")
        self._authorized.discard(normalize_address(account))
        logger.info(f"Account deauthorized: {account}")

    def is_proposer(self, account: str) -> bool:
        return normalize_address(account) in self._proposers

    def is_authorized(self, account: str) -> bool:
        return normalize_address(account) in self._authorized

    def can_propose(self, account: str) -> bool:
        account = normalize_address(account)
        return account == self.owner or account in self._proposers or account in self._authorized

    # ── Lifecycle ─────────────────────────────────────────────────────

    def create_proposal(self, caller: str, pool_id: str, new_fee: int, delay: int) -> Proposal:
        """
        Raises:
            UnauthorizedCaller: caller is not owner, proposer or authorised
            InvalidFee: new_fee > MAX_LP_FEE
            InvalidDelay: delay outside [min_delay, max_delay]
            PoolNotFound: the hook does not track ``pool_id``
        """
        caller = normalize_address(caller)
        if not self.can_propose(caller):
            raise UnauthorizedCaller(caller, "create fee proposals")
        if not 0 <= new_fee <= MAX_LP_FEE:
            raise InvalidFee(new_fee, MAX_LP_FEE)
        if not self.config.min_delay <= delay <= self.config.max_delay:
            raise InvalidDelay(delay, self.config.min_delay, self.config.max_delay)
        if not self.hook.pool_exists(pool_id):
            raise PoolNotFound(pool_id)

        now = self.clock.now()
        status = ProposalStatus.PENDING if self.config.require_approval else ProposalStatus.ACTIVE
        proposal = Proposal(
            id=self._next_id,
            proposer=caller,
            pool_id=pool_id,
            new_fee=new_fee,
            delay=delay,
            created_at=now,
            status=status,
        )
        self._proposals[proposal.id] = proposal
        self._next_id += 1

        self.events.publish(ProposalCreated(
            timestamp=now,
            proposal_id=proposal.id,
            proposer=caller,
            pool_id=pool_id,
            new_fee=new_fee,
            delay=delay,
            status=status.name,
        ))
        logger.info(
            f"Proposal #{proposal.id} created by {caller}: pool {pool_id} "
            f"fee → {new_fee} after {delay}s ({status.name})"
        )
        return proposal

    def approve_proposal(self, caller: str, proposal_id: int) -> Proposal:
        caller = self._require_owner(caller, "approve proposals")
        proposal = self._require_proposal(proposal_id)
        now = self.clock.now()
        proposal.transition_to(ProposalStatus.ACTIVE, now, f"Approved by {caller}")
        self.events.publish(ProposalApproved(timestamp=now, proposal_id=proposal_id, approver=caller))
        return proposal

    def execute_proposal(self, caller: str, proposal_id: int) -> Proposal:
        """
        Apply an ACTIVE proposal whose delay has elapsed. Callable by anyone.

        Raises:
            ProposalNotFound, ProposalNotActive, DelayNotElapsed
        """
        caller = normalize_address(caller)
        proposal = self._require_proposal(proposal_id)
        if proposal.status != ProposalStatus.ACTIVE:
            raise ProposalNotActive(proposal_id, proposal.status.name)
        now = self.clock.now()
        if now < proposal.executable_at:
            raise DelayNotElapsed(proposal_id, proposal.executable_at, now)

        old_fee = self.hook.get_fee(proposal.pool_id)
        self.hook.update_fee(self.address, proposal.pool_id, proposal.new_fee)

        proposal.executed_at = now
        proposal.transition_to(ProposalStatus.EXECUTED, now, f"Executed by {caller}")
        self.events.publish(ProposalExecuted(
            timestamp=now,
            proposal_id=proposal_id,
            executor=caller,
            pool_id=proposal.pool_id,
            old_fee=old_fee,
            new_fee=proposal.new_fee,
        ))
        return proposal

    def cancel_proposal(self, caller: str, proposal_id: int) -> Proposal:
        """Withdraw a PENDING or ACTIVE proposal (proposer, owner or authorised)."""
        caller = normalize_address(caller)
        proposal = self._require_proposal(proposal_id)
        if caller not in (proposal.proposer, self.owner) and caller not in self._authorized:
            raise UnauthorizedCaller(caller, f"cancel proposal #{proposal_id}")
        if proposal.is_terminal:
            raise ProposalNotActive(proposal_id, proposal.status.name)

        now = self.clock.now()
        proposal.cancelled_at = now
        proposal.transition_to(ProposalStatus.CANCELLED, now, f"Cancelled by {caller}")
        self.events.publish(ProposalCancelled(
            timestamp=now, proposal_id=proposal_id, cancelled_by=caller, pool_id=proposal.pool_id,
        ))
        return proposal

    # ── Queries ───────────────────────────────────────────────────────

    def get_proposal(self, proposal_id: int) -> Optional[Proposal]:
        return self._proposals.get(proposal_id)

    def proposals_for_pool(self, pool_id: str) -> List[Proposal]:
        return [p for p in self._proposals.values() if p.pool_id == pool_id]

    @property
    def proposal_count(self) -> int:
        return len(self._proposals)

    def _require_proposal(self, proposal_id: int) -> Proposal:
        proposal = self._proposals.get(proposal_id)
        if proposal is None:
            raise ProposalNotFound(proposal_id)
        return proposal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner": self.owner,
            "address": self.address,
            "proposalCount": self.proposal_count,
            "proposals": [p.to_dict() for p in self._proposals.values()],
        }
