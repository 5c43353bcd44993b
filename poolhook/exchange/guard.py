"""
MEV Guard Policy

Checks consulted by the hook around every guarded operation:

  - Blacklist: flagged accounts are rejected outright (admin-managed)
  - Cooldown: an account must wait ``cooldown`` seconds between guarded
    operations; the timer is refreshed only by a successful operation
  - Slippage: estimated price impact may not exceed ``max_slippage_bps``

Guard state is created lazily on an account's first interaction and never
removed; cooldowns age out on their own.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Set

from ..constants import COOLDOWN_SECONDS, MAX_SLIPPAGE_BPS
from ..exceptions import Blacklisted, CooldownActive, SlippageExceeded, UnauthorizedCaller
from ..logger import get_logger
from .pool_key import normalize_address

logger = get_logger(__name__)


@dataclass
class GuardState:
    """Process-wide guard tables."""
    last_operation: Dict[str, float] = field(default_factory=dict)
    blacklisted: Set[str] = field(default_factory=set)

    def copy(self) -> "GuardState":
        return GuardState(dict(self.last_operation), set(self.blacklisted))


class MEVGuard:
    """Blacklist, cooldown and slippage policy."""

    def __init__(
        self,
        admins: Iterable[str],
        cooldown: int = COOLDOWN_SECONDS,
        max_slippage_bps: int = MAX_SLIPPAGE_BPS,
    ):
        self.cooldown = cooldown
        self.max_slippage_bps = max_slippage_bps
        self._admins: Set[str] = {normalize_address(a) for a in admins}
        self.state = GuardState()

    # -- Blacklist ----------------------------------------------------------

    def is_admin(self, account: str) -> bool:
        return normalize_address(account) in self._admins

    def is_blacklisted(self, account: str) -> bool:
        return normalize_address(account) in self.state.blacklisted

    def set_blacklisted(self, caller: str, account: str, flag: bool) -> None:
        """Flag or unflag ``account``. Restricted to admins."""
        if not self.is_admin(caller):
            raise UnauthorizedCaller(caller, "update the blacklist")
        account = normalize_address(account)
        if flag:
            self.state.blacklisted.add(account)
        else:
            self.state.blacklisted.discard(account)
        logger.warning("Blacklist %s: %s (by %s)", "ADD" if flag else "REMOVE", account, caller)

    def ensure_not_blacklisted(self, account: str) -> None:
        if account in self.state.blacklisted:
            logger.warning("Blacklisted account %s rejected", account)
            raise Blacklisted(account)

    # -- Cooldown -----------------------------------------------------------

    def last_operation(self, account: str) -> Optional[float]:
        return self.state.last_operation.get(account)

    def check(self, account: str, now: float) -> None:
        """
        Raise if ``account`` may not operate at ``now``. Does not record.

        Raises:
            Blacklisted: account is flagged
            CooldownActive: now < last_operation + cooldown
        """
        self.ensure_not_blacklisted(account)
        last = self.state.last_operation.get(account)
        if last is not None and now < last + self.cooldown:
            logger.warning("Cooldown rejected %s (last=%s now=%s)", account, last, now)
            raise CooldownActive(account, last, last + self.cooldown, now)

    def record(self, account: str, now: float) -> None:
        self.state.last_operation[account] = now

    def check_and_record(self, account: str, now: float) -> None:
        self.check(account, now)
        self.record(account, now)

    # -- Slippage -----------------------------------------------------------

    def check_slippage(self, impact_bps: int, max_bps: Optional[int] = None) -> None:
        limit = self.max_slippage_bps if max_bps is None else max_bps
        if impact_bps > limit:
            logger.warning("Slippage rejected: %d bps > %d bps", impact_bps, limit)
            raise SlippageExceeded(impact_bps, limit)

    # -- Snapshot / restore -------------------------------------------------

    def snapshot(self) -> GuardState:
        return self.state.copy()

    def restore(self, snapshot: GuardState) -> None:
        self.state = snapshot
