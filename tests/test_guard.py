"""
Test suite for the MEV guard

Covers:
  - Blacklist management (admin only) and enforcement
  - Cooldown: first operation at t=0, boundary, per-account timers
  - Slippage bound
  - Snapshot / restore
"""

import pytest

from poolhook.exceptions import Blacklisted, CooldownActive, SlippageExceeded, UnauthorizedCaller
from poolhook.exchange.guard import MEVGuard


ADMIN = "0x" + "11" * 20
ALICE = "0x" + "55" * 20
BOB = "0x" + "66" * 20
MIXED_CASE = "0x" + "ab" * 20


@pytest.fixture
def guard():
    return MEVGuard(admins=[ADMIN], cooldown=60, max_slippage_bps=200)


class TestBlacklist:

    def test_admin_can_flag(self, guard):
        guard.set_blacklisted(ADMIN, ALICE, True)
        assert guard.is_blacklisted(ALICE)
        with pytest.raises(Blacklisted):
            guard.check(ALICE, 0)

    def test_admin_can_unflag(self, guard):
        guard.set_blacklisted(ADMIN, ALICE, True)
        guard.set_blacklisted(ADMIN, ALICE, False)
        guard.check(ALICE, 0)

    def test_non_admin_rejected(self, guard):
        with pytest.raises(UnauthorizedCaller):
            guard.set_blacklisted(ALICE, BOB, True)

    def test_lookup_is_case_insensitive(self, guard):
        guard.set_blacklisted(ADMIN, MIXED_CASE, True)
        assert guard.is_blacklisted(MIXED_CASE.upper().replace("0X", "0x"))


class TestCooldown:

    def test_first_operation_at_time_zero(self, guard):
        guard.check_and_record(ALICE, 0)
        assert guard.last_operation(ALICE) == 0

    def test_within_cooldown_rejected(self, guard):
        guard.check_and_record(ALICE, 1000)
        with pytest.raises(CooldownActive) as exc:
            guard.check_and_record(ALICE, 1059)
        assert exc.value.available_at == 1060
        assert guard.last_operation(ALICE) == 1000

    def test_exact_boundary_allowed(self, guard):
        guard.check_and_record(ALICE, 1000)
        guard.check_and_record(ALICE, 1060)
        assert guard.last_operation(ALICE) == 1060

    def test_accounts_are_independent(self, guard):
        guard.check_and_record(ALICE, 1000)
        guard.check_and_record(BOB, 1001)

    def test_check_does_not_record(self, guard):
        guard.check(ALICE, 1000)
        assert guard.last_operation(ALICE) is None


class TestSlippage:

    def test_at_limit_allowed(self, guard):
        guard.check_slippage(200)

    def test_above_limit_rejected(self, guard):
        with pytest.raises(SlippageExceeded) as exc:
            guard.check_slippage(201)
        assert exc.value.impact_bps == 201
        assert exc.value.max_bps == 200

    def test_explicit_limit(self, guard):
        with pytest.raises(SlippageExceeded):
            guard.check_slippage(60, max_bps=50)


class TestSnapshot:

    def test_restore(self, guard):
        snapshot = guard.snapshot()
        guard.check_and_record(ALICE, 1000)
        guard.set_blacklisted(ADMIN, BOB, True)
        guard.restore(snapshot)
        assert guard.last_operation(ALICE) is None
        assert not guard.is_blacklisted(BOB)
