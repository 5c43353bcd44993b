"""
Test suite for the reserve ledger

Covers:
  - apply_delta: signs, invariant / price refresh, negative and overflow guards
  - Protocol-fee deduction and collection
  - Invariant and reserve-floor checks
  - Snapshot / restore
"""

import pytest

from poolhook.constants import MAX_RESERVE, PRICE_PRECISION, Q96
from poolhook.exceptions import (
    InsufficientLiquidity,
    InsufficientReserve,
    InvariantDecreased,
    PoolAlreadyInitialized,
    PoolNotInitialized,
    ReserveOverflow,
)
from poolhook.exchange.ledger import BalanceDelta, ReserveLedger


POOL = "0x" + "ab" * 32


@pytest.fixture
def ledger():
    ledger = ReserveLedger()
    ledger.create(POOL, Q96, 0, lp_fee=3000, protocol_fee_bps=0, now=100.0)
    return ledger


class TestBalanceDelta:

    def test_zero(self):
        assert BalanceDelta().is_zero
        assert not BalanceDelta(1, 0).is_zero

    def test_negation(self):
        assert -BalanceDelta(5, -7) == BalanceDelta(-5, 7)


class TestApplyDelta:

    def test_create_starts_empty(self, ledger):
        state = ledger.get(POOL)
        assert state.reserves == (0, 0)
        assert state.last_invariant == 0
        assert state.last_price == 0
        assert not state.has_liquidity

    def test_create_twice_rejected(self, ledger):
        with pytest.raises(PoolAlreadyInitialized):
            ledger.create(POOL, Q96, 0, lp_fee=3000, protocol_fee_bps=0, now=100.0)

    def test_positive_delta_increases_reserves(self, ledger):
        state = ledger.apply_delta(POOL, 2000, 3000, now=150.0)
        assert state.reserves == (2000, 3000)
        assert state.last_invariant == 6_000_000
        assert state.last_price == 3000 * PRICE_PRECISION // 2000
        assert state.last_update_timestamp == 150.0

    def test_negative_delta_decreases_reserves(self, ledger):
        ledger.apply_delta(POOL, 5000, 5000, now=150.0)
        state = ledger.apply_delta(POOL, -1000, 0, now=160.0)
        assert state.reserves == (4000, 5000)

    def test_negative_reserve_rejected_without_partial_write(self, ledger):
        ledger.apply_delta(POOL, 5000, 5000, now=150.0)
        with pytest.raises(InsufficientReserve) as exc:
            ledger.apply_delta(POOL, 100, -6000, now=160.0)
        assert exc.value.token == 1
        assert ledger.get(POOL).reserves == (5000, 5000)

    def test_overflow_rejected(self, ledger):
        ledger.apply_delta(POOL, 5000, 5000, now=150.0)
        with pytest.raises(ReserveOverflow) as exc:
            ledger.apply_delta(POOL, MAX_RESERVE, 0, now=160.0)
        assert exc.value.maximum == MAX_RESERVE

    def test_unknown_pool(self, ledger):
        with pytest.raises(PoolNotInitialized):
            ledger.apply_delta("0x" + "00" * 32, 1, 1, now=0.0)
        assert ledger.find("0x" + "00" * 32) is None


class TestProtocolFees:

    def test_deduct_moves_share_to_accrued(self, ledger):
        ledger.set_protocol_fee(POOL, 250)
        ledger.apply_delta(POOL, 100_000, 100_000, now=150.0)
        fees = ledger.deduct_protocol_fee(POOL, 100_000, -40_000, now=150.0)
        assert fees == (2500, 1000)
        state = ledger.get(POOL)
        assert state.reserves == (97_500, 99_000)
        assert (state.protocol_fees0, state.protocol_fees1) == (2500, 1000)

    def test_no_fee_configured(self, ledger):
        ledger.apply_delta(POOL, 100_000, 100_000, now=150.0)
        assert ledger.deduct_protocol_fee(POOL, 100_000, 100_000, now=150.0) == (0, 0)

    def test_collect_zeroes_accrued(self, ledger):
        ledger.set_protocol_fee(POOL, 100)
        ledger.apply_delta(POOL, 100_000, 100_000, now=150.0)
        ledger.deduct_protocol_fee(POOL, 100_000, 100_000, now=150.0)
        assert ledger.collect_protocol_fees(POOL) == (1000, 1000)
        assert ledger.collect_protocol_fees(POOL) == (0, 0)

    def test_set_fee_returns_previous(self, ledger):
        assert ledger.set_fee(POOL, 500) == 3000
        assert ledger.get(POOL).lp_fee == 500


class TestInvariantChecks:

    def test_invariant_decrease_detected(self, ledger):
        ledger.apply_delta(POOL, 5000, 5000, now=150.0)
        before = ledger.get(POOL).last_invariant
        ledger.apply_delta(POOL, -100, 0, now=160.0)
        with pytest.raises(InvariantDecreased):
            ledger.ensure_invariant_not_decreased(POOL, before)

    def test_floor_is_inclusive(self, ledger):
        ledger.apply_delta(POOL, 1000, 1000, now=150.0)
        ledger.ensure_min_liquidity(POOL)
        ledger.apply_delta(POOL, -1, 0, now=160.0)
        with pytest.raises(InsufficientLiquidity):
            ledger.ensure_min_liquidity(POOL)


class TestSnapshot:

    def test_restore_discards_later_changes(self, ledger):
        ledger.apply_delta(POOL, 5000, 5000, now=150.0)
        snapshot = ledger.snapshot()
        ledger.apply_delta(POOL, 1000, 1000, now=160.0)
        ledger.restore(snapshot)
        assert ledger.get(POOL).reserves == (5000, 5000)

    def test_snapshot_is_deep(self, ledger):
        snapshot = ledger.snapshot()
        ledger.apply_delta(POOL, 5000, 5000, now=150.0)
        assert snapshot[POOL].reserves == (0, 0)

    def test_to_dict_keys(self, ledger):
        data = ledger.get(POOL).to_dict()
        assert data["poolId"] == POOL
        assert data["lpFee"] == 3000
