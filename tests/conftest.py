"""Shared fixtures: a pinned clock, a hook wired to a simulated host, pools, oracle and timelock."""

import os
import sys

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from poolhook.constants import Q96
from poolhook.exchange.clock import Clock
from poolhook.exchange.hooks import PoolHook
from poolhook.exchange.host import SimulatedHost
from poolhook.exchange.oracle import TWAPOracle
from poolhook.exchange.pool_key import InMemoryPoolRegistry, PoolKey
from poolhook.governance.timelock import FeeTimelock


OWNER = "0x" + "11" * 20
HOST = "0x" + "22" * 20
HOOK = "0x" + "33" * 20
TIMELOCK = "0x" + "44" * 20
LP = "0x" + "55" * 20
TRADER = "0x" + "66" * 20
OTHER = "0x" + "77" * 20
TOKEN_A = "0x" + "aa" * 20
TOKEN_B = "0x" + "bb" * 20

# 1_000_000 % 3600 == 2800: well inside an oracle bucket
START = 1_000_000.0


@pytest.fixture
def clock():
    return Clock(start=START)


@pytest.fixture
def registry():
    return InMemoryPoolRegistry()


@pytest.fixture
def hook(clock, registry):
    h = PoolHook(HOOK, OWNER, clock=clock, registry=registry)
    h.register_host(OWNER, HOST)
    return h


@pytest.fixture
def host(hook, registry):
    return SimulatedHost(hook, HOST, registry=registry)


@pytest.fixture
def key():
    return PoolKey.create(TOKEN_A, TOKEN_B, fee=3000, tick_spacing=60, hooks=HOOK)


@pytest.fixture
def zero_fee_key():
    return PoolKey.create(TOKEN_A, TOKEN_B, fee=0, tick_spacing=60, hooks=HOOK)


@pytest.fixture
def pool(host, key):
    """Initialized pool at price 1.0 with no liquidity."""
    return host.initialize(LP, key, Q96)


@pytest.fixture
def funded_pool(host, key, pool):
    """Pool with 1_000_000 / 1_000_000 reserves deposited by LP."""
    host.add_liquidity(LP, key, 1_000_000, 1_000_000)
    return pool


@pytest.fixture
def oracle(hook):
    return TWAPOracle(hook)


@pytest.fixture
def timelock(hook):
    tl = FeeTimelock(hook, OWNER, TIMELOCK)
    hook.authorize_fee_governor(OWNER, TIMELOCK)
    return tl
