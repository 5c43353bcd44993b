"""
TWAP Oracle

Bucketed price snapshots read from the hook's reserve ledger:
  - One observation per (pool, bucket), bucket = floor(now / PERIOD) * PERIOD
  - Writes within the same bucket overwrite (last write wins)
  - Reads look up the bucket holding the first second of the window
    ``(now - seconds_ago, now]`` and walk back a bounded number of
    buckets before giving up, so a read of the last second always sees
    the observation just written

Security features:
  - Staleness check: the newest observation must be younger than the
    requested lookback
  - Lookback bounded to one period
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from ..exceptions import InvalidPeriod, NoObservations, PoolNotFound, StalePrice
from ..logger import get_logger
from .clock import Clock
from .events import EventLog, ObservationRecorded
from .hooks import PoolHook
from .pricing import reserve_price

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------

@dataclass
class Observation:
    """Price and reserves of a pool as recorded at ``timestamp``."""
    timestamp: float
    price: int
    reserve0: int
    reserve1: int

    def to_dict(self) -> Dict[str, object]:
        return {
            "timestamp": self.timestamp,
            "price": self.price,
            "reserve0": self.reserve0,
            "reserve1": self.reserve1,
        }


# ---------------------------------------------------------------------------
# TWAP Oracle
# ---------------------------------------------------------------------------

class TWAPOracle:
    """
    Time-bucketed price oracle over the pools tracked by a ``PoolHook``.

    Observations are kept per pool id and never deleted.
    """

    def __init__(
        self,
        hook: PoolHook,
        clock: Optional[Clock] = None,
        period: Optional[int] = None,
        max_lookback_buckets: Optional[int] = None,
        events: Optional[EventLog] = None,
    ):
        self.hook = hook
        self.clock = clock if clock is not None else hook.clock
        self.period = period if period is not None else hook.config.oracle.period
        self.max_lookback_buckets = (
            max_lookback_buckets if max_lookback_buckets is not None
            else hook.config.oracle.max_lookback_buckets
        )
        self.events = events if events is not None else hook.events
        self._observations: Dict[str, Dict[int, Observation]] = {}
        self._latest: Dict[str, Observation] = {}

    def bucket_for(self, timestamp: float) -> int:
        return int(timestamp // self.period) * self.period

    def observation_count(self, pool_id: str) -> int:
        return len(self._observations.get(pool_id, {}))

    def get_observation(self, pool_id: str, bucket: int) -> Optional[Observation]:
        return self._observations.get(pool_id, {}).get(bucket)

    # -- Recording ----------------------------------------------------------

    def update_price(self, pool_id: str) -> Observation:
        """
        Snapshot the pool's current reserves into the current bucket.

        Raises:
            PoolNotFound: the hook does not track ``pool_id``
        """
        if not self.hook.pool_exists(pool_id):
            raise PoolNotFound(pool_id)
        reserve0, reserve1 = self.hook.get_reserves(pool_id)
        now = self.clock.now()
        bucket = self.bucket_for(now)

        obs = Observation(
            timestamp=now,
            price=reserve_price(reserve0, reserve1),
            reserve0=reserve0,
            reserve1=reserve1,
        )
        self._observations.setdefault(pool_id, {})[bucket] = obs
        self._latest[pool_id] = obs

        self.events.publish(ObservationRecorded(
            timestamp=now,
            pool_id=pool_id,
            bucket=bucket,
            price=obs.price,
            reserve0=reserve0,
            reserve1=reserve1,
        ))
        logger.debug("Observation %s bucket=%d price=%d", pool_id, bucket, obs.price)
        return obs

    # -- Reads --------------------------------------------------------------

    def consult(self, pool_id: str, seconds_ago: int) -> int:
        """
        Price recorded for the start of the last ``seconds_ago`` seconds.

        Raises:
            InvalidPeriod: seconds_ago not in [1, period]
            NoObservations: nothing recorded, or no bucket within reach
            StalePrice: newest observation older than ``seconds_ago``
        """
        if seconds_ago <= 0 or seconds_ago > self.period:
            raise InvalidPeriod(seconds_ago, self.period)

        buckets = self._observations.get(pool_id)
        if not buckets:
            raise NoObservations(pool_id)

        now = self.clock.now()
        latest = self._latest[pool_id]
        if now - latest.timestamp > seconds_ago:
            logger.warning("Stale price for %s: last observation at %s", pool_id, latest.timestamp)
            raise StalePrice(pool_id, latest.timestamp, now, seconds_ago)

        # Window is (now - seconds_ago, now]; start from the bucket of its first second
        target = self.bucket_for(now - seconds_ago + 1)
        for step in range(self.max_lookback_buckets + 1):
            obs = buckets.get(target - step * self.period)
            if obs is not None:
                return obs.price
        raise NoObservations(pool_id, now - seconds_ago)

    def get_reserves(self, pool_id: str) -> Observation:
        """Newest observation, or live reserves stamped with the current time."""
        latest = self._latest.get(pool_id)
        if latest is not None:
            return latest
        reserve0, reserve1 = self.hook.get_reserves(pool_id)
        return Observation(
            timestamp=self.clock.now(),
            price=reserve_price(reserve0, reserve1),
            reserve0=reserve0,
            reserve1=reserve1,
        )
