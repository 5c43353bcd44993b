"""Time source shared by the hook, oracle and timelock."""

from __future__ import annotations

import time
from typing import Optional


class Clock:
    """
    Wall clock by default; pinned to an explicit timestamp once ``set`` or
    ``advance`` is used (block timestamps, tests).
    """

    def __init__(self, start: Optional[float] = None):
        self._now = start

    def now(self) -> float:
        return time.time() if self._now is None else self._now

    def set(self, timestamp: float) -> None:
        if self._now is not None and timestamp < self._now:
            raise ValueError("Timestamp must be monotonically increasing")
        self._now = timestamp

    def advance(self, seconds: float) -> float:
        if seconds < 0:
            raise ValueError("Cannot advance clock backwards")
        self._now = self.now() + seconds
        return self._now

    @property
    def is_pinned(self) -> bool:
        return self._now is not None
