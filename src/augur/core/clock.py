"""Clock abstraction for time-based state transitions.

Circuit breaker cool-downs, rate-limit windows and cache TTLs all read
time through a Clock so tests can advance time deterministically.
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Source of wall-clock time in seconds since the epoch."""

    def now(self) -> float: ...


class SystemClock:
    """Clock backed by ``time.time()``."""

    def now(self) -> float:
        return time.time()
