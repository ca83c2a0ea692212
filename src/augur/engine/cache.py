"""Short-TTL advice cache keyed by record fingerprint.

Entries expire a fixed TTL after insertion. An expired entry reads as a
miss but stays in place until the next sweep, which runs after every put.
Values are copied on the way in and out; callers never share the stored
object.
"""

from __future__ import annotations

import copy
from dataclasses import asdict, dataclass
from threading import Lock
from typing import Any

from augur.core.clock import Clock, SystemClock
from augur.core.constants import CACHE_TTL_SECONDS
from augur.core.logging import get_logger
from augur.core.models import AdviceResult, ConsensusResult

_logger = get_logger("cache")

CONSENSUS_KEY_PREFIX = "consensus:"

CachedValue = AdviceResult | ConsensusResult


@dataclass
class CacheEntry:
    value: CachedValue
    stored_at: float


@dataclass
class CacheStats:
    size: int
    hit_rate: float
    hits: int
    misses: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class AdviceCache:
    """In-memory advice cache. Hit and miss counters are for observability only."""

    def __init__(self, ttl_seconds: float = CACHE_TTL_SECONDS, clock: Clock | None = None) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock or SystemClock()
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._lock = Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.stored_at >= self._ttl_seconds

    def get(self, fingerprint: str) -> CachedValue | None:
        """The cached value, or None on a miss (absent or expired)."""
        now = self._clock.now()
        with self._lock:
            entry = self._entries.get(fingerprint)
            if entry is None or self._is_expired(entry, now):
                self._misses += 1
                return None
            self._hits += 1
            return copy.deepcopy(entry.value)

    def put(self, fingerprint: str, value: CachedValue) -> None:
        with self._lock:
            self._entries[fingerprint] = CacheEntry(
                value=copy.deepcopy(value),
                stored_at=self._clock.now(),
            )
        self.sweep()

    def sweep(self) -> int:
        """Remove every expired entry. Returns how many were removed."""
        now = self._clock.now()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if self._is_expired(entry, now)]
            for key in expired:
                del self._entries[key]
        if expired:
            _logger.debug("cache_swept", removed=len(expired))
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> CacheStats:
        with self._lock:
            lookups = self._hits + self._misses
            return CacheStats(
                size=len(self._entries),
                hit_rate=self._hits / lookups if lookups else 0.0,
                hits=self._hits,
                misses=self._misses,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
