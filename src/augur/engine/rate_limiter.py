"""Fixed-window per-provider request budget.

Requests are bucketed by ``(provider_id, floor(now / 60))``. A full budget
is available at the start of every calendar minute and resets sharply at
the boundary, so two bursts can land back to back around a minute edge.

Only the current minute's window is kept per provider: a window that rolls
over replaces the stale one.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from threading import Lock

from augur.core.clock import Clock, SystemClock
from augur.core.config import ProviderConfig
from augur.core.constants import RATE_WINDOW_SECONDS
from augur.core.logging import get_logger

_logger = get_logger("rate_limiter")


@dataclass
class RateWindow:
    """Request count for one provider within one calendar minute."""

    window: int
    count: int = 0

    @property
    def resets_at(self) -> float:
        return float((self.window + 1) * RATE_WINDOW_SECONDS)


@dataclass
class _ProviderWindow:
    current: RateWindow | None = None
    lock: Lock = field(default_factory=Lock, repr=False)


class RateLimiter:
    """Per-provider requests-per-minute limiter.

    Limits are read from the ProviderConfig passed to each call so runtime
    updates to ``max_requests_per_minute`` apply immediately.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()
        self._providers: dict[str, _ProviderWindow] = {}

    def register(self, provider_id: str) -> None:
        self._providers.setdefault(provider_id, _ProviderWindow())

    def _entry(self, provider_id: str) -> _ProviderWindow:
        try:
            return self._providers[provider_id]
        except KeyError:
            raise KeyError(f"Unknown provider: {provider_id}") from None

    def _current_window(self) -> int:
        return math.floor(self._clock.now() / RATE_WINDOW_SECONDS)

    def _window_for(self, entry: _ProviderWindow, provider_id: str) -> RateWindow:
        # Caller holds entry.lock
        window = self._current_window()
        if entry.current is None or entry.current.window != window:
            if entry.current is not None and entry.current.count:
                _logger.debug(
                    "rate_window_rolled_over",
                    provider=provider_id,
                    previous_count=entry.current.count,
                )
            entry.current = RateWindow(window=window)
        return entry.current

    def try_acquire(self, provider: ProviderConfig) -> bool:
        """Consume one request from the current window.

        Returns False without mutating anything when the window is full.
        """
        entry = self._entry(provider.id)
        with entry.lock:
            current = self._window_for(entry, provider.id)
            if current.count >= provider.max_requests_per_minute:
                _logger.info(
                    "rate_limit_reached",
                    provider=provider.id,
                    limit=provider.max_requests_per_minute,
                    resets_at=current.resets_at,
                )
                return False
            current.count += 1
            return True

    def has_capacity(self, provider: ProviderConfig) -> bool:
        """Whether try_acquire would succeed right now. Does not consume budget."""
        return self.remaining(provider) > 0

    def remaining(self, provider: ProviderConfig) -> int:
        """Requests left in the current window."""
        entry = self._entry(provider.id)
        with entry.lock:
            window = self._current_window()
            used = entry.current.count if entry.current and entry.current.window == window else 0
        return max(0, provider.max_requests_per_minute - used)

    def window(self, provider_id: str) -> RateWindow | None:
        """The provider's current window, if one exists for this minute."""
        entry = self._entry(provider_id)
        with entry.lock:
            if entry.current is None or entry.current.window != self._current_window():
                return None
            return RateWindow(window=entry.current.window, count=entry.current.count)
