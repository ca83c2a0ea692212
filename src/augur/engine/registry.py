"""Provider registry: configuration and live performance statistics.

The registry owns one ProviderConfig and one ProviderPerformance per
provider, kept in registration order. Providers are never removed, only
disabled. Eligibility combines the enabled flag with the circuit breaker
and rate limiter, which share the registry's provider ids.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from threading import Lock
from typing import Any

from pydantic import ValidationError

from augur.core.config import ProviderConfig
from augur.core.logging import get_logger
from augur.core.models import ProviderPerformance
from augur.engine.circuit_breaker import CircuitBreaker
from augur.engine.rate_limiter import RateLimiter

_logger = get_logger("registry")

# Blend factors for the exponentially smoothed rates
_SMOOTHING_KEEP = 0.9
_SMOOTHING_NEW = 0.1


def _seed_performance(config: ProviderConfig) -> ProviderPerformance | None:
    seed = config.initial_performance
    if seed is None:
        return None
    return ProviderPerformance(
        accuracy=seed.accuracy,
        avg_latency_ms=seed.avg_latency_ms,
        error_rate=seed.error_rate,
        avg_confidence=seed.avg_confidence,
        success_rate=seed.success_rate,
        last_updated=datetime.now(UTC),
    )


@dataclass
class _ProviderEntry:
    config: ProviderConfig
    order: int
    performance: ProviderPerformance | None = None
    lock: Lock = field(default_factory=Lock, repr=False)


class ProviderRegistry:
    """Holds provider configs and performance, keyed by provider id."""

    def __init__(
        self,
        providers: Iterable[ProviderConfig],
        circuit_breaker: CircuitBreaker,
        rate_limiter: RateLimiter,
    ) -> None:
        self._circuit_breaker = circuit_breaker
        self._rate_limiter = rate_limiter
        self._entries: dict[str, _ProviderEntry] = {}
        for config in providers:
            self._register(config)

    def _register(self, config: ProviderConfig) -> None:
        if config.id in self._entries:
            raise ValueError(f"Duplicate provider id: {config.id}")
        self._entries[config.id] = _ProviderEntry(
            config=config,
            order=len(self._entries),
            performance=_seed_performance(config),
        )
        self._circuit_breaker.register(config.id)
        self._rate_limiter.register(config.id)

    def _entry(self, provider_id: str) -> _ProviderEntry:
        try:
            return self._entries[provider_id]
        except KeyError:
            raise KeyError(f"Unknown provider: {provider_id}") from None

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    def ids(self) -> list[str]:
        """All provider ids in registration order."""
        return list(self._entries)

    def all(self) -> list[ProviderConfig]:
        return [entry.config for entry in self._entries.values()]

    def get(self, provider_id: str) -> ProviderConfig:
        return self._entry(provider_id).config

    def registration_order(self, provider_id: str) -> int:
        return self._entry(provider_id).order

    def list_eligible(self) -> list[ProviderConfig]:
        """Enabled providers with a closed circuit and budget left this minute.

        Sorted by ascending priority; registration order breaks ties.
        """
        eligible = [
            entry
            for entry in self._entries.values()
            if entry.config.enabled
            and self._circuit_breaker.is_closed(entry.config.id)
            and self._rate_limiter.has_capacity(entry.config)
        ]
        eligible.sort(key=lambda e: (e.config.priority, e.order))
        return [entry.config for entry in eligible]

    def update(self, provider_id: str, **updates: Any) -> ProviderConfig:
        """Apply a partial configuration update.

        Raises:
            KeyError: Unknown provider.
            ValueError: Attempt to change the id, unknown field, or invalid value.
        """
        entry = self._entry(provider_id)
        if "id" in updates and updates["id"] != provider_id:
            raise ValueError("Provider id cannot be changed")
        unknown = set(updates) - set(ProviderConfig.model_fields)
        if unknown:
            raise ValueError(f"Unknown provider fields: {', '.join(sorted(unknown))}")

        with entry.lock:
            merged = {**entry.config.model_dump(), **updates}
            try:
                entry.config = ProviderConfig.model_validate(merged)
            except ValidationError as e:
                raise ValueError(str(e)) from e
            config = entry.config

        _logger.info(
            "provider_config_updated",
            provider=provider_id,
            fields=sorted(updates),
        )
        return config

    def performance(self, provider_id: str) -> ProviderPerformance | None:
        """A copy of the provider's performance, or None without history."""
        entry = self._entry(provider_id)
        with entry.lock:
            return replace(entry.performance) if entry.performance else None

    def performance_snapshot(self) -> dict[str, ProviderPerformance]:
        """Copies of every provider's performance that has any."""
        snapshot: dict[str, ProviderPerformance] = {}
        for provider_id, entry in self._entries.items():
            with entry.lock:
                if entry.performance is not None:
                    snapshot[provider_id] = replace(entry.performance)
        return snapshot

    def record_success(self, provider_id: str, latency_ms: float, confidence: float) -> None:
        """Fold one successful call into the provider's statistics.

        A response counts as correct until an external grade says otherwise
        (see grade_prediction).
        """
        entry = self._entry(provider_id)
        with entry.lock:
            perf = entry.performance
            if perf is None:
                perf = ProviderPerformance(
                    avg_latency_ms=latency_ms,
                    avg_confidence=confidence,
                    success_rate=1.0,
                )
            else:
                perf.avg_latency_ms = (perf.avg_latency_ms + latency_ms) / 2
                perf.avg_confidence = (perf.avg_confidence + confidence) / 2
                perf.success_rate = perf.success_rate * _SMOOTHING_KEEP + _SMOOTHING_NEW
                perf.error_rate = perf.error_rate * _SMOOTHING_KEEP
            perf.total_predictions += 1
            perf.correct_predictions += 1
            perf.accuracy = perf.correct_predictions / perf.total_predictions
            perf.last_updated = datetime.now(UTC)
            entry.performance = perf

    def record_failure(self, provider_id: str) -> None:
        entry = self._entry(provider_id)
        with entry.lock:
            perf = entry.performance
            if perf is None:
                perf = ProviderPerformance(error_rate=_SMOOTHING_NEW)
            else:
                perf.success_rate = perf.success_rate * _SMOOTHING_KEEP
                perf.error_rate = perf.error_rate * _SMOOTHING_KEEP + _SMOOTHING_NEW
            perf.last_updated = datetime.now(UTC)
            entry.performance = perf

    def grade_prediction(self, provider_id: str, correct: bool) -> None:
        """Apply an external correctness signal to a past prediction.

        Predictions are provisionally counted as correct; an incorrect grade
        takes one back and recomputes accuracy.
        """
        entry = self._entry(provider_id)
        with entry.lock:
            perf = entry.performance
            if perf is None or perf.total_predictions == 0:
                _logger.warning("grade_without_predictions", provider=provider_id)
                return
            if not correct:
                perf.correct_predictions = max(0, perf.correct_predictions - 1)
            perf.accuracy = perf.correct_predictions / perf.total_predictions
            perf.last_updated = datetime.now(UTC)

    def reset_performance(self, provider_id: str) -> None:
        """Administrative reset back to the configured seed (or no history)."""
        entry = self._entry(provider_id)
        with entry.lock:
            entry.performance = _seed_performance(entry.config)
        _logger.info("provider_performance_reset", provider=provider_id)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, provider_id: object) -> bool:
        return provider_id in self._entries
