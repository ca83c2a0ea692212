"""Per-provider circuit breaker.

Temporarily excludes a provider after repeated failures.

The breaker has two states:
- CLOSED: Normal operation, failures are counted
- OPEN: Provider excluded after failure_threshold failures

State transitions:
- CLOSED -> OPEN: When failure_count >= failure_threshold
- OPEN -> CLOSED: On the first eligibility check more than cooldown_seconds
  after the last failure, or on administrative reset()

There is no half-open trial phase. The first check after the cool-down
re-admits the provider at full traffic.

Example usage:
    breaker = CircuitBreaker(["gpt-4", "claude"], clock=SystemClock())

    if breaker.is_closed("gpt-4"):
        try:
            text = await client.complete(...)
            breaker.record_success("gpt-4")
        except ProviderError:
            breaker.record_failure("gpt-4")
            raise
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from threading import Lock
from typing import Any

from augur.core.clock import Clock, SystemClock
from augur.core.constants import CIRCUIT_COOLDOWN_SECONDS, CIRCUIT_FAILURE_THRESHOLD
from augur.core.logging import get_logger

_logger = get_logger("circuit_breaker")


class CircuitState(str, Enum):
    """State of one provider's circuit."""

    CLOSED = "closed"
    """Provider is usable; failures are counted."""

    OPEN = "open"
    """Provider is excluded until the cool-down elapses."""


@dataclass
class _ProviderCircuit:
    failure_count: int = 0
    last_failure_at: float | None = None
    times_opened: int = 0
    lock: Lock = field(default_factory=Lock, repr=False)


class CircuitBreaker:
    """Failure-count state machine, one circuit per provider.

    Each provider's circuit has its own lock, so outcome reports for
    different providers never contend.
    """

    def __init__(
        self,
        provider_ids: Iterable[str] = (),
        failure_threshold: int = CIRCUIT_FAILURE_THRESHOLD,
        cooldown_seconds: float = CIRCUIT_COOLDOWN_SECONDS,
        clock: Clock | None = None,
    ) -> None:
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if cooldown_seconds <= 0:
            raise ValueError("cooldown_seconds must be positive")

        self._failure_threshold = failure_threshold
        self._cooldown_seconds = cooldown_seconds
        self._clock = clock or SystemClock()
        self._circuits: dict[str, _ProviderCircuit] = {}
        for provider_id in provider_ids:
            self.register(provider_id)

    @property
    def failure_threshold(self) -> int:
        return self._failure_threshold

    @property
    def cooldown_seconds(self) -> float:
        return self._cooldown_seconds

    def register(self, provider_id: str) -> None:
        """Create a closed circuit for a provider. Idempotent."""
        self._circuits.setdefault(provider_id, _ProviderCircuit())

    def _circuit(self, provider_id: str) -> _ProviderCircuit:
        try:
            return self._circuits[provider_id]
        except KeyError:
            raise KeyError(f"Unknown provider: {provider_id}") from None

    def _is_tripped(self, circuit: _ProviderCircuit) -> bool:
        return circuit.failure_count >= self._failure_threshold

    def is_closed(self, provider_id: str) -> bool:
        """Eligibility check. Closes an open circuit whose cool-down has elapsed.

        Must be called before any query to the provider.
        """
        circuit = self._circuit(provider_id)
        with circuit.lock:
            if not self._is_tripped(circuit):
                return True
            last_failure = circuit.last_failure_at or 0.0
            elapsed = self._clock.now() - last_failure
            if elapsed > self._cooldown_seconds:
                circuit.failure_count = 0
                circuit.last_failure_at = None
                _logger.info(
                    "circuit_breaker.state_changed",
                    provider=provider_id,
                    from_state=CircuitState.OPEN.value,
                    to_state=CircuitState.CLOSED.value,
                    reason="cooldown_elapsed",
                    elapsed_seconds=round(elapsed, 2),
                )
                return True
            return False

    def state(self, provider_id: str) -> CircuitState:
        """Current state without triggering the cool-down transition."""
        circuit = self._circuit(provider_id)
        with circuit.lock:
            return CircuitState.OPEN if self._is_tripped(circuit) else CircuitState.CLOSED

    def failure_count(self, provider_id: str) -> int:
        circuit = self._circuit(provider_id)
        with circuit.lock:
            return circuit.failure_count

    def record_success(self, provider_id: str) -> None:
        """A successful call resets the failure counter to zero."""
        circuit = self._circuit(provider_id)
        with circuit.lock:
            if circuit.failure_count:
                _logger.debug(
                    "circuit_breaker.success_recorded",
                    provider=provider_id,
                    cleared_failures=circuit.failure_count,
                )
            circuit.failure_count = 0

    def record_failure(self, provider_id: str) -> None:
        """Count a failure; opens the circuit at the threshold."""
        circuit = self._circuit(provider_id)
        with circuit.lock:
            circuit.failure_count += 1
            circuit.last_failure_at = self._clock.now()
            if circuit.failure_count == self._failure_threshold:
                circuit.times_opened += 1
                _logger.warning(
                    "circuit_breaker.state_changed",
                    provider=provider_id,
                    from_state=CircuitState.CLOSED.value,
                    to_state=CircuitState.OPEN.value,
                    reason="failure_threshold_reached",
                    failure_count=circuit.failure_count,
                    failure_threshold=self._failure_threshold,
                )
            else:
                _logger.debug(
                    "circuit_breaker.failure_recorded",
                    provider=provider_id,
                    failure_count=circuit.failure_count,
                    failure_threshold=self._failure_threshold,
                )

    def reset(self, provider_id: str) -> None:
        """Force the circuit closed regardless of timers."""
        circuit = self._circuit(provider_id)
        with circuit.lock:
            circuit.failure_count = 0
            circuit.last_failure_at = None
        _logger.info("circuit_breaker.reset", provider=provider_id)

    def time_until_retry(self, provider_id: str) -> float | None:
        """Seconds until an open circuit closes, or None if closed."""
        circuit = self._circuit(provider_id)
        with circuit.lock:
            if not self._is_tripped(circuit) or circuit.last_failure_at is None:
                return None
            elapsed = self._clock.now() - circuit.last_failure_at
            return max(0.0, self._cooldown_seconds - elapsed)

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """Per-provider state for observability."""
        result: dict[str, dict[str, Any]] = {}
        for provider_id, circuit in self._circuits.items():
            with circuit.lock:
                result[provider_id] = {
                    "state": (
                        CircuitState.OPEN if self._is_tripped(circuit) else CircuitState.CLOSED
                    ).value,
                    "failure_count": circuit.failure_count,
                    "last_failure_at": circuit.last_failure_at,
                    "times_opened": circuit.times_opened,
                }
        return result

    def __repr__(self) -> str:
        open_ids = [pid for pid, c in self._circuits.items() if self._is_tripped(c)]
        return (
            f"CircuitBreaker(providers={len(self._circuits)}, open={open_ids}, "
            f"threshold={self._failure_threshold})"
        )
