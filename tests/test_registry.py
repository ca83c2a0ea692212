"""Tests for augur.engine.registry module."""

import pytest

from augur.engine.circuit_breaker import CircuitBreaker
from augur.engine.rate_limiter import RateLimiter
from augur.engine.registry import ProviderRegistry
from tests.helpers import ManualClock, make_provider


@pytest.fixture
def registry(clock: ManualClock) -> ProviderRegistry:
    return ProviderRegistry(
        [
            make_provider("alpha", priority=2),
            make_provider("beta", priority=1),
            make_provider("gamma", priority=2),
        ],
        CircuitBreaker(clock=clock),
        RateLimiter(clock=clock),
    )


class TestRegistration:
    """Tests for provider registration."""

    def test_ids_in_registration_order(self, registry: ProviderRegistry):
        assert registry.ids() == ["alpha", "beta", "gamma"]
        assert len(registry) == 3
        assert "beta" in registry

    def test_duplicate_ids_rejected(self, clock: ManualClock):
        with pytest.raises(ValueError, match="Duplicate"):
            ProviderRegistry(
                [make_provider("alpha"), make_provider("alpha")],
                CircuitBreaker(clock=clock),
                RateLimiter(clock=clock),
            )

    def test_performance_seeded_from_config(self, registry: ProviderRegistry):
        perf = registry.performance("alpha")
        assert perf is not None
        assert perf.accuracy == 0.7
        assert perf.total_predictions == 0

    def test_no_seed_means_no_history(self, clock: ManualClock):
        registry = ProviderRegistry(
            [make_provider("fresh", initial_performance=None)],
            CircuitBreaker(clock=clock),
            RateLimiter(clock=clock),
        )
        assert registry.performance("fresh") is None
        assert registry.performance_snapshot() == {}


class TestListEligible:
    """Tests for eligibility filtering and ordering."""

    def test_sorted_by_priority_then_registration(self, registry: ProviderRegistry):
        assert [p.id for p in registry.list_eligible()] == ["beta", "alpha", "gamma"]

    def test_excludes_disabled(self, registry: ProviderRegistry):
        registry.update("beta", enabled=False)
        assert [p.id for p in registry.list_eligible()] == ["alpha", "gamma"]

    def test_excludes_open_circuit_until_cooldown(
        self, registry: ProviderRegistry, clock: ManualClock
    ):
        for _ in range(5):
            registry.circuit_breaker.record_failure("beta")
        assert "beta" not in [p.id for p in registry.list_eligible()]

        clock.advance(61)
        assert "beta" in [p.id for p in registry.list_eligible()]

    def test_excludes_exhausted_rate_budget(self, registry: ProviderRegistry):
        registry.update("alpha", max_requests_per_minute=1)
        assert registry.rate_limiter.try_acquire(registry.get("alpha"))
        assert [p.id for p in registry.list_eligible()] == ["beta", "gamma"]

    def test_listing_does_not_consume_budget(self, registry: ProviderRegistry):
        registry.update("alpha", max_requests_per_minute=1)
        for _ in range(3):
            registry.list_eligible()
        assert registry.rate_limiter.remaining(registry.get("alpha")) == 1


class TestUpdate:
    """Tests for runtime configuration updates."""

    def test_update_fields(self, registry: ProviderRegistry):
        updated = registry.update("alpha", priority=0, cost_per_token=0.00001)
        assert updated.priority == 0
        assert registry.get("alpha").cost_per_token == 0.00001

    def test_id_change_rejected(self, registry: ProviderRegistry):
        with pytest.raises(ValueError, match="id cannot be changed"):
            registry.update("alpha", id="omega")

    def test_unknown_field_rejected(self, registry: ProviderRegistry):
        with pytest.raises(ValueError, match="Unknown provider fields"):
            registry.update("alpha", colour="blue")

    def test_invalid_value_rejected(self, registry: ProviderRegistry):
        with pytest.raises(ValueError):
            registry.update("alpha", max_requests_per_minute=-1)
        assert registry.get("alpha").max_requests_per_minute == 100

    def test_unknown_provider(self, registry: ProviderRegistry):
        with pytest.raises(KeyError):
            registry.update("nobody", priority=1)


class TestPerformanceUpdates:
    """Tests for performance feedback."""

    def test_record_success_blends(self, registry: ProviderRegistry):
        registry.record_success("alpha", latency_ms=3000, confidence=0.9)
        perf = registry.performance("alpha")
        assert perf is not None
        assert perf.avg_latency_ms == pytest.approx(2000)
        assert perf.avg_confidence == pytest.approx(0.8)
        assert perf.success_rate == pytest.approx(0.98 * 0.9 + 0.1)
        assert perf.error_rate == pytest.approx(0.02 * 0.9)
        assert perf.total_predictions == 1
        assert perf.correct_predictions == 1
        assert perf.accuracy == 1.0
        assert perf.last_updated is not None

    def test_record_failure_blends(self, registry: ProviderRegistry):
        registry.record_failure("alpha")
        perf = registry.performance("alpha")
        assert perf is not None
        assert perf.success_rate == pytest.approx(0.98 * 0.9)
        assert perf.error_rate == pytest.approx(0.02 * 0.9 + 0.1)
        assert perf.total_predictions == 0

    def test_first_success_without_history(self, clock: ManualClock):
        registry = ProviderRegistry(
            [make_provider("fresh", initial_performance=None)],
            CircuitBreaker(clock=clock),
            RateLimiter(clock=clock),
        )
        registry.record_success("fresh", latency_ms=500, confidence=0.6)
        perf = registry.performance("fresh")
        assert perf is not None
        assert perf.avg_latency_ms == 500
        assert perf.success_rate == 1.0

    def test_grade_prediction_incorrect(self, registry: ProviderRegistry):
        registry.record_success("alpha", latency_ms=1000, confidence=0.7)
        registry.record_success("alpha", latency_ms=1000, confidence=0.7)
        registry.grade_prediction("alpha", correct=False)
        perf = registry.performance("alpha")
        assert perf is not None
        assert perf.correct_predictions == 1
        assert perf.accuracy == pytest.approx(0.5)

    def test_grade_without_predictions_is_ignored(self, registry: ProviderRegistry):
        registry.grade_prediction("alpha", correct=False)
        perf = registry.performance("alpha")
        assert perf is not None
        assert perf.accuracy == 0.7

    def test_reset_performance_restores_seed(self, registry: ProviderRegistry):
        registry.record_failure("alpha")
        registry.reset_performance("alpha")
        perf = registry.performance("alpha")
        assert perf is not None
        assert perf.error_rate == 0.02

    def test_performance_returns_copy(self, registry: ProviderRegistry):
        perf = registry.performance("alpha")
        assert perf is not None
        perf.accuracy = 0.0
        assert registry.performance("alpha").accuracy == 0.7
