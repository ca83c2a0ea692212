"""End-to-end tests for augur.engine.engine.AdviceEngine."""

import textwrap
from unittest.mock import AsyncMock, patch

import pytest

from augur.core.config import AugurConfig, RetryConfig
from augur.core.errors import AllProvidersFailedError, ProviderError, QuotaExceededError
from augur.core.models import MarketContext
from augur.engine import AdviceEngine
from augur.providers import AnthropicClient, OpenAICompatibleClient
from tests.helpers import FakeClient, ManualClock, advice_text, make_provider, make_record


class TestGetAdvice:
    """Single-provider advice path."""

    @pytest.mark.asyncio
    async def test_returns_provider_advice(self, make_engine, record):
        engine = make_engine()
        result = await engine.get_advice_result(record)

        assert result.provider_id == "alpha"
        assert result.recommendation == "HOLD"
        assert result.fallback_used is False

    @pytest.mark.asyncio
    async def test_advice_string(self, make_engine, record):
        engine = make_engine(
            clients={"alpha": FakeClient([advice_text("FADE", 70, "Line moved.")])}
        )
        text = await engine.get_advice(record)
        assert text == "**FADE** - Line moved. (confidence 70%, via alpha)"

    @pytest.mark.asyncio
    async def test_all_providers_disabled_falls_back(self, make_engine, record):
        """No exception and a fallback-marked result when nothing is enabled."""
        engine = make_engine(providers=[make_provider("alpha", enabled=False)])

        result = await engine.get_advice_result(record)
        assert result.fallback_used is True
        assert result.provider_id == "fallback-rules"
        assert result.degraded_reason == "No advice providers are enabled"

        text = await engine.get_advice(record)
        assert text
        assert "degraded" in text

    @pytest.mark.asyncio
    async def test_cache_hit_skips_providers(self, make_engine, record):
        client = FakeClient()
        engine = make_engine(clients={"alpha": client})

        first = await engine.get_advice_result(record)
        second = await engine.get_advice_result(record)

        assert second == first
        assert second is not first
        assert len(client.calls) == 1
        stats = engine.get_cache_stats()
        assert (stats.hits, stats.misses, stats.size) == (1, 1, 1)

    @pytest.mark.asyncio
    async def test_cache_expires(self, make_engine, record, clock: ManualClock):
        client = FakeClient()
        engine = make_engine(clients={"alpha": client})
        await engine.get_advice_result(record)
        clock.advance(301)
        await engine.get_advice_result(record)
        assert len(client.calls) == 2

    @pytest.mark.asyncio
    async def test_context_does_not_change_cache_key(self, make_engine, record):
        client = FakeClient()
        engine = make_engine(clients={"alpha": client})
        await engine.get_advice_result(record, MarketContext(volatility=0.1))
        await engine.get_advice_result(record, MarketContext(volatility=0.9))
        assert len(client.calls) == 1

    @pytest.mark.asyncio
    async def test_transient_error_retried(self, make_engine, record, sleeps):
        client = FakeClient([ProviderError("connection reset"), advice_text("HEDGE", 50)])
        engine = make_engine(clients={"alpha": client})

        result = await engine.get_advice_result(record)

        assert result.recommendation == "HEDGE"
        assert len(client.calls) == 2
        assert len(sleeps) == 1

    @pytest.mark.asyncio
    async def test_retry_moves_to_next_provider_once_circuit_opens(
        self, make_engine, record
    ):
        failing = FakeClient([ProviderError("boom")])
        healthy = FakeClient([advice_text("FADE", 65)])
        engine = make_engine(
            providers=[make_provider("alpha", priority=1), make_provider("beta", priority=2)],
            clients={"alpha": failing, "beta": healthy},
            retry=RetryConfig(max_attempts=3),
        )
        for _ in range(4):
            engine.circuit_breaker.record_failure("alpha")

        result = await engine.get_advice_result(record)

        assert result.provider_id == "beta"
        assert len(failing.calls) == 1

    @pytest.mark.asyncio
    async def test_exhausted_retries_fall_back(self, make_engine, sleeps):
        client = FakeClient([ProviderError("upstream 502")])
        engine = make_engine(clients={"alpha": client})

        result = await engine.get_advice_result(make_record(against_the_crowd=True))

        assert result.fallback_used is True
        assert result.recommendation == "FADE"
        assert result.degraded_reason == "Provider alpha failed: upstream 502"
        assert len(client.calls) == 3
        assert len(sleeps) == 2

    @pytest.mark.asyncio
    async def test_quota_error_not_retried_and_explained(self, make_engine, record, sleeps):
        client = FakeClient([QuotaExceededError("insufficient_quota")])
        engine = make_engine(clients={"alpha": client})

        result = await engine.get_advice_result(record)

        assert result.fallback_used is True
        assert len(client.calls) == 1
        assert sleeps == []
        assert result.degraded_reason.startswith("Provider alpha quota exceeded")
        assert "1 requests" in result.degraded_reason

    @pytest.mark.asyncio
    async def test_open_circuit_explained(self, make_engine, record):
        engine = make_engine()
        for _ in range(5):
            engine.circuit_breaker.record_failure("alpha")

        result = await engine.get_advice_result(record)

        assert result.fallback_used is True
        assert "circuit open" in result.degraded_reason

    @pytest.mark.asyncio
    async def test_rate_budget_exhausted_explained(self, make_engine, record):
        engine = make_engine(providers=[make_provider("alpha", max_requests_per_minute=0)])
        result = await engine.get_advice_result(record)
        assert result.fallback_used is True
        assert "request budget" in result.degraded_reason

    @pytest.mark.asyncio
    async def test_oversized_confidence_served(self, make_engine, record):
        text = "**RECOMMENDATION**: FADE\n**CONFIDENCE**: " + "9" * 5000
        engine = make_engine(clients={"alpha": FakeClient([text])})

        result = await engine.get_advice_result(record)

        assert result.fallback_used is False
        assert result.recommendation == "FADE"
        assert result.confidence == 1.0

    @pytest.mark.asyncio
    async def test_unexpected_error_falls_back(self, make_engine, record, sleeps):
        engine = make_engine()
        with patch.object(
            engine.executor, "query", AsyncMock(side_effect=ValueError("bad payload"))
        ):
            text = await engine.get_advice(record)
            result = await engine.get_advice_result(make_record(id="pick-2"))

        assert "degraded" in text
        assert result.fallback_used is True
        assert result.degraded_reason == "Provider alpha failed: bad payload"

    @pytest.mark.asyncio
    async def test_rejects_non_record_input(self, make_engine):
        engine = make_engine()
        with pytest.raises(TypeError, match="DecisionRecord"):
            await engine.get_advice({"id": "pick-1"})
        with pytest.raises(TypeError, match="MarketContext"):
            await engine.get_advice(make_record(), context={"volatility": 1})


class TestGetConsensusAdvice:
    """Consensus path through the engine."""

    @pytest.mark.asyncio
    async def test_consensus_cached_separately(self, make_engine, record):
        clients = {
            "a": FakeClient([advice_text("HOLD", 80)]),
            "b": FakeClient([advice_text("HOLD", 60)]),
            "c": FakeClient([advice_text("FADE", 90)]),
        }
        engine = make_engine(
            providers=[make_provider(pid, priority=i) for i, pid in enumerate(clients)],
            clients=clients,
        )

        consensus = await engine.get_consensus_advice(record)
        again = await engine.get_consensus_advice(record)
        single = await engine.get_advice_result(record)

        assert again == consensus
        assert consensus.agreement == pytest.approx(2 / 3)
        assert single.provider_id in clients
        assert len(clients["a"].calls) + len(clients["b"].calls) + len(clients["c"].calls) == 4

    @pytest.mark.asyncio
    async def test_consensus_raises_when_all_fail(self, make_engine, record):
        engine = make_engine(clients={"alpha": FakeClient([ProviderError("down")])})
        with pytest.raises(AllProvidersFailedError):
            await engine.get_consensus_advice(record)


class TestAdministration:
    """Observability and administrative operations."""

    @pytest.mark.asyncio
    async def test_available_providers_and_reset(self, make_engine):
        engine = make_engine(
            providers=[make_provider("alpha", priority=2), make_provider("beta", priority=1)]
        )
        assert engine.get_available_providers() == ["beta", "alpha"]

        for _ in range(5):
            engine.circuit_breaker.record_failure("beta")
        assert engine.get_available_providers() == ["alpha"]
        assert engine.get_circuit_states()["beta"]["state"] == "open"

        engine.reset_circuit("beta")
        assert engine.get_available_providers() == ["beta", "alpha"]

    @pytest.mark.asyncio
    async def test_update_provider_config(self, make_engine):
        engine = make_engine()
        engine.update_provider_config("alpha", enabled=False)
        assert engine.get_available_providers() == []
        with pytest.raises(ValueError):
            engine.update_provider_config("alpha", id="renamed")

    @pytest.mark.asyncio
    async def test_performance_export_and_grading(self, make_engine, record):
        engine = make_engine()
        await engine.get_advice_result(record)

        perf = engine.get_provider_performance()["alpha"]
        assert perf.total_predictions == 1

        engine.grade_prediction("alpha", correct=False)
        assert engine.get_provider_performance()["alpha"].accuracy == 0.0

        engine.reset_performance("alpha")
        assert engine.get_provider_performance()["alpha"].total_predictions == 0

    @pytest.mark.asyncio
    async def test_provider_usage(self, make_engine, record):
        engine = make_engine()
        await engine.get_advice_result(record)
        assert engine.get_provider_usage()["alpha"].requests_made == 1

    @pytest.mark.asyncio
    async def test_close_closes_clients(self, make_engine):
        client = FakeClient()
        async with make_engine(clients={"alpha": client}):
            pass
        assert client.closed is True

    def test_engines_do_not_share_state(self, make_engine):
        first = make_engine()
        second = make_engine()
        for _ in range(5):
            first.circuit_breaker.record_failure("alpha")
        assert first.get_available_providers() == []
        assert second.get_available_providers() == ["alpha"]


class TestFromConfig:
    def test_builds_clients_per_family(self):
        config = AugurConfig(
            providers=[
                make_provider("gpt", family="openai"),
                make_provider("claude", family="anthropic"),
            ]
        )
        engine = AdviceEngine.from_config(config)
        assert isinstance(engine.executor.client_for("gpt"), OpenAICompatibleClient)
        assert isinstance(engine.executor.client_for("claude"), AnthropicClient)

    def test_explicit_clients_win(self):
        fake = FakeClient()
        engine = AdviceEngine.from_config(
            AugurConfig(providers=[make_provider("gpt")]),
            clients={"gpt": fake},
        )
        assert engine.executor.client_for("gpt") is fake

    def test_settings_applied(self):
        config = AugurConfig.from_yaml_string(
            textwrap.dedent(
            """
            providers:
              - id: gpt
                model: gpt-4
            circuit_breaker:
              failure_threshold: 2
              cooldown_seconds: 10
            cache:
              ttl_seconds: 30
            """
            )
        )
        engine = AdviceEngine.from_config(config, clients={"gpt": FakeClient()})
        assert engine.circuit_breaker.failure_threshold == 2
        assert engine.circuit_breaker.cooldown_seconds == 10
        assert engine.cache.ttl_seconds == 30
