"""AdviceEngine: the orchestrator behind every advice request.

One engine instance owns all mutable state (registry, circuit breaker,
rate limiter, cache), so several engines can coexist in one process.

Single-provider path::

    cache hit?  -> return
    retry( select best -> acquire rate budget -> query )
    on failure  -> rule-based fallback with a degraded-mode note
    store in cache -> return

get_advice never lets a provider-side failure escape. Only programming
errors (e.g. passing something that is not a DecisionRecord) raise.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import TracebackType

from augur.core.clock import Clock, SystemClock
from augur.core.config import (
    AugurConfig,
    CacheConfig,
    CircuitBreakerConfig,
    ConsensusConfig,
    ProviderConfig,
    QueryConfig,
    RetryConfig,
)
from augur.core.errors import (
    NoEligibleProviderError,
    ProviderError,
    QuotaExceededError,
    RateLimitedError,
)
from augur.core.logging import RequestContext, get_logger, with_context
from augur.core.models import (
    AdviceResult,
    ConsensusResult,
    DecisionRecord,
    MarketContext,
    ProviderPerformance,
)
from augur.engine.cache import CONSENSUS_KEY_PREFIX, AdviceCache, CacheStats
from augur.engine.circuit_breaker import CircuitBreaker, CircuitState
from augur.engine.consensus import ConsensusAggregator
from augur.engine.executor import QueryExecutor
from augur.engine.fallback import FallbackAdvisor
from augur.engine.rate_limiter import RateLimiter
from augur.engine.registry import ProviderRegistry
from augur.engine.retry import RetryController
from augur.engine.scorer import ProviderScorer
from augur.providers import create_client
from augur.providers.base import CompletionClient, UsageSnapshot

_logger = get_logger("engine")


class AdviceEngine:
    """Selects, queries and reconciles advice providers for decision records."""

    def __init__(
        self,
        providers: Iterable[ProviderConfig],
        clients: Mapping[str, CompletionClient],
        *,
        clock: Clock | None = None,
        circuit_breaker: CircuitBreakerConfig | None = None,
        retry: RetryConfig | None = None,
        cache: CacheConfig | None = None,
        query: QueryConfig | None = None,
        consensus: ConsensusConfig | None = None,
        retry_controller: RetryController | None = None,
    ) -> None:
        clock = clock or SystemClock()
        breaker_config = circuit_breaker or CircuitBreakerConfig()
        cache_config = cache or CacheConfig()
        query_config = query or QueryConfig()
        consensus_config = consensus or ConsensusConfig()
        self._retry_config = retry or RetryConfig()

        self._clients = dict(clients)
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=breaker_config.failure_threshold,
            cooldown_seconds=breaker_config.cooldown_seconds,
            clock=clock,
        )
        self.rate_limiter = RateLimiter(clock=clock)
        self.registry = ProviderRegistry(providers, self.circuit_breaker, self.rate_limiter)
        self.scorer = ProviderScorer(self.registry)
        self.executor = QueryExecutor(
            self.registry,
            self._clients,
            timeout_seconds=query_config.timeout_seconds,
        )
        self.consensus = ConsensusAggregator(
            self.scorer,
            self.executor,
            self.rate_limiter,
            fan_out=consensus_config.fan_out,
        )
        self.cache = AdviceCache(ttl_seconds=cache_config.ttl_seconds, clock=clock)
        self.retry = retry_controller or RetryController()
        self.fallback = FallbackAdvisor()

        missing = [pid for pid in self.registry.ids() if pid not in self._clients]
        if missing:
            _logger.warning("providers_without_client", providers=missing)

    @classmethod
    def from_config(
        cls,
        config: AugurConfig,
        clients: Mapping[str, CompletionClient] | None = None,
        clock: Clock | None = None,
    ) -> AdviceEngine:
        """Build an engine from configuration.

        Providers without an explicit client get one from their family.
        """
        resolved: dict[str, CompletionClient] = dict(clients or {})
        for provider in config.providers:
            if provider.id not in resolved:
                resolved[provider.id] = create_client(provider)
        return cls(
            config.providers,
            resolved,
            clock=clock,
            circuit_breaker=config.circuit_breaker,
            retry=config.retry,
            cache=config.cache,
            query=config.query,
            consensus=config.consensus,
        )

    # ------------------------------------------------------------------
    # Advice
    # ------------------------------------------------------------------

    @staticmethod
    def _check_inputs(record: object, context: object) -> None:
        if not isinstance(record, DecisionRecord):
            raise TypeError(f"record must be a DecisionRecord, got {type(record).__name__}")
        if context is not None and not isinstance(context, MarketContext):
            raise TypeError(f"context must be a MarketContext, got {type(context).__name__}")

    async def get_advice(
        self,
        record: DecisionRecord,
        context: MarketContext | None = None,
    ) -> str:
        """Human-readable advice for a record. Never empty, never raises for provider failure."""
        return format_advice_text(await self.get_advice_result(record, context))

    async def get_advice_result(
        self,
        record: DecisionRecord,
        context: MarketContext | None = None,
    ) -> AdviceResult:
        """Structured advice from the best provider, or the rule-based fallback."""
        self._check_inputs(record, context)
        fingerprint = record.fingerprint()

        with with_context(RequestContext(record_id=record.id)):
            cached = self.cache.get(fingerprint)
            if isinstance(cached, AdviceResult):
                _logger.debug("cache_hit", provider=cached.provider_id)
                return cached

            last_provider: list[str] = []

            async def attempt() -> AdviceResult:
                provider = self.scorer.select_best(record, context)
                if provider is None:
                    reason = self._ineligibility_reason()
                    raise NoEligibleProviderError(
                        f"No eligible provider ({reason})", reason=reason
                    )
                last_provider.append(provider.id)
                if not self.rate_limiter.try_acquire(provider):
                    raise RateLimitedError(
                        f"Local request budget exhausted for {provider.id}", provider.id
                    )
                return await self.executor.query(provider, record, context)

            try:
                result = await self.retry.run(
                    attempt,
                    max_attempts=self._retry_config.max_attempts,
                    base_delay_ms=self._retry_config.base_delay_ms,
                )
            except Exception as e:
                # Any failure on the provider path degrades to fallback advice
                provider_id = last_provider[-1] if last_provider else None
                degraded_reason = self._degraded_reason(e, provider_id)
                _logger.warning(
                    "advice_degraded",
                    error_type=type(e).__name__,
                    reason=degraded_reason,
                )
                result = self.fallback.advise(record, degraded_reason=degraded_reason)

            self.cache.put(fingerprint, result)
            return result

    async def get_consensus_advice(
        self,
        record: DecisionRecord,
        context: MarketContext | None = None,
    ) -> ConsensusResult:
        """Consensus across the top-ranked providers.

        Raises:
            AllProvidersFailedError: No provider returned a result.
        """
        self._check_inputs(record, context)
        key = CONSENSUS_KEY_PREFIX + record.fingerprint()

        with with_context(RequestContext(record_id=record.id, mode="consensus")):
            cached = self.cache.get(key)
            if isinstance(cached, ConsensusResult):
                return cached
            result = await self.consensus.get_consensus(record, context)
            self.cache.put(key, result)
            return result

    # ------------------------------------------------------------------
    # Degraded-mode explanations
    # ------------------------------------------------------------------

    def _ineligibility_reason(self) -> str:
        enabled = [p for p in self.registry.all() if p.enabled]
        if not enabled:
            return "no_providers_enabled"
        if all(self.circuit_breaker.state(p.id) is CircuitState.OPEN for p in enabled):
            return "circuit_open"
        if all(not self.rate_limiter.has_capacity(p) for p in enabled):
            return "rate_limited"
        return "no_eligible_provider"

    def _usage_note(self, provider_id: str | None) -> str:
        if provider_id is None:
            return ""
        client = self._clients.get(provider_id)
        if client is None:
            return ""
        return f" (usage: {client.usage().describe()})"

    def _degraded_reason(self, error: Exception, provider_id: str | None) -> str:
        if isinstance(error, NoEligibleProviderError):
            return {
                "no_providers_enabled": "No advice providers are enabled",
                "circuit_open": "All providers are paused after repeated failures (circuit open)",
                "rate_limited": "All providers have used their request budget for this minute",
            }.get(error.reason, "No advice provider is currently available")
        if isinstance(error, ProviderError) and error.provider_id:
            provider_id = error.provider_id
        if isinstance(error, QuotaExceededError):
            return f"Provider {provider_id} quota exceeded{self._usage_note(provider_id)}"
        if isinstance(error, RateLimitedError):
            return f"Provider {provider_id} rate limited{self._usage_note(provider_id)}"
        return f"Provider {provider_id} failed: {error}"

    # ------------------------------------------------------------------
    # Administration and observability
    # ------------------------------------------------------------------

    def get_available_providers(self) -> list[str]:
        return [provider.id for provider in self.registry.list_eligible()]

    def get_provider_performance(self) -> dict[str, ProviderPerformance]:
        return self.registry.performance_snapshot()

    def get_cache_stats(self) -> CacheStats:
        return self.cache.stats()

    def get_circuit_states(self) -> dict[str, dict[str, object]]:
        return self.circuit_breaker.snapshot()

    def get_provider_usage(self) -> dict[str, UsageSnapshot]:
        return {pid: client.usage() for pid, client in self._clients.items()}

    def reset_circuit(self, provider_id: str) -> None:
        self.circuit_breaker.reset(provider_id)

    def update_provider_config(self, provider_id: str, **updates: object) -> ProviderConfig:
        return self.registry.update(provider_id, **updates)

    def reset_performance(self, provider_id: str) -> None:
        self.registry.reset_performance(provider_id)

    def grade_prediction(self, provider_id: str, correct: bool) -> None:
        self.registry.grade_prediction(provider_id, correct)

    async def close(self) -> None:
        for client in self._clients.values():
            await client.close()

    async def __aenter__(self) -> AdviceEngine:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()


def format_advice_text(result: AdviceResult) -> str:
    """Render an AdviceResult as a single human-readable line."""
    text = f"{result.advice} (confidence {result.confidence:.0%}, via {result.provider_id})"
    if result.degraded_reason:
        text += f" [degraded: {result.degraded_reason}]"
    return text
