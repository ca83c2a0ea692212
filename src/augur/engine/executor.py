"""Single-provider query execution.

QueryExecutor issues one completion call to one provider and turns the raw
text into an AdviceResult. It is the only place that reports call outcomes
back to the circuit breaker and the registry's performance statistics, and
it always does so before an error propagates.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Mapping

from augur.core.config import ProviderConfig
from augur.core.constants import (
    QUERY_TIMEOUT_SECONDS,
    TEMPERATURE_HIGH_STAKES_FACTOR,
    TEMPERATURE_MAX,
    TEMPERATURE_MIN,
    TEMPERATURE_TOP_TIER_FACTOR,
    TEMPERATURE_VOLATILE_FACTOR,
)
from augur.core.errors import ProviderError, ProviderTimeoutError, provider_error_from_message
from augur.core.logging import get_logger
from augur.core.models import AdviceResult, DecisionRecord, MarketContext
from augur.engine.parser import parse_response
from augur.engine.prompts import PromptBuilder
from augur.engine.registry import ProviderRegistry
from augur.providers.base import CompletionClient

_logger = get_logger("executor")


def adjust_temperature(
    base_temperature: float,
    record: DecisionRecord,
    context: MarketContext | None = None,
) -> float:
    """Effective sampling temperature, more conservative for weightier requests."""
    temperature = base_temperature
    if record.is_top_tier:
        temperature *= TEMPERATURE_TOP_TIER_FACTOR
    if context is not None:
        if context.is_volatile:
            temperature *= TEMPERATURE_VOLATILE_FACTOR
        if context.is_high_stakes:
            temperature *= TEMPERATURE_HIGH_STAKES_FACTOR
    return max(TEMPERATURE_MIN, min(TEMPERATURE_MAX, temperature))


class QueryExecutor:
    """Runs one advice query against one provider."""

    def __init__(
        self,
        registry: ProviderRegistry,
        clients: Mapping[str, CompletionClient],
        prompt_builder: PromptBuilder | None = None,
        timeout_seconds: float = QUERY_TIMEOUT_SECONDS,
    ) -> None:
        self._registry = registry
        self._clients = clients
        self._prompts = prompt_builder or PromptBuilder()
        self._timeout_seconds = timeout_seconds

    def client_for(self, provider_id: str) -> CompletionClient | None:
        return self._clients.get(provider_id)

    async def query(
        self,
        provider: ProviderConfig,
        record: DecisionRecord,
        context: MarketContext | None = None,
    ) -> AdviceResult:
        """Query a provider and parse its answer.

        Raises:
            ProviderError: Transport or provider failure, including timeouts
                (ProviderTimeoutError) and quota or rate-limit exhaustion.
        """
        temperature = adjust_temperature(provider.temperature, record, context)
        user_prompt = self._prompts.build_user_prompt(record, context)

        _logger.debug(
            "query_started",
            provider=provider.id,
            model=provider.model,
            temperature=round(temperature, 3),
            max_tokens=provider.max_tokens,
        )
        started = time.perf_counter()
        try:
            client = self._clients.get(provider.id)
            if client is None:
                raise ProviderError(f"No completion client for provider {provider.id}", provider.id)
            text = await asyncio.wait_for(
                client.complete(
                    self._prompts.system_prompt,
                    user_prompt,
                    model=provider.model,
                    temperature=temperature,
                    max_tokens=provider.max_tokens,
                    timeout_seconds=self._timeout_seconds,
                ),
                timeout=self._timeout_seconds,
            )
        except Exception as e:
            error = self._as_provider_error(e, provider.id)
            self._registry.circuit_breaker.record_failure(provider.id)
            self._registry.record_failure(provider.id)
            _logger.warning(
                "query_failed",
                provider=provider.id,
                error_type=type(error).__name__,
                error=str(error),
            )
            if error is e:
                raise
            raise error from e

        elapsed_ms = (time.perf_counter() - started) * 1000
        parsed = parse_response(text)

        self._registry.circuit_breaker.record_success(provider.id)
        self._registry.record_success(provider.id, elapsed_ms, parsed.confidence)

        _logger.info(
            "query_completed",
            provider=provider.id,
            recommendation=parsed.recommendation,
            confidence=parsed.confidence,
            duration_ms=round(elapsed_ms, 1),
        )
        return AdviceResult(
            advice=parsed.advice,
            recommendation=parsed.recommendation,
            confidence=parsed.confidence,
            reasoning=parsed.reasoning,
            provider_id=provider.id,
            temperature=temperature,
            processing_time_ms=elapsed_ms,
        )

    def _as_provider_error(self, error: Exception, provider_id: str) -> ProviderError:
        if isinstance(error, ProviderError):
            if error.provider_id is None:
                error.provider_id = provider_id
            return error
        if isinstance(error, TimeoutError):
            return ProviderTimeoutError(
                f"Provider {provider_id} timed out after {self._timeout_seconds}s",
                provider_id,
            )
        return provider_error_from_message(f"{type(error).__name__}: {error}", provider_id)
