"""Multi-provider consensus.

Fans one request out to the top-ranked eligible providers concurrently and
reduces whatever comes back into a single verdict. A failing branch never
cancels its siblings: results are joined with
``asyncio.gather(..., return_exceptions=True)`` and the call only fails
when no branch succeeded.
"""

from __future__ import annotations

import asyncio
from collections import Counter

from augur.core.config import ProviderConfig
from augur.core.constants import (
    CONFIDENCE_VARIANCE_THRESHOLD,
    CONFLICT_HIGH_CONFIDENCE_VARIANCE,
    CONFLICT_LOW_CONSENSUS,
    CONSENSUS_FAN_OUT,
    LOW_CONSENSUS_THRESHOLD,
)
from augur.core.errors import AllProvidersFailedError, RateLimitedError
from augur.core.logging import get_logger
from augur.core.models import AdviceResult, ConsensusResult, DecisionRecord, MarketContext
from augur.engine.executor import QueryExecutor
from augur.engine.parser import extract_label, format_advice
from augur.engine.rate_limiter import RateLimiter
from augur.engine.scorer import ProviderScorer

_logger = get_logger("consensus")


def majority_label(labels: list[str]) -> tuple[str, int]:
    """Most frequent label and its count; ties go to the first encountered."""
    counts = Counter(labels)
    best = labels[0]
    for label in labels:
        if counts[label] > counts[best]:
            best = label
    return best, counts[best]


def reduce_results(results: list[AdviceResult], errors: list[str] | None = None) -> ConsensusResult:
    """Reduce one or more advice results into a consensus verdict.

    Raises:
        ValueError: If results is empty.
    """
    if not results:
        raise ValueError("Cannot build a consensus from zero results")
    errors = list(errors or [])

    if len(results) == 1:
        only = results[0]
        return ConsensusResult(
            primary_advice=only.advice,
            confidence=only.confidence,
            agreement=1.0,
            providers=[only.provider_id],
            reasoning=[only.reasoning],
            conflict_flags=[],
            errors=errors,
        )

    labels = [extract_label(result.advice) for result in results]
    label, count = majority_label(labels)
    agreement = count / len(results)

    confidences = [result.confidence for result in results]
    mean_confidence = sum(confidences) / len(confidences)

    flags: list[str] = []
    if agreement < LOW_CONSENSUS_THRESHOLD:
        flags.append(CONFLICT_LOW_CONSENSUS)
    if max(confidences) - min(confidences) > CONFIDENCE_VARIANCE_THRESHOLD:
        flags.append(CONFLICT_HIGH_CONFIDENCE_VARIANCE)

    return ConsensusResult(
        primary_advice=format_advice(
            label, f"Consensus recommendation from {len(results)} models"
        ),
        confidence=mean_confidence * agreement,
        agreement=agreement,
        providers=[result.provider_id for result in results],
        reasoning=[result.reasoning for result in results],
        conflict_flags=flags,
        errors=errors,
    )


class ConsensusAggregator:
    """Queries the top-ranked providers concurrently and reconciles their advice."""

    def __init__(
        self,
        scorer: ProviderScorer,
        executor: QueryExecutor,
        rate_limiter: RateLimiter,
        fan_out: int = CONSENSUS_FAN_OUT,
    ) -> None:
        self._scorer = scorer
        self._executor = executor
        self._rate_limiter = rate_limiter
        self._fan_out = fan_out

    async def _query_branch(
        self,
        provider: ProviderConfig,
        record: DecisionRecord,
        context: MarketContext | None,
    ) -> AdviceResult:
        if not self._rate_limiter.try_acquire(provider):
            raise RateLimitedError(
                f"Local request budget exhausted for {provider.id}", provider.id
            )
        return await self._executor.query(provider, record, context)

    async def get_consensus(
        self,
        record: DecisionRecord,
        context: MarketContext | None = None,
    ) -> ConsensusResult:
        """Consensus across the top eligible providers.

        Raises:
            AllProvidersFailedError: No provider was eligible or every branch failed.
        """
        selected = [provider for provider, _ in self._scorer.rank(record, context)][: self._fan_out]
        if not selected:
            raise AllProvidersFailedError("No eligible providers for consensus")

        _logger.info(
            "consensus_started",
            providers=[provider.id for provider in selected],
        )
        outcomes = await asyncio.gather(
            *(self._query_branch(provider, record, context) for provider in selected),
            return_exceptions=True,
        )

        results: list[AdviceResult] = []
        errors: list[str] = []
        for provider, outcome in zip(selected, outcomes, strict=True):
            if isinstance(outcome, AdviceResult):
                results.append(outcome)
            elif isinstance(outcome, Exception):
                errors.append(f"{provider.id}: {outcome}")
            else:
                # CancelledError and other BaseExceptions are not branch failures
                raise outcome

        if not results:
            _logger.error("consensus_failed", errors=errors)
            raise AllProvidersFailedError("All consensus providers failed", errors)

        consensus = reduce_results(results, errors)
        _logger.info(
            "consensus_completed",
            responses=len(results),
            failures=len(errors),
            agreement=round(consensus.agreement, 3),
            conflict_flags=consensus.conflict_flags,
        )
        return consensus
