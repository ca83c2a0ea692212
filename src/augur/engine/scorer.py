"""Weighted multi-factor ranking of eligible providers.

    score = 0.40 * accuracy
          + 0.20 * latency_score          (1 - min(1, latency / 5000ms))
          + 0.20 * (1 - error_rate)
          + 0.10 * success_rate
          + 0.10 * cost_score             (1 - min(1, cost / 0.0001))

with bonuses of 0.10 * accuracy in volatile markets, 0.10 * latency_score
in the high-stakes time bucket and 0.15 * accuracy for top-tier records.
A provider without performance history scores 0.0.
"""

from __future__ import annotations

from augur.core.config import ProviderConfig
from augur.core.constants import (
    COST_REFERENCE_PER_TOKEN,
    LATENCY_REFERENCE_MS,
    SCORE_BONUS_HIGH_STAKES_LATENCY,
    SCORE_BONUS_TOP_TIER_ACCURACY,
    SCORE_BONUS_VOLATILE_ACCURACY,
    SCORE_WEIGHT_ACCURACY,
    SCORE_WEIGHT_COST,
    SCORE_WEIGHT_ERROR_RATE,
    SCORE_WEIGHT_LATENCY,
    SCORE_WEIGHT_SUCCESS_RATE,
)
from augur.core.models import DecisionRecord, MarketContext, ProviderPerformance
from augur.engine.registry import ProviderRegistry


def latency_score(avg_latency_ms: float) -> float:
    return 1.0 - min(1.0, avg_latency_ms / LATENCY_REFERENCE_MS)


def cost_score(cost_per_token: float) -> float:
    return 1.0 - min(1.0, cost_per_token / COST_REFERENCE_PER_TOKEN)


def compute_score(
    config: ProviderConfig,
    performance: ProviderPerformance | None,
    record: DecisionRecord | None = None,
    context: MarketContext | None = None,
) -> float:
    """Score one provider for a request. Pure function."""
    if performance is None:
        return 0.0

    latency = latency_score(performance.avg_latency_ms)
    score = (
        SCORE_WEIGHT_ACCURACY * performance.accuracy
        + SCORE_WEIGHT_LATENCY * latency
        + SCORE_WEIGHT_ERROR_RATE * (1.0 - performance.error_rate)
        + SCORE_WEIGHT_SUCCESS_RATE * performance.success_rate
        + SCORE_WEIGHT_COST * cost_score(config.cost_per_token)
    )

    if context is not None:
        if context.is_volatile:
            score += SCORE_BONUS_VOLATILE_ACCURACY * performance.accuracy
        if context.is_high_stakes:
            score += SCORE_BONUS_HIGH_STAKES_LATENCY * latency
    if record is not None and record.is_top_tier:
        score += SCORE_BONUS_TOP_TIER_ACCURACY * performance.accuracy

    return score


class ProviderScorer:
    """Ranks the registry's eligible providers for a given request."""

    def __init__(self, registry: ProviderRegistry) -> None:
        self._registry = registry

    def score(
        self,
        provider: ProviderConfig,
        record: DecisionRecord | None = None,
        context: MarketContext | None = None,
    ) -> float:
        return compute_score(provider, self._registry.performance(provider.id), record, context)

    def rank(
        self,
        record: DecisionRecord | None = None,
        context: MarketContext | None = None,
    ) -> list[tuple[ProviderConfig, float]]:
        """Eligible providers ordered best first.

        Ties go to the lower priority value, then to registration order.
        """
        scored = [
            (provider, self.score(provider, record, context))
            for provider in self._registry.list_eligible()
        ]
        scored.sort(
            key=lambda item: (
                -item[1],
                item[0].priority,
                self._registry.registration_order(item[0].id),
            )
        )
        return scored

    def select_best(
        self,
        record: DecisionRecord | None = None,
        context: MarketContext | None = None,
    ) -> ProviderConfig | None:
        ranked = self.rank(record, context)
        return ranked[0][0] if ranked else None
