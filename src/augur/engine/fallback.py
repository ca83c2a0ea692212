"""Rule-based advice used when no provider can answer.

Depends on the decision record only. The first matching rule wins:

1. against-the-crowd  -> FADE  0.6
2. top-tier record    -> HOLD  0.5
3. edge score < 10    -> HEDGE 0.4
4. otherwise          -> HOLD  0.3
"""

from __future__ import annotations

from augur.core.constants import FALLBACK_PROVIDER_ID, LOW_EDGE_SCORE_THRESHOLD
from augur.core.models import AdviceResult, DecisionRecord
from augur.engine.parser import format_advice

FALLBACK_REASONING = "Generated using rule-based fallback because no advice provider was available"

_RULE_TEXT = {
    "against_the_crowd": "Sharp money is moving the line against this pick. Consider fading.",
    "top_tier": "High-tier pick with a strong edge score. Watch for the best entry point.",
    "low_edge": "Low edge score means limited value. Consider hedging or sizing down.",
    "default": "Standard pick with a moderate edge. Stick to your bankroll management rules.",
}


class FallbackAdvisor:
    """Deterministic advice from record fields alone."""

    def advise(self, record: DecisionRecord, degraded_reason: str | None = None) -> AdviceResult:
        if record.against_the_crowd:
            recommendation, confidence, rule = "FADE", 0.6, "against_the_crowd"
        elif record.is_top_tier:
            recommendation, confidence, rule = "HOLD", 0.5, "top_tier"
        elif record.edge_score is not None and record.edge_score < LOW_EDGE_SCORE_THRESHOLD:
            recommendation, confidence, rule = "HEDGE", 0.4, "low_edge"
        else:
            recommendation, confidence, rule = "HOLD", 0.3, "default"

        return AdviceResult(
            advice=format_advice(recommendation, _RULE_TEXT[rule]),
            recommendation=recommendation,
            confidence=confidence,
            reasoning=FALLBACK_REASONING,
            provider_id=FALLBACK_PROVIDER_ID,
            temperature=0.0,
            processing_time_ms=0.0,
            fallback_used=True,
            degraded_reason=degraded_reason,
        )
