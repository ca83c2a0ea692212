"""Tests for augur.engine.fallback module."""

import pytest

from augur.engine.fallback import FallbackAdvisor
from tests.helpers import make_record


@pytest.fixture
def advisor() -> FallbackAdvisor:
    return FallbackAdvisor()


class TestFallbackAdvisor:
    """Rule order and result shape."""

    @pytest.mark.parametrize("tier", ["S", "B", None])
    @pytest.mark.parametrize("edge_score", [2.0, 50.0, None])
    def test_against_the_crowd_always_fades(self, advisor, tier, edge_score):
        result = advisor.advise(
            make_record(against_the_crowd=True, tier=tier, edge_score=edge_score)
        )
        assert result.recommendation == "FADE"
        assert result.confidence == 0.6
        assert result.advice.startswith("**FADE** - ")

    def test_top_tier_holds(self, advisor):
        result = advisor.advise(make_record(tier="A", edge_score=1.0))
        assert (result.recommendation, result.confidence) == ("HOLD", 0.5)

    def test_low_edge_hedges(self, advisor):
        result = advisor.advise(make_record(tier="C", edge_score=9.9))
        assert (result.recommendation, result.confidence) == ("HEDGE", 0.4)

    def test_edge_at_threshold_is_default(self, advisor):
        result = advisor.advise(make_record(tier="C", edge_score=10.0))
        assert (result.recommendation, result.confidence) == ("HOLD", 0.3)

    def test_missing_edge_is_default(self, advisor):
        result = advisor.advise(make_record(tier=None, edge_score=None))
        assert (result.recommendation, result.confidence) == ("HOLD", 0.3)

    def test_result_is_marked_fallback(self, advisor):
        result = advisor.advise(make_record(), degraded_reason="All providers down")
        assert result.fallback_used is True
        assert result.provider_id == "fallback-rules"
        assert result.temperature == 0.0
        assert result.processing_time_ms == 0.0
        assert result.degraded_reason == "All providers down"
        assert result.reasoning
