"""Domain models for advice requests and results.

DecisionRecord and MarketContext are external inputs, validated with
pydantic and frozen for the lifetime of a request. Results and provider
statistics are plain dataclasses owned by the engine.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from augur.core.constants import HIGH_STAKES_TIME_BUCKET, HIGH_VOLATILITY_THRESHOLD, TOP_TIERS


class DecisionRecord(BaseModel):
    """The subject of an advice request (a "pick").

    Immutable; used only to build prompts and cache fingerprints.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, description="Record identifier")
    subject: str | None = Field(default=None, description="Player or team the record is about")
    category: str = Field(min_length=1, description="Market type, e.g. 'points'")
    line: float
    odds: float
    tier: str | None = Field(default=None, description="Quality tier, S/A being the top two")
    edge_score: float | None = None
    tags: tuple[str, ...] = ()
    against_the_crowd: bool = Field(
        default=False,
        description="Sharp money is moving against this record",
    )

    @property
    def is_top_tier(self) -> bool:
        return self.tier in TOP_TIERS

    def fingerprint(self) -> str:
        """Stable cache key built from the record's identifying fields.

        Context is ephemeral and deliberately excluded.
        """
        return f"{self.id}|{self.category}|{self.line!r}|{self.odds!r}"


class MarketContext(BaseModel):
    """Ambient market conditions for a request. Passed through unchanged."""

    model_config = ConfigDict(frozen=True)

    regime: Literal["bull", "bear", "sideways"] = "sideways"
    volatility: float = 0.0
    sentiment: float = 0.0
    time_bucket: str = "pre-game"
    day_of_week: str = ""
    pressure: float = 0.0
    line_movement: float = 0.0

    @property
    def is_volatile(self) -> bool:
        return self.volatility > HIGH_VOLATILITY_THRESHOLD

    @property
    def is_high_stakes(self) -> bool:
        return self.time_bucket == HIGH_STAKES_TIME_BUCKET


@dataclass
class ProviderPerformance:
    """Live performance statistics for one provider.

    avg_latency_ms is an exponential blend ((old + new) / 2), not a
    window average.
    """

    accuracy: float = 0.0
    avg_latency_ms: float = 0.0
    error_rate: float = 0.0
    total_predictions: int = 0
    correct_predictions: int = 0
    avg_confidence: float = 0.0
    success_rate: float = 0.0
    last_updated: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["last_updated"] = self.last_updated.isoformat() if self.last_updated else None
        return data


@dataclass
class AdviceResult:
    """Structured advice from one provider (or from the fallback rules)."""

    advice: str
    """Recommendation label embedded in text, e.g. "**HOLD** - reasoning"."""

    recommendation: str
    confidence: float
    reasoning: str
    provider_id: str
    temperature: float
    processing_time_ms: float
    fallback_used: bool = False
    consensus_score: float | None = None
    degraded_reason: str | None = None
    """Human-readable note on why a fallback was produced."""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ConsensusResult:
    """Reduction of several providers' advice into one verdict."""

    primary_advice: str
    confidence: float
    agreement: float
    providers: list[str] = field(default_factory=list)
    reasoning: list[str] = field(default_factory=list)
    conflict_flags: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    """Per-branch failures, "provider_id: message"."""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
