"""Shared test helpers for Augur tests."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from augur.core.config import PerformanceSeed, ProviderConfig
from augur.core.models import DecisionRecord
from augur.providers.base import CompletionClient


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self._now = start

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += seconds

    def set(self, value: float) -> None:
        self._now = value


class FakeClient(CompletionClient):
    """Completion client returning scripted outcomes in order.

    Each outcome is a response string or an exception instance to raise.
    The last outcome repeats once the script runs out.
    """

    def __init__(self, outcomes: Iterable[str | BaseException] = ()) -> None:
        super().__init__()
        self._outcomes = list(outcomes) or [advice_text()]
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    @property
    def name(self) -> str:
        return "fake"

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        model: str,
        temperature: float,
        max_tokens: int,
        timeout_seconds: float,
    ) -> str:
        self.calls.append({
            "system_prompt": system_prompt,
            "user_prompt": user_prompt,
            "model": model,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "timeout_seconds": timeout_seconds,
        })
        self._usage.requests_made += 1
        index = min(len(self.calls) - 1, len(self._outcomes) - 1)
        outcome = self._outcomes[index]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def close(self) -> None:
        self.closed = True


def advice_text(
    recommendation: str = "HOLD",
    confidence: int = 80,
    reasoning: str = "Line value looks fair given recent form.",
) -> str:
    """A well-formed provider response."""
    return (
        f"**RECOMMENDATION**: {recommendation}\n"
        f"**CONFIDENCE**: {confidence}\n"
        f"**REASONING**: {reasoning}\n"
        "**RISK FACTORS**: Injury news.\n"
        "**ACTION**: Keep the position."
    )


def make_provider(provider_id: str = "alpha", **overrides: Any) -> ProviderConfig:
    """ProviderConfig with seeded performance unless overridden."""
    values: dict[str, Any] = {
        "id": provider_id,
        "model": f"{provider_id}-model",
        "priority": 1,
        "max_requests_per_minute": 100,
        "initial_performance": PerformanceSeed(
            accuracy=0.7,
            avg_latency_ms=1000,
            error_rate=0.02,
            avg_confidence=0.7,
            success_rate=0.98,
        ),
    }
    values.update(overrides)
    return ProviderConfig(**values)


def make_record(**overrides: Any) -> DecisionRecord:
    values: dict[str, Any] = {
        "id": "pick-1",
        "subject": "Jalen Brunson",
        "category": "points",
        "line": 27.5,
        "odds": -110,
        "tier": "B",
        "edge_score": 15.0,
        "tags": ("home",),
    }
    values.update(overrides)
    return DecisionRecord(**values)
