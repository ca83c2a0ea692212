"""Provider configuration models.

Defines the static configuration of an advice provider: model, sampling
settings, priority, cost and per-minute request budget, plus transport
settings used only by the completion client.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class PerformanceSeed(BaseModel):
    """Initial performance statistics for a provider with no live history.

    Example YAML:
        initial_performance:
          accuracy: 0.78
          avg_latency_ms: 2200
          error_rate: 0.015
          avg_confidence: 0.72
          success_rate: 0.985
    """

    model_config = ConfigDict(extra="forbid")

    accuracy: float = Field(default=0.0, ge=0, le=1)
    avg_latency_ms: float = Field(default=0.0, ge=0)
    error_rate: float = Field(default=0.0, ge=0, le=1)
    avg_confidence: float = Field(default=0.0, ge=0, le=1)
    success_rate: float = Field(default=0.0, ge=0, le=1)


class ProviderConfig(BaseModel):
    """Configuration for one advice provider.

    Priority, cost and limits may change at runtime through an explicit
    update; providers are never deleted, only disabled.

    Example YAML:
        providers:
          - id: gpt-4-turbo
            name: GPT-4 Turbo
            family: openai
            model: gpt-4-turbo-preview
            temperature: 0.3
            max_tokens: 1000
            priority: 1
            cost_per_token: 0.00003
            max_requests_per_minute: 500
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    id: str = Field(min_length=1, description="Unique provider identifier")
    name: str = Field(default="", description="Display name")
    family: Literal["openai", "anthropic"] = Field(
        default="openai",
        description="Provider family, selects the completion client",
    )
    model: str = Field(min_length=1, description="Underlying model name")
    temperature: float = Field(default=0.3, ge=0, le=2, description="Base sampling temperature")
    max_tokens: int = Field(default=1000, ge=1, description="Maximum output tokens")
    enabled: bool = True
    priority: int = Field(default=100, description="Lower is preferred on ties")
    cost_per_token: float = Field(default=0.0, ge=0, description="Monetary cost per token")
    max_requests_per_minute: int = Field(default=60, ge=0)

    # Transport settings (not used for orchestration decisions)
    base_url: str | None = Field(
        default=None,
        description="API base URL; defaults to the family's public endpoint",
    )
    api_key_env: str | None = Field(
        default=None,
        description="Environment variable holding the API key",
    )

    initial_performance: PerformanceSeed | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.id


def default_providers() -> list[ProviderConfig]:
    """Built-in provider set used when no configuration file is given."""
    return [
        ProviderConfig(
            id="gpt-4-turbo",
            name="GPT-4 Turbo",
            model="gpt-4-turbo-preview",
            temperature=0.3,
            max_tokens=1000,
            priority=1,
            cost_per_token=0.00003,
            max_requests_per_minute=500,
            initial_performance=PerformanceSeed(
                accuracy=0.78,
                avg_latency_ms=2200,
                error_rate=0.015,
                avg_confidence=0.72,
                success_rate=0.985,
            ),
        ),
        ProviderConfig(
            id="gpt-4",
            name="GPT-4",
            model="gpt-4",
            temperature=0.3,
            max_tokens=1000,
            priority=2,
            cost_per_token=0.00006,
            max_requests_per_minute=200,
            initial_performance=PerformanceSeed(
                accuracy=0.75,
                avg_latency_ms=3500,
                error_rate=0.02,
                avg_confidence=0.70,
                success_rate=0.98,
            ),
        ),
        ProviderConfig(
            id="gpt-3.5-turbo",
            name="GPT-3.5 Turbo",
            model="gpt-3.5-turbo",
            temperature=0.4,
            max_tokens=800,
            priority=3,
            cost_per_token=0.000002,
            max_requests_per_minute=3500,
            initial_performance=PerformanceSeed(
                accuracy=0.65,
                avg_latency_ms=800,
                error_rate=0.03,
                avg_confidence=0.62,
                success_rate=0.97,
            ),
        ),
    ]
