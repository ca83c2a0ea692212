"""Engine configuration models.

Resilience, caching and consensus settings for the advice engine, plus
logging configuration. Defaults match the engine's fixed constants.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from augur.core.constants import (
    CACHE_TTL_SECONDS,
    CIRCUIT_COOLDOWN_SECONDS,
    CIRCUIT_FAILURE_THRESHOLD,
    CONSENSUS_FAN_OUT,
    QUERY_TIMEOUT_SECONDS,
    RETRY_BASE_DELAY_MS,
    RETRY_MAX_ATTEMPTS,
)


class CircuitBreakerConfig(BaseModel):
    """Per-provider circuit breaker settings.

    There is no half-open state: once cooldown_seconds have elapsed since the
    last failure, the next eligibility check re-admits the provider at full
    traffic.
    """

    failure_threshold: int = Field(
        default=CIRCUIT_FAILURE_THRESHOLD,
        ge=1,
        le=100,
        description="Failures before the circuit opens",
    )
    cooldown_seconds: float = Field(
        default=CIRCUIT_COOLDOWN_SECONDS,
        gt=0,
        le=3600,
        description="Seconds after the last failure before the circuit closes again",
    )


class RetryConfig(BaseModel):
    """Retry settings for the single-provider advice path."""

    max_attempts: int = Field(default=RETRY_MAX_ATTEMPTS, ge=1, le=10)
    base_delay_ms: float = Field(default=RETRY_BASE_DELAY_MS, ge=0)


class CacheConfig(BaseModel):
    """Advice cache settings."""

    ttl_seconds: float = Field(default=CACHE_TTL_SECONDS, gt=0)


class QueryConfig(BaseModel):
    """Completion call settings."""

    timeout_seconds: float = Field(default=QUERY_TIMEOUT_SECONDS, gt=0)


class ConsensusConfig(BaseModel):
    """Multi-provider consensus settings."""

    fan_out: int = Field(
        default=CONSENSUS_FAN_OUT,
        ge=1,
        le=10,
        description="Number of top-ranked providers queried concurrently",
    )


class LogConfig(BaseModel):
    """Configuration for structured logging."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Minimum log level to capture",
    )
    format: Literal["json", "console"] = Field(
        default="console",
        description="json for structured output, console for human-readable",
    )
    file_path: Path | None = Field(
        default=None,
        description="Optional rotating log file",
    )
    max_file_size_mb: int = Field(default=50, gt=0, le=1000)
    backup_count: int = Field(default=5, ge=0, le=100)
