"""Advice orchestration engine."""

from augur.engine.cache import AdviceCache, CacheStats
from augur.engine.circuit_breaker import CircuitBreaker, CircuitState
from augur.engine.consensus import ConsensusAggregator
from augur.engine.engine import AdviceEngine, format_advice_text
from augur.engine.executor import QueryExecutor, adjust_temperature
from augur.engine.fallback import FallbackAdvisor
from augur.engine.rate_limiter import RateLimiter
from augur.engine.registry import ProviderRegistry
from augur.engine.retry import RetryController
from augur.engine.scorer import ProviderScorer

__all__ = [
    "AdviceCache",
    "AdviceEngine",
    "CacheStats",
    "CircuitBreaker",
    "CircuitState",
    "ConsensusAggregator",
    "FallbackAdvisor",
    "ProviderRegistry",
    "ProviderScorer",
    "QueryExecutor",
    "RateLimiter",
    "RetryController",
    "adjust_temperature",
    "format_advice_text",
]
