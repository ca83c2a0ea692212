"""Core domain models, configuration, errors and logging."""

from augur.core.config import AugurConfig, ProviderConfig
from augur.core.errors import (
    AllProvidersFailedError,
    AugurError,
    NoEligibleProviderError,
    ProviderError,
    QuotaExceededError,
    RateLimitedError,
)
from augur.core.models import (
    AdviceResult,
    ConsensusResult,
    DecisionRecord,
    MarketContext,
    ProviderPerformance,
)

__all__ = [
    "AdviceResult",
    "AllProvidersFailedError",
    "AugurConfig",
    "AugurError",
    "ConsensusResult",
    "DecisionRecord",
    "MarketContext",
    "NoEligibleProviderError",
    "ProviderConfig",
    "ProviderError",
    "ProviderPerformance",
    "QuotaExceededError",
    "RateLimitedError",
]
