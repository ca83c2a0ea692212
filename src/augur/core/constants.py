"""Global constants for Augur.

Centralizes the fixed weights, thresholds and timings of the advice
engine. Scoring weights are deliberately constants: changing them is a
code change, never a runtime decision.
"""

# =============================================================================
# Provider scoring weights
# =============================================================================

SCORE_WEIGHT_ACCURACY = 0.40
SCORE_WEIGHT_LATENCY = 0.20
SCORE_WEIGHT_ERROR_RATE = 0.20
SCORE_WEIGHT_SUCCESS_RATE = 0.10
SCORE_WEIGHT_COST = 0.10

SCORE_BONUS_VOLATILE_ACCURACY = 0.10
"""Extra accuracy weight when market volatility is high."""

SCORE_BONUS_HIGH_STAKES_LATENCY = 0.10
"""Extra latency weight in the high-stakes time bucket."""

SCORE_BONUS_TOP_TIER_ACCURACY = 0.15
"""Extra accuracy weight for top-tier records."""

LATENCY_REFERENCE_MS = 5000.0
"""Latency at which the latency score reaches zero."""

COST_REFERENCE_PER_TOKEN = 0.0001
"""Cost per token at which the cost score reaches zero."""

# =============================================================================
# Context classification
# =============================================================================

TOP_TIERS = frozenset({"S", "A"})
"""The top two record tiers."""

HIGH_VOLATILITY_THRESHOLD = 0.7
"""Volatility strictly above this counts as a volatile market."""

HIGH_STAKES_TIME_BUCKET = "game-time"
"""Time-of-day bucket treated as high-stakes."""

# =============================================================================
# Temperature adjustment
# =============================================================================

TEMPERATURE_TOP_TIER_FACTOR = 0.8
TEMPERATURE_VOLATILE_FACTOR = 0.9
TEMPERATURE_HIGH_STAKES_FACTOR = 0.85
TEMPERATURE_MIN = 0.1
TEMPERATURE_MAX = 1.0

# =============================================================================
# Resilience timings
# =============================================================================

CIRCUIT_FAILURE_THRESHOLD = 5
CIRCUIT_COOLDOWN_SECONDS = 60.0

RATE_WINDOW_SECONDS = 60
"""Fixed rate-limit window (one calendar minute)."""

QUERY_TIMEOUT_SECONDS = 30.0

CACHE_TTL_SECONDS = 300.0

RETRY_MAX_ATTEMPTS = 3
RETRY_BASE_DELAY_MS = 1000.0
RETRY_JITTER_LOW = 0.8
RETRY_JITTER_SPAN = 0.4

# =============================================================================
# Consensus
# =============================================================================

CONSENSUS_FAN_OUT = 3
LOW_CONSENSUS_THRESHOLD = 0.6
CONFIDENCE_VARIANCE_THRESHOLD = 0.4

CONFLICT_LOW_CONSENSUS = "LOW_CONSENSUS"
CONFLICT_HIGH_CONFIDENCE_VARIANCE = "HIGH_CONFIDENCE_VARIANCE"

# =============================================================================
# Parsing defaults and fallback
# =============================================================================

DEFAULT_RECOMMENDATION = "HOLD"
DEFAULT_CONFIDENCE = 0.5
DEFAULT_REASONING = "No detailed reasoning provided"

FALLBACK_PROVIDER_ID = "fallback-rules"
LOW_EDGE_SCORE_THRESHOLD = 10.0
