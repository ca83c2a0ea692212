"""Exception hierarchy and error classification for Augur.

All Augur exceptions inherit from AugurError, so callers can catch broadly
(AugurError) or narrowly (e.g. QuotaExceededError).

Classification decides retry behaviour: quota, rate-limit and capacity
exhaustion are not transient and must never be retried, everything else
reported by a provider is.
"""

from __future__ import annotations

import re
from enum import Enum


class AugurError(Exception):
    """Base exception for all Augur errors."""


class ConfigurationError(AugurError):
    """Raised when configuration cannot be loaded or is invalid."""


class NoEligibleProviderError(AugurError):
    """Raised when the registry has no enabled, closed, in-budget provider.

    Attributes:
        reason: Short machine-readable reason ("circuit_open",
            "rate_limited", "no_providers_enabled" or "no_eligible_provider").
    """

    def __init__(self, message: str, reason: str = "no_eligible_provider") -> None:
        self.reason = reason
        super().__init__(message)


class ProviderError(AugurError):
    """A single provider call failed.

    Attributes:
        provider_id: Provider that failed (None if unknown at raise time).
    """

    def __init__(self, message: str, provider_id: str | None = None) -> None:
        self.provider_id = provider_id
        super().__init__(message)


class ProviderTimeoutError(ProviderError):
    """A provider call exceeded the query timeout."""


class QuotaExceededError(ProviderError):
    """The provider reported quota or capacity exhaustion. Not retryable."""


class RateLimitedError(ProviderError):
    """The provider (or the local rate limiter) refused the request. Not retryable."""


class AllProvidersFailedError(AugurError):
    """Consensus collected zero successful responses.

    Attributes:
        errors: Per-branch diagnostics, formatted "provider_id: message".
    """

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        self.errors = errors or []
        super().__init__(message)


class ErrorKind(str, Enum):
    """Classification of a provider failure by its message."""

    QUOTA = "quota"
    RATE_LIMIT = "rate_limit"
    CAPACITY = "capacity"
    TRANSIENT = "transient"


_QUOTA_PATTERNS: list[str] = [
    r"quota",
    r"insufficient.?quota",
    r"billing",
    r"credit.{0,10}(balance|exhausted|depleted)",
    r"token.{0,10}(budget|allowance).{0,10}(used|exhausted|depleted)",
    r"daily.{0,10}(token|usage).{0,10}limit",
]

_RATE_LIMIT_PATTERNS: list[str] = [
    r"rate.?limit",
    r"too many requests",
    r"\b429\b",
    r"throttl",
    r"usage.?limit",
]

_CAPACITY_PATTERNS: list[str] = [
    r"capacity",
    r"overloaded",
    r"try again later",
    r"service.?unavailable",
]


def _compile_patterns(strings: list[str]) -> list[re.Pattern[str]]:
    """Compile a list of regex strings into case-insensitive Pattern objects."""
    return [re.compile(p, re.IGNORECASE) for p in strings]


_COMPILED: list[tuple[ErrorKind, list[re.Pattern[str]]]] = [
    (ErrorKind.QUOTA, _compile_patterns(_QUOTA_PATTERNS)),
    (ErrorKind.RATE_LIMIT, _compile_patterns(_RATE_LIMIT_PATTERNS)),
    (ErrorKind.CAPACITY, _compile_patterns(_CAPACITY_PATTERNS)),
]


def classify_error_message(message: str) -> ErrorKind:
    """Classify an error message, most specific kind first."""
    for kind, patterns in _COMPILED:
        if any(p.search(message) for p in patterns):
            return kind
    return ErrorKind.TRANSIENT


def is_retryable(error: BaseException) -> bool:
    """Whether a failed operation may be attempted again.

    Quota, rate-limit and capacity errors are never retryable, whether
    signalled by type or only by message text. NoEligibleProviderError is
    not retryable either: the registry state it reflects does not change
    within a backoff window.
    """
    if isinstance(error, (QuotaExceededError, RateLimitedError, NoEligibleProviderError)):
        return False
    return classify_error_message(str(error)) is ErrorKind.TRANSIENT


def provider_error_from_message(
    message: str,
    provider_id: str | None = None,
) -> ProviderError:
    """Build the most specific ProviderError for a provider-reported message."""
    kind = classify_error_message(message)
    if kind in (ErrorKind.QUOTA, ErrorKind.CAPACITY):
        return QuotaExceededError(message, provider_id=provider_id)
    if kind is ErrorKind.RATE_LIMIT:
        return RateLimitedError(message, provider_id=provider_id)
    return ProviderError(message, provider_id=provider_id)


__all__ = [
    "AllProvidersFailedError",
    "AugurError",
    "ConfigurationError",
    "ErrorKind",
    "NoEligibleProviderError",
    "ProviderError",
    "ProviderTimeoutError",
    "QuotaExceededError",
    "RateLimitedError",
    "classify_error_message",
    "is_retryable",
    "provider_error_from_message",
]
