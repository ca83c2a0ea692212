"""Tests for augur.core.errors classification."""

import pytest

from augur.core.errors import (
    AllProvidersFailedError,
    AugurError,
    ErrorKind,
    NoEligibleProviderError,
    ProviderError,
    ProviderTimeoutError,
    QuotaExceededError,
    RateLimitedError,
    classify_error_message,
    is_retryable,
    provider_error_from_message,
)


class TestHierarchy:
    def test_all_inherit_from_base(self):
        for cls in (
            NoEligibleProviderError,
            ProviderError,
            ProviderTimeoutError,
            QuotaExceededError,
            RateLimitedError,
            AllProvidersFailedError,
        ):
            assert issubclass(cls, AugurError)

    def test_attributes(self):
        assert ProviderError("x", provider_id="alpha").provider_id == "alpha"
        assert NoEligibleProviderError("x", reason="circuit_open").reason == "circuit_open"
        assert AllProvidersFailedError("x", ["a: down"]).errors == ["a: down"]
        assert AllProvidersFailedError("x").errors == []


class TestClassification:
    @pytest.mark.parametrize(
        ("message", "kind"),
        [
            ("You exceeded your current QUOTA", ErrorKind.QUOTA),
            ("insufficient_quota", ErrorKind.QUOTA),
            ("Rate limit reached for gpt-4", ErrorKind.RATE_LIMIT),
            ("HTTP 429: slow down", ErrorKind.RATE_LIMIT),
            ("Too Many Requests", ErrorKind.RATE_LIMIT),
            ("Model is at capacity", ErrorKind.CAPACITY),
            ("Overloaded", ErrorKind.CAPACITY),
            ("connection reset by peer", ErrorKind.TRANSIENT),
            ("", ErrorKind.TRANSIENT),
        ],
    )
    def test_classify_error_message(self, message, kind):
        assert classify_error_message(message) is kind

    def test_quota_wins_over_rate_limit(self):
        assert classify_error_message("rate limit: quota exhausted") is ErrorKind.QUOTA

    def test_is_retryable(self):
        assert is_retryable(ProviderError("socket closed"))
        assert is_retryable(ProviderTimeoutError("timed out after 30s"))
        assert not is_retryable(ProviderError("quota exceeded"))
        assert not is_retryable(RateLimitedError("anything"))
        assert not is_retryable(QuotaExceededError("anything"))
        assert not is_retryable(NoEligibleProviderError("none"))

    def test_provider_error_from_message(self):
        assert type(provider_error_from_message("quota gone")) is QuotaExceededError
        assert type(provider_error_from_message("overloaded")) is QuotaExceededError
        assert type(provider_error_from_message("rate limited")) is RateLimitedError
        error = provider_error_from_message("bad gateway", provider_id="alpha")
        assert type(error) is ProviderError
        assert error.provider_id == "alpha"
