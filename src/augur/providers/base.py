"""Abstract base for provider completion clients."""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any


@dataclass
class UsageSnapshot:
    """Best-effort usage and quota metrics for a provider.

    Remaining budgets are only known when the provider reports them.
    """

    requests_made: int = 0
    tokens_used: int = 0
    remaining_requests: int | None = None
    remaining_tokens: int | None = None

    def describe(self) -> str:
        """One-line summary for degraded-mode explanations."""
        parts = [f"{self.requests_made} requests", f"{self.tokens_used} tokens used"]
        if self.remaining_requests is not None:
            parts.append(f"{self.remaining_requests} requests remaining")
        if self.remaining_tokens is not None:
            parts.append(f"{self.remaining_tokens} tokens remaining")
        return ", ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class CompletionClient(ABC):
    """One completion call capability for a provider family.

    Implementations raise QuotaExceededError or RateLimitedError for
    non-transient exhaustion and ProviderError for everything else.
    """

    def __init__(self) -> None:
        self._usage = UsageSnapshot()

    @abstractmethod
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
        """Run one completion and return the raw response text."""
        ...

    def usage(self) -> UsageSnapshot:
        """Current usage metrics, read-only."""
        return UsageSnapshot(**self._usage.to_dict())

    async def close(self) -> None:
        """Release any open connections."""
        return None

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable client name."""
        ...

    @staticmethod
    def _read_api_key(env_var: str) -> str | None:
        return os.environ.get(env_var)
