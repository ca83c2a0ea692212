"""Anthropic completion client using the official SDK."""

from __future__ import annotations

import anthropic

from augur.core.errors import (
    ProviderError,
    ProviderTimeoutError,
    QuotaExceededError,
    RateLimitedError,
    provider_error_from_message,
)
from augur.core.logging import get_logger
from augur.providers.base import CompletionClient

_logger = get_logger("provider.anthropic")


class AnthropicClient(CompletionClient):
    """Run completions via the Anthropic Messages API.

    The async client is created lazily on first use so that a missing API
    key only fails the providers that actually need it.
    """

    def __init__(
        self,
        api_key_env: str = "ANTHROPIC_API_KEY",
        base_url: str | None = None,
    ) -> None:
        super().__init__()
        self.api_key_env = api_key_env
        self.base_url = base_url
        self._client: anthropic.AsyncAnthropic | None = None

    @property
    def name(self) -> str:
        return "anthropic"

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            api_key = self._read_api_key(self.api_key_env)
            if not api_key:
                raise ProviderError(
                    f"API key not found in environment variable: {self.api_key_env}"
                )
            self._client = anthropic.AsyncAnthropic(api_key=api_key, base_url=self.base_url)
        return self._client

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
        client = self._get_client()
        self._usage.requests_made += 1
        try:
            response = await client.messages.create(
                model=model,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
                temperature=temperature,
                max_tokens=max_tokens,
                timeout=timeout_seconds,
            )
        except anthropic.RateLimitError as e:
            _logger.warning("anthropic_rate_limited", model=model, error=str(e))
            error = provider_error_from_message(str(e))
            if isinstance(error, QuotaExceededError):
                raise error from e
            raise RateLimitedError(f"Rate limited: {e}") from e
        except anthropic.APITimeoutError as e:
            raise ProviderTimeoutError(f"API timeout after {timeout_seconds}s: {e}") from e
        except anthropic.APIConnectionError as e:
            raise ProviderError(f"Connection error: {e}") from e
        except anthropic.APIStatusError as e:
            _logger.warning(
                "anthropic_status_error",
                model=model,
                status_code=e.status_code,
                error=str(e),
            )
            raise provider_error_from_message(str(e)) from e

        if response.usage is not None:
            self._usage.tokens_used += response.usage.input_tokens + response.usage.output_tokens

        text = "".join(
            block.text for block in response.content if getattr(block, "text", None)
        )
        return text or "No response generated"

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
