"""OpenAI-compatible chat completions client over httpx.

Works against the public OpenAI API and any server exposing the same
``/chat/completions`` shape (vLLM, LiteLLM, Ollama's OpenAI endpoint).
"""

from __future__ import annotations

from typing import Any

import httpx

from augur.core.errors import (
    ProviderError,
    ProviderTimeoutError,
    QuotaExceededError,
    RateLimitedError,
    provider_error_from_message,
)
from augur.core.logging import get_logger
from augur.providers.base import CompletionClient

_logger = get_logger("provider.openai")

DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"


def _header_int(headers: httpx.Headers, name: str) -> int | None:
    value = headers.get(name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


class OpenAICompatibleClient(CompletionClient):
    """Run completions via an OpenAI-style chat completions endpoint."""

    def __init__(
        self,
        base_url: str = DEFAULT_OPENAI_BASE_URL,
        api_key_env: str = "OPENAI_API_KEY",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__()
        self.base_url = base_url.rstrip("/")
        self.api_key_env = api_key_env
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "openai"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Content-Type": "application/json"}
            api_key = self._read_api_key(self.api_key_env)
            if api_key:
                headers["Authorization"] = f"Bearer {api_key}"
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                transport=self._transport,
            )
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
        payload: dict[str, Any] = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        self._usage.requests_made += 1
        try:
            response = await client.post(
                "/chat/completions",
                json=payload,
                timeout=timeout_seconds,
            )
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(f"Timeout after {timeout_seconds}s: {e}") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Connection error: {e}") from e

        self._record_rate_headers(response.headers)

        if response.status_code >= 400:
            raise self._error_for_response(response)

        data = response.json()
        usage = data.get("usage") or {}
        self._usage.tokens_used += int(usage.get("total_tokens", 0))

        choices = data.get("choices") or []
        if not choices:
            return "No response generated"
        content = (choices[0].get("message") or {}).get("content")
        return content or "No response generated"

    def _record_rate_headers(self, headers: httpx.Headers) -> None:
        remaining_requests = _header_int(headers, "x-ratelimit-remaining-requests")
        remaining_tokens = _header_int(headers, "x-ratelimit-remaining-tokens")
        if remaining_requests is not None:
            self._usage.remaining_requests = remaining_requests
        if remaining_tokens is not None:
            self._usage.remaining_tokens = remaining_tokens

    def _error_for_response(self, response: httpx.Response) -> ProviderError:
        try:
            body = response.json()
            detail = (body.get("error") or {}).get("message") or response.text
        except ValueError:
            detail = response.text
        message = f"HTTP {response.status_code}: {detail}"
        _logger.warning(
            "openai_request_failed",
            status_code=response.status_code,
            error=detail[:200],
        )
        error = provider_error_from_message(message)
        if response.status_code == 429 and not isinstance(
            error, (QuotaExceededError, RateLimitedError)
        ):
            return RateLimitedError(message)
        return error

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
