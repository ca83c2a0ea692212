"""Provider completion clients."""

from augur.core.config import ProviderConfig
from augur.providers.anthropic_api import AnthropicClient
from augur.providers.base import CompletionClient, UsageSnapshot
from augur.providers.openai_compat import DEFAULT_OPENAI_BASE_URL, OpenAICompatibleClient


def create_client(config: ProviderConfig) -> CompletionClient:
    """Build the completion client for a provider's family."""
    if config.family == "anthropic":
        return AnthropicClient(
            api_key_env=config.api_key_env or "ANTHROPIC_API_KEY",
            base_url=config.base_url,
        )
    return OpenAICompatibleClient(
        base_url=config.base_url or DEFAULT_OPENAI_BASE_URL,
        api_key_env=config.api_key_env or "OPENAI_API_KEY",
    )


__all__ = [
    "AnthropicClient",
    "CompletionClient",
    "OpenAICompatibleClient",
    "UsageSnapshot",
    "create_client",
]
