"""Build a provider from the configured tagged variant."""

from __future__ import annotations

from ..config import (
    AnthropicProviderConfig,
    LocalProviderConfig,
    OpenAIProviderConfig,
)
from .base import TextGenerationProvider
from .http import AnthropicProvider, LocalProvider, OpenAIProvider


def create_provider(
    config: OpenAIProviderConfig | AnthropicProviderConfig | LocalProviderConfig,
) -> TextGenerationProvider:
    """Instantiate the backend described by *config*.

    Raises:
        ValueError: If a cloud backend is selected without an API key.
        TypeError: If *config* is not one of the known variants.
    """
    if isinstance(config, OpenAIProviderConfig):
        if not config.api_key:
            raise ValueError("OpenAI API key not configured (set OPENAI_API_KEY).")
        return OpenAIProvider(
            api_key=config.api_key,
            model=config.model,
            base_url=config.base_url,
            timeout=config.timeout,
        )
    if isinstance(config, AnthropicProviderConfig):
        if not config.api_key:
            raise ValueError("Anthropic API key not configured (set ANTHROPIC_API_KEY).")
        return AnthropicProvider(
            api_key=config.api_key,
            model=config.model,
            base_url=config.base_url,
            max_tokens=config.max_tokens,
            timeout=config.timeout,
        )
    if isinstance(config, LocalProviderConfig):
        return LocalProvider(
            base_url=config.base_url, model=config.model, timeout=config.timeout
        )
    raise TypeError(f"Unsupported provider config: {type(config).__name__}")
