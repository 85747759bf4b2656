"""Text-generation backends.

Every backend implements the ``TextGenerationProvider`` protocol: a stateless
``complete(messages, options) -> text`` call that raises ``ProviderUnavailable``
or ``ProviderTimeout`` on failure. Cancellation is applied by the caller
through ``RunContext.complete``.

Key classes:
    OpenAIProvider     - OpenAI chat-completions API
    AnthropicProvider  - Anthropic messages API
    LocalProvider      - Local Ollama server (``/api/chat``)
"""

from .base import (
    ChatMessage,
    CompletionOptions,
    ProviderError,
    ProviderTimeout,
    ProviderUnavailable,
    TextGenerationProvider,
)
from .factory import create_provider
from .http import AnthropicProvider, LocalProvider, OpenAIProvider

__all__ = [
    "ChatMessage",
    "CompletionOptions",
    "TextGenerationProvider",
    "ProviderError",
    "ProviderUnavailable",
    "ProviderTimeout",
    "OpenAIProvider",
    "AnthropicProvider",
    "LocalProvider",
    "create_provider",
]
