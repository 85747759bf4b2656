"""Provider boundary: message types, options, errors and the protocol."""

from __future__ import annotations

from typing import Literal, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, Field


class ProviderError(Exception):
    """Base class for text-generation failures (treated as transient)."""


class ProviderUnavailable(ProviderError):
    """The backend could not be reached or returned an unusable response."""


class ProviderTimeout(ProviderError):
    """The backend did not answer within its timeout."""


class ChatMessage(BaseModel):
    """One message of a chat-style prompt."""

    role: Literal["system", "user", "assistant"]
    content: str


class CompletionOptions(BaseModel):
    """Per-call generation options."""

    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    system_instruction: Optional[str] = Field(
        default=None,
        description="System prompt; stricter on retry attempts",
    )
    max_tokens: Optional[int] = Field(default=None, ge=1)


@runtime_checkable
class TextGenerationProvider(Protocol):
    """Stateless text-generation capability."""

    async def complete(
        self, messages: list[ChatMessage], options: CompletionOptions
    ) -> str: ...


def with_system(messages: list[ChatMessage], options: CompletionOptions) -> list[ChatMessage]:
    """Return *messages* with ``options.system_instruction`` prepended, if set."""
    if not options.system_instruction:
        return list(messages)
    return [ChatMessage(role="system", content=options.system_instruction), *messages]
