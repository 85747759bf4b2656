"""Async HTTP clients for the supported text-generation backends.

All three backends share one ``httpx.AsyncClient`` factory and one error
mapping, so transport failures always surface as ``ProviderUnavailable`` or
``ProviderTimeout`` regardless of the backend.

Typical usage::

    provider = LocalProvider(base_url="http://localhost:11434", model="llama3.1:8b")
    if await provider.is_available():
        text = await provider.complete(
            [ChatMessage(role="user", content="Name three colours")],
            CompletionOptions(temperature=0.2),
        )
"""

from __future__ import annotations

from typing import Any

import httpx

from .base import (
    ChatMessage,
    CompletionOptions,
    ProviderTimeout,
    ProviderUnavailable,
    with_system,
)


class _HTTPProvider:
    """Shared transport for the concrete providers."""

    name = "provider"

    def __init__(self, base_url: str, model: str, timeout: int = 120) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        return {}

    def _client(self) -> httpx.AsyncClient:
        """Return a fresh ``AsyncClient`` configured with our base URL and timeout."""
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            headers=self._headers(),
        )

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST *payload* and return the decoded JSON body.

        Raises:
            ProviderUnavailable: On connection failures, HTTP errors or a
                non-JSON body.
            ProviderTimeout: When the request exceeds ``self.timeout``.
        """
        try:
            async with self._client() as client:
                response = await client.post(path, json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.ConnectError as exc:
            raise ProviderUnavailable(
                f"Cannot connect to {self.name} at {self.base_url}: {exc}"
            ) from exc
        except httpx.TimeoutException as exc:
            raise ProviderTimeout(
                f"Request to {self.name} timed out after {self.timeout}s."
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise ProviderUnavailable(
                f"{self.name} returned HTTP {exc.response.status_code}: "
                f"{exc.response.text[:500]}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ProviderUnavailable(f"Unexpected {self.name} response: {exc}") from exc

        if not isinstance(data, dict):
            raise ProviderUnavailable(f"Unexpected {self.name} response shape: {type(data).__name__}")
        return data


class OpenAIProvider(_HTTPProvider):
    """OpenAI chat-completions backend."""

    name = "OpenAI"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        base_url: str = "https://api.openai.com/v1",
        timeout: int = 120,
    ) -> None:
        super().__init__(base_url=base_url, model=model, timeout=timeout)
        self.api_key = api_key

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    @staticmethod
    def _extract_text(data: dict[str, Any]) -> str:
        choices = data.get("choices") or []
        if not choices:
            raise ProviderUnavailable("OpenAI response contained no choices")
        return (choices[0].get("message") or {}).get("content") or ""

    async def complete(self, messages: list[ChatMessage], options: CompletionOptions) -> str:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [m.model_dump() for m in with_system(messages, options)],
            "temperature": options.temperature,
        }
        if options.max_tokens:
            payload["max_tokens"] = options.max_tokens
        data = await self._post("/chat/completions", payload)
        return self._extract_text(data)


class AnthropicProvider(_HTTPProvider):
    """Anthropic messages backend.

    The messages API takes the system prompt as a top-level field, so system
    messages are lifted out of the conversation.
    """

    name = "Anthropic"
    api_version = "2023-06-01"

    def __init__(
        self,
        api_key: str,
        model: str = "claude-3-5-sonnet-20241022",
        base_url: str = "https://api.anthropic.com/v1",
        max_tokens: int = 4096,
        timeout: int = 120,
    ) -> None:
        super().__init__(base_url=base_url, model=model, timeout=timeout)
        self.api_key = api_key
        self.max_tokens = max_tokens

    def _headers(self) -> dict[str, str]:
        return {"x-api-key": self.api_key, "anthropic-version": self.api_version}

    @staticmethod
    def _extract_text(data: dict[str, Any]) -> str:
        blocks = data.get("content") or []
        return "".join(b.get("text", "") for b in blocks if b.get("type") == "text")

    async def complete(self, messages: list[ChatMessage], options: CompletionOptions) -> str:
        full = with_system(messages, options)
        system = "\n\n".join(m.content for m in full if m.role == "system")
        payload: dict[str, Any] = {
            "model": self.model,
            "max_tokens": options.max_tokens or self.max_tokens,
            "temperature": options.temperature,
            "messages": [m.model_dump() for m in full if m.role != "system"],
        }
        if system:
            payload["system"] = system
        data = await self._post("/messages", payload)
        return self._extract_text(data)


class LocalProvider(_HTTPProvider):
    """Local Ollama server via ``/api/chat``."""

    name = "Ollama"

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "llama3.1:8b",
        timeout: int = 120,
    ) -> None:
        super().__init__(base_url=base_url, model=model, timeout=timeout)

    @staticmethod
    def _extract_text(data: dict[str, Any]) -> str:
        """Ollama's non-streaming chat response puts the text in ``message.content``."""
        return (data.get("message") or {}).get("content", "")

    async def complete(self, messages: list[ChatMessage], options: CompletionOptions) -> str:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [m.model_dump() for m in with_system(messages, options)],
            "stream": False,
            "options": {"temperature": options.temperature},
        }
        data = await self._post("/api/chat", payload)
        return self._extract_text(data)

    async def is_available(self) -> bool:
        """Return ``True`` if the Ollama server responds to ``/api/tags``."""
        try:
            async with self._client() as client:
                response = await client.get("/api/tags")
                return response.status_code == 200
        except httpx.HTTPError:
            return False

    async def list_models(self) -> list[str]:
        """Return the sorted names of all locally-available models.

        Returns an empty list if the server is unreachable.
        """
        try:
            async with self._client() as client:
                response = await client.get("/api/tags")
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError):
            return []
        models = data.get("models", [])
        return sorted(m.get("name", "") for m in models if m.get("name"))
