"""Unit tests for create_provider (ideaforge.providers.factory)."""

from __future__ import annotations

import pytest

from ideaforge.config import (
    AnthropicProviderConfig,
    LocalProviderConfig,
    OpenAIProviderConfig,
)
from ideaforge.providers import (
    AnthropicProvider,
    LocalProvider,
    OpenAIProvider,
    create_provider,
)


class TestCreateProvider:
    @pytest.mark.unit
    def test_local(self):
        provider = create_provider(LocalProviderConfig(model="llama3.1:8b", timeout=60))
        assert isinstance(provider, LocalProvider)
        assert provider.model == "llama3.1:8b"
        assert provider.timeout == 60

    @pytest.mark.unit
    def test_openai(self):
        provider = create_provider(OpenAIProviderConfig(api_key="sk-1", model="gpt-4o-mini"))
        assert isinstance(provider, OpenAIProvider)
        assert provider.api_key == "sk-1"

    @pytest.mark.unit
    def test_anthropic(self):
        provider = create_provider(AnthropicProviderConfig(api_key="a-1", max_tokens=2048))
        assert isinstance(provider, AnthropicProvider)
        assert provider.max_tokens == 2048

    @pytest.mark.unit
    @pytest.mark.parametrize("config", [OpenAIProviderConfig(), AnthropicProviderConfig()])
    def test_cloud_requires_api_key(self, config):
        with pytest.raises(ValueError, match="API key"):
            create_provider(config)

    @pytest.mark.unit
    def test_unknown_variant(self):
        with pytest.raises(TypeError):
            create_provider(object())  # type: ignore[arg-type]
