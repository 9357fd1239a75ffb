"""Unit tests for mcp_system/providers; vendor SDK clients are mocked."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from mcp_system.errors import ConfigurationError
from mcp_system.models import GenerationOptions
from mcp_system.providers.anthropic import AnthropicProvider
from mcp_system.providers.base import ProviderError, UnsupportedProviderError
from mcp_system.providers.factory import create_provider, provider_factory_for
from mcp_system.providers.openai_provider import OpenAIProvider


def _anthropic_response(text: str = "Hola", model: str = "claude-3-7-sonnet-20250219"):
    return SimpleNamespace(
        content=[SimpleNamespace(type="text", text=text)],
        model=model,
        usage=SimpleNamespace(input_tokens=11, output_tokens=7),
    )


def _openai_response(text: str | None = "Hola", model: str = "gpt-4o"):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=text))],
        model=model,
        usage=SimpleNamespace(prompt_tokens=9, completion_tokens=4),
    )


@pytest.fixture
def claude(app_config) -> AnthropicProvider:
    provider = AnthropicProvider(app_config.models["claude"], "sk-ant-test")
    provider._client = MagicMock()
    provider._client.messages.create = AsyncMock(return_value=_anthropic_response())
    return provider


@pytest.fixture
def chatgpt(app_config) -> OpenAIProvider:
    provider = OpenAIProvider(app_config.models["chatgpt"], "sk-openai-test")
    provider._client = MagicMock()
    provider._client.chat.completions.create = AsyncMock(return_value=_openai_response())
    return provider


async def test_anthropic_generate_normalizes_response(claude):
    response = await claude.generate("Escribe un saludo")

    assert response.content == "Hola"
    assert response.provider == "claude"
    assert response.prompt_tokens == 11
    assert response.completion_tokens == 7
    assert response.total_tokens == 18
    assert response.response_time_ms >= 0


async def test_anthropic_sends_system_only_when_given(claude):
    await claude.generate("prompt")
    assert "system" not in claude._client.messages.create.call_args.kwargs

    await claude.generate("prompt", GenerationOptions(system_prompt="Eres un juez", temperature=0.2))
    kwargs = claude._client.messages.create.call_args.kwargs
    assert kwargs["system"] == "Eres un juez"
    assert kwargs["temperature"] == 0.2
    assert kwargs["max_tokens"] == 2000
    assert kwargs["messages"] == [{"role": "user", "content": "prompt"}]


async def test_anthropic_failure_wrapped(claude):
    claude._client.messages.create = AsyncMock(side_effect=RuntimeError("401 invalid x-api-key"))
    with pytest.raises(ProviderError, match=r"\[claude\].*401"):
        await claude.generate("prompt")


async def test_anthropic_no_text_blocks(claude):
    claude._client.messages.create = AsyncMock(
        return_value=SimpleNamespace(content=[], model="m", usage=None)
    )
    with pytest.raises(ProviderError, match="No text blocks"):
        await claude.generate("prompt")


async def test_openai_default_system_message(chatgpt):
    response = await chatgpt.generate("Evalúa esto")

    messages = chatgpt._client.chat.completions.create.call_args.kwargs["messages"]
    assert messages[0] == {"role": "system", "content": "You are a helpful assistant."}
    assert messages[1] == {"role": "user", "content": "Evalúa esto"}
    assert response.provider == "chatgpt"
    assert response.total_tokens == 13


async def test_openai_custom_system_and_model(chatgpt):
    await chatgpt.generate("x", GenerationOptions(model="gpt-4-turbo", system_prompt="Eres un builder"))
    kwargs = chatgpt._client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4-turbo"
    assert kwargs["messages"][0]["content"] == "Eres un builder"


async def test_openai_empty_content(chatgpt):
    chatgpt._client.chat.completions.create = AsyncMock(return_value=_openai_response(text=None))
    with pytest.raises(ProviderError, match="Empty response"):
        await chatgpt.generate("x")


async def test_timeout_becomes_provider_error(app_config):
    app_config.models["chatgpt"].timeout_sec = 0.01
    provider = OpenAIProvider(app_config.models["chatgpt"], "sk-openai-test")

    async def slow(**kwargs):
        await asyncio.sleep(1)

    provider._client = MagicMock()
    provider._client.chat.completions.create = slow
    with pytest.raises(ProviderError, match="timed out"):
        await provider.generate("x")


def test_empty_api_key_rejected(app_config):
    with pytest.raises(ConfigurationError, match="claude"):
        AnthropicProvider(app_config.models["claude"], "  ")


def test_factory_builds_registered_providers(app_config):
    assert isinstance(create_provider("claude", "k", app_config.models), AnthropicProvider)
    assert isinstance(create_provider("ChatGPT", "k", app_config.models), OpenAIProvider)


def test_factory_rejects_unknown_provider(app_config):
    with pytest.raises(UnsupportedProviderError, match="gemini"):
        create_provider("gemini", "k", app_config.models)


def test_provider_factory_for_binds_models(app_config):
    factory = provider_factory_for(app_config.models)
    provider = factory("chatgpt", "k")
    assert provider.name() == "chatgpt"
    assert provider.model_string() == "gpt-4o"
