"""Provider registry keyed by provider name."""

from collections.abc import Callable

from config.config_loader import ModelConfig
from mcp_system.providers.anthropic import AnthropicProvider
from mcp_system.providers.base import AIProvider, UnsupportedProviderError
from mcp_system.providers.openai_provider import OpenAIProvider

PROVIDER_CLASSES: dict[str, type[AIProvider]] = {
    "claude": AnthropicProvider,
    "chatgpt": OpenAIProvider,
}


def create_provider(name: str, api_key: str, models: dict[str, ModelConfig]) -> AIProvider:
    """Build the provider registered under name, configured from models[name].

    Raises:
        UnsupportedProviderError: name has no registered class or model config.
        ConfigurationError: api_key is empty.
    """
    key = (name or "").lower()
    if key not in PROVIDER_CLASSES or key not in models:
        raise UnsupportedProviderError(name)
    return PROVIDER_CLASSES[key](models[key], api_key)


ProviderFactory = Callable[[str, str], AIProvider]


def provider_factory_for(models: dict[str, ModelConfig]) -> ProviderFactory:
    """Bind create_provider to a models table, giving a (name, api_key) -> provider callable."""

    def factory(name: str, api_key: str) -> AIProvider:
        return create_provider(name, api_key, models)

    return factory
