"""Abstract base for the LLM vendor providers."""

from abc import ABC, abstractmethod

from config.config_loader import ModelConfig
from mcp_system.errors import ConfigurationError, MCPError, ValidationError
from mcp_system.models import GenerationOptions, LLMResponse


class ProviderError(MCPError):
    """Raised when a vendor call fails."""

    status_code = 500
    kind = "vendor_error"

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


class UnsupportedProviderError(ValidationError):
    """Raised by the factory for a provider name with no registered class."""

    def __init__(self, provider_name: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"Unsupported LLM provider: {provider_name}")


class AIProvider(ABC):
    """Abstract base for all LLM providers.

    Subclasses merge per-call GenerationOptions over the ModelConfig defaults
    and issue exactly one chat-completion request per generate() call.
    """

    def __init__(self, config: ModelConfig, api_key: str) -> None:
        if not api_key or not api_key.strip():
            raise ConfigurationError(config.name)
        self._config = config
        self._api_key = api_key.strip()

    def name(self) -> str:
        """Return the short provider name ('claude' or 'chatgpt')."""
        return self._config.name

    def model_string(self) -> str:
        """Return the default model identifier string."""
        return self._config.model

    def _merge(self, options: GenerationOptions | None) -> GenerationOptions:
        opts = options or GenerationOptions()
        return GenerationOptions(
            model=opts.model or self._config.model,
            max_tokens=opts.max_tokens if opts.max_tokens is not None else self._config.max_tokens,
            temperature=opts.temperature if opts.temperature is not None else self._config.temperature,
            system_prompt=opts.system_prompt or self._config.default_system,
        )

    @abstractmethod
    async def generate(self, prompt: str, options: GenerationOptions | None = None) -> LLMResponse:
        """Generate a response for the given prompt.

        Args:
            prompt: The full user prompt text to send.
            options: Per-call overrides of model, max tokens, temperature
                and system prompt.

        Returns:
            LLMResponse with content, resolved model and token usage.

        Raises:
            ProviderError: On API failure, timeout, or invalid response.
        """
        ...
