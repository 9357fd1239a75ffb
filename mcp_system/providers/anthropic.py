"""Anthropic Claude provider using anthropic SDK with native async."""

import asyncio
import logging
import time

import anthropic as anthropic_sdk

from config.config_loader import ModelConfig
from mcp_system.models import GenerationOptions, LLMResponse
from mcp_system.providers.base import AIProvider, ProviderError

logger = logging.getLogger(__name__)


class AnthropicProvider(AIProvider):
    """Anthropic Claude provider via anthropic SDK."""

    def __init__(self, config: ModelConfig, api_key: str) -> None:
        super().__init__(config, api_key)
        self._client = anthropic_sdk.AsyncAnthropic(api_key=self._api_key)

    async def generate(self, prompt: str, options: GenerationOptions | None = None) -> LLMResponse:
        opts = self._merge(options)
        request: dict = {
            "model": opts.model,
            "max_tokens": opts.max_tokens,
            "temperature": opts.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if opts.system_prompt:
            request["system"] = opts.system_prompt

        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.messages.create(**request),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self.name(), f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self.name(), f"API call failed: {exc}") from exc

        elapsed_ms = int((time.monotonic() - start) * 1000)

        text_blocks = [b.text for b in (response.content or []) if b.type == "text"]
        if not text_blocks:
            raise ProviderError(self.name(), "No text blocks in response")

        prompt_tokens = response.usage.input_tokens if response.usage else 0
        completion_tokens = response.usage.output_tokens if response.usage else 0

        logger.info(
            "Claude %s: %dms, %d+%d tokens",
            response.model,
            elapsed_ms,
            prompt_tokens,
            completion_tokens,
        )

        return LLMResponse(
            content="\n".join(text_blocks),
            model=response.model or opts.model,
            provider=self.name(),
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            response_time_ms=elapsed_ms,
        )
