"""OpenAI ChatGPT provider using openai SDK with native async."""

import asyncio
import logging
import time

from openai import AsyncOpenAI

from config.config_loader import ModelConfig
from mcp_system.models import GenerationOptions, LLMResponse
from mcp_system.providers.base import AIProvider, ProviderError

logger = logging.getLogger(__name__)

_FALLBACK_SYSTEM = "You are a helpful assistant."


class OpenAIProvider(AIProvider):
    """OpenAI provider via openai SDK."""

    def __init__(self, config: ModelConfig, api_key: str) -> None:
        super().__init__(config, api_key)
        self._client = AsyncOpenAI(api_key=self._api_key)

    async def generate(self, prompt: str, options: GenerationOptions | None = None) -> LLMResponse:
        opts = self._merge(options)
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=opts.model,
                    messages=[
                        {"role": "system", "content": opts.system_prompt or _FALLBACK_SYSTEM},
                        {"role": "user", "content": prompt},
                    ],
                    max_tokens=opts.max_tokens,
                    temperature=opts.temperature,
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self.name(), f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self.name(), f"API call failed: {exc}") from exc

        elapsed_ms = int((time.monotonic() - start) * 1000)

        choice = response.choices[0] if response.choices else None
        if not choice or not choice.message.content:
            raise ProviderError(self.name(), "Empty response content")

        prompt_tokens = response.usage.prompt_tokens if response.usage else 0
        completion_tokens = response.usage.completion_tokens if response.usage else 0

        logger.info(
            "ChatGPT %s: %dms, %d+%d tokens",
            response.model,
            elapsed_ms,
            prompt_tokens,
            completion_tokens,
        )

        return LLMResponse(
            content=choice.message.content,
            model=response.model or opts.model,
            provider=self.name(),
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            response_time_ms=elapsed_ms,
        )
