"""Anthropic Claude provider using anthropic SDK message streaming."""

import logging
import time
from collections.abc import AsyncIterator

import anthropic as anthropic_sdk

from agora.providers.base import AIProvider, ProviderError
from config.config_loader import ModelConfig, read_api_key

logger = logging.getLogger(__name__)


class AnthropicProvider(AIProvider):
    """Anthropic Claude provider via anthropic SDK."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = read_api_key(config)
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = anthropic_sdk.AsyncAnthropic(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    def timeout_sec(self) -> float:
        return float(self._config.timeout_sec)

    async def generate(
        self,
        prompt: str,
        system_instruction: str,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        start = time.monotonic()
        fragments = 0
        try:
            async with self._client.messages.stream(
                model=self._config.model,
                max_tokens=max_tokens or self._config.max_tokens,
                temperature=self._config.temperature,
                system=system_instruction,
                messages=[{"role": "user", "content": prompt}],
            ) as stream:
                async for text in stream.text_stream:
                    if text:
                        fragments += 1
                        yield text
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        if not fragments:
            raise ProviderError(self._config.name, "No text blocks in response")

        logger.info("Anthropic stream: %.2fs, %d fragments", time.monotonic() - start, fragments)
