"""xAI Grok provider using openai SDK (OpenAI-compatible API)."""

import logging
import time
from collections.abc import AsyncIterator

from openai import AsyncOpenAI

from agora.providers.base import AIProvider, ProviderError
from config.config_loader import ModelConfig, read_api_key

logger = logging.getLogger(__name__)


class XAIProvider(AIProvider):
    """xAI Grok provider via OpenAI-compatible API."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = read_api_key(config)
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        if not config.base_url:
            raise ProviderError(config.name, "base_url is required for xAI provider")
        self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)

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
            stream = await self._client.chat.completions.create(
                model=self._config.model,
                messages=[
                    {"role": "system", "content": system_instruction},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=max_tokens or self._config.max_tokens,
                temperature=self._config.temperature,
                stream=True,
            )
            async for chunk in stream:
                if not chunk.choices:
                    continue
                text = chunk.choices[0].delta.content
                if text:
                    fragments += 1
                    yield text
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        if not fragments:
            raise ProviderError(self._config.name, "Empty response content")

        logger.info("xAI stream: %.2fs, %d fragments", time.monotonic() - start, fragments)
