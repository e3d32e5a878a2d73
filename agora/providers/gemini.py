"""Gemini provider using google-genai SDK with native async streaming."""

import logging
import time
from collections.abc import AsyncIterator

from google import genai
from google.genai import types as genai_types

from agora.providers.base import AIProvider, ProviderError
from config.config_loader import ModelConfig, read_api_key

logger = logging.getLogger(__name__)


class GeminiProvider(AIProvider):
    """Google Gemini provider via google-genai SDK."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = read_api_key(config)
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = genai.Client(api_key=api_key)

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
            stream = await self._client.aio.models.generate_content_stream(
                model=self._config.model,
                contents=prompt,
                config=genai_types.GenerateContentConfig(
                    system_instruction=system_instruction,
                    max_output_tokens=max_tokens or self._config.max_tokens,
                    temperature=self._config.temperature,
                ),
            )
            async for chunk in stream:
                if chunk.text:
                    fragments += 1
                    yield chunk.text
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        if not fragments:
            raise ProviderError(self._config.name, "Empty response text")

        logger.info("Gemini stream: %.2fs, %d fragments", time.monotonic() - start, fragments)
