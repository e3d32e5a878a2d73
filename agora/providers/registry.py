"""Provider construction: one adapter class per ProviderId."""

import logging

from agora.models import ProviderId
from agora.providers.anthropic import AnthropicProvider
from agora.providers.base import AIProvider
from agora.providers.gemini import GeminiProvider
from agora.providers.openai_provider import OpenAIProvider
from agora.providers.xai import XAIProvider
from config.config_loader import AppConfig, ModelConfig

logger = logging.getLogger(__name__)


def build_provider(provider_id: ProviderId, config: ModelConfig) -> AIProvider:
    """Instantiate the adapter for provider_id. Raises ProviderError on missing key."""
    match provider_id:
        case ProviderId.GPT:
            return OpenAIProvider(config)
        case ProviderId.CLAUDE:
            return AnthropicProvider(config)
        case ProviderId.GEMINI:
            return GeminiProvider(config)
        case ProviderId.GROK:
            return XAIProvider(config)
    raise ValueError(f"Unhandled provider: {provider_id!r}")


def build_all_providers(config: AppConfig) -> dict[ProviderId, AIProvider]:
    """Build every configured provider that has an API key. Returns dict keyed by id."""
    providers: dict[ProviderId, AIProvider] = {}
    for name in sorted(config.available_providers):
        try:
            provider_id = ProviderId(name)
        except ValueError:
            logger.warning("Provider '%s' unknown, skipping", name)
            continue
        try:
            providers[provider_id] = build_provider(provider_id, config.models[name])
        except Exception as exc:
            logger.warning("Failed to instantiate provider '%s': %s", name, exc)
    return providers
