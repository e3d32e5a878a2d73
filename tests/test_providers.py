"""Tests for provider adapters and the registry, no real API calls."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from agora.models import ProviderId
from agora.providers.anthropic import AnthropicProvider
from agora.providers.base import ProviderError
from agora.providers.gemini import GeminiProvider
from agora.providers.openai_provider import OpenAIProvider
from agora.providers.registry import build_all_providers, build_provider
from agora.providers.xai import XAIProvider
from config.config_loader import AppConfig, ModelConfig

_MODELS = {
    "gpt": ModelConfig("gpt", "openai", "gpt-4o", "TEST_OPENAI_KEY", 60, 700),
    "claude": ModelConfig("claude", "anthropic", "claude-sonnet-4-20250514", "TEST_ANTHROPIC_KEY", 60, 700),
    "gemini": ModelConfig(
        "gemini", "google-genai", "gemini-2.5-pro", "TEST_GOOGLE_KEY", 120, 700,
        alt_api_key_envs=["TEST_GEMINI_KEY"],
    ),
    "grok": ModelConfig("grok", "openai", "grok-3", "TEST_XAI_KEY", 60, 700, base_url="https://api.x.ai/v1"),
}


@pytest.fixture
def all_keys(monkeypatch):
    for env in ("TEST_OPENAI_KEY", "TEST_ANTHROPIC_KEY", "TEST_GEMINI_KEY", "TEST_XAI_KEY"):
        monkeypatch.setenv(env, "test-key")
    monkeypatch.delenv("TEST_GOOGLE_KEY", raising=False)


def _chat_chunk(text):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])


async def _chat_stream(*texts):
    for text in texts:
        yield _chat_chunk(text)


def _fake_openai_client(create):
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


@pytest.mark.parametrize(
    "provider_id, cls",
    [
        (ProviderId.GPT, OpenAIProvider),
        (ProviderId.CLAUDE, AnthropicProvider),
        (ProviderId.GEMINI, GeminiProvider),
        (ProviderId.GROK, XAIProvider),
    ],
)
def test_build_provider_dispatch(all_keys, provider_id, cls):
    provider = build_provider(provider_id, _MODELS[provider_id.value])
    assert isinstance(provider, cls)
    assert provider.name() == provider_id.value
    assert provider.timeout_sec() == float(_MODELS[provider_id.value].timeout_sec)


def test_missing_key_raises(monkeypatch):
    monkeypatch.delenv("TEST_OPENAI_KEY", raising=False)
    with pytest.raises(ProviderError, match="Missing API key: TEST_OPENAI_KEY"):
        OpenAIProvider(_MODELS["gpt"])


def test_xai_requires_base_url(all_keys):
    config = ModelConfig("grok", "openai", "grok-3", "TEST_XAI_KEY", 60, 700)
    with pytest.raises(ProviderError, match="base_url"):
        XAIProvider(config)


def test_build_all_providers_skips_failures(monkeypatch, sample_prompts_config, sample_defaults_config):
    monkeypatch.setenv("TEST_OPENAI_KEY", "test-key")
    monkeypatch.delenv("TEST_ANTHROPIC_KEY", raising=False)
    config = AppConfig(
        defaults=sample_defaults_config,
        models={**_MODELS, "llama": _MODELS["gpt"]},
        prompts=sample_prompts_config,
        available_providers={"gpt", "claude", "llama"},
    )

    providers = build_all_providers(config)

    assert list(providers) == [ProviderId.GPT]


async def test_openai_streams_fragments(all_keys):
    provider = OpenAIProvider(_MODELS["gpt"])
    create = AsyncMock(return_value=_chat_stream("Hel", None, "lo"))
    provider._client = _fake_openai_client(create)

    fragments = [f async for f in provider.generate("Hi", "Be nice.", max_tokens=50)]

    assert fragments == ["Hel", "lo"]
    kwargs = create.call_args.kwargs
    assert kwargs["stream"] is True
    assert kwargs["max_tokens"] == 50
    assert kwargs["messages"][0] == {"role": "system", "content": "Be nice."}


async def test_openai_wraps_sdk_errors(all_keys):
    provider = OpenAIProvider(_MODELS["gpt"])
    provider._client = _fake_openai_client(AsyncMock(side_effect=RuntimeError("429 rate limit")))

    with pytest.raises(ProviderError, match="API call failed: 429 rate limit"):
        async for _ in provider.generate("Hi", "sys"):
            pass


async def test_xai_empty_stream_is_an_error(all_keys):
    provider = XAIProvider(_MODELS["grok"])
    provider._client = _fake_openai_client(AsyncMock(return_value=_chat_stream()))

    with pytest.raises(ProviderError, match="Empty response content"):
        async for _ in provider.generate("Hi", "sys"):
            pass


async def test_xai_uses_configured_budget(all_keys):
    provider = XAIProvider(_MODELS["grok"])
    create = AsyncMock(return_value=_chat_stream("ok"))
    provider._client = _fake_openai_client(create)

    assert [f async for f in provider.generate("Hi", "sys")] == ["ok"]
    assert create.call_args.kwargs["max_tokens"] == 700
    assert create.call_args.kwargs["model"] == "grok-3"


class _FakeMessageStream:
    """Stands in for the async context manager returned by messages.stream()."""

    def __init__(self, texts=(), error=None):
        self._texts = texts
        self._error = error

    async def __aenter__(self):
        if self._error:
            raise self._error
        return self

    async def __aexit__(self, *exc_info):
        return False

    @property
    def text_stream(self):
        return _text_stream(self._texts)


async def _text_stream(texts):
    for text in texts:
        yield text


def _fake_anthropic_client(stream):
    return SimpleNamespace(messages=SimpleNamespace(stream=stream))


async def _gemini_stream(*texts):
    for text in texts:
        yield SimpleNamespace(text=text)


def _fake_gemini_client(generate_content_stream):
    return SimpleNamespace(aio=SimpleNamespace(models=SimpleNamespace(generate_content_stream=generate_content_stream)))


async def test_anthropic_streams_text_in_order(all_keys):
    provider = AnthropicProvider(_MODELS["claude"])
    stream = MagicMock(return_value=_FakeMessageStream(["The ", "", "answer."]))
    provider._client = _fake_anthropic_client(stream)

    fragments = [f async for f in provider.generate("Hi", "Be brief.", max_tokens=80)]

    assert fragments == ["The ", "answer."]
    kwargs = stream.call_args.kwargs
    assert kwargs["system"] == "Be brief."
    assert kwargs["max_tokens"] == 80
    assert kwargs["messages"] == [{"role": "user", "content": "Hi"}]


async def test_anthropic_wraps_sdk_errors(all_keys):
    provider = AnthropicProvider(_MODELS["claude"])
    provider._client = _fake_anthropic_client(
        MagicMock(return_value=_FakeMessageStream(error=RuntimeError("overloaded_error")))
    )

    with pytest.raises(ProviderError, match="API call failed: overloaded_error"):
        async for _ in provider.generate("Hi", "sys"):
            pass


async def test_anthropic_empty_stream_is_an_error(all_keys):
    provider = AnthropicProvider(_MODELS["claude"])
    provider._client = _fake_anthropic_client(MagicMock(return_value=_FakeMessageStream([])))

    with pytest.raises(ProviderError, match="No text blocks in response"):
        async for _ in provider.generate("Hi", "sys"):
            pass


async def test_gemini_streams_chunk_text(all_keys):
    provider = GeminiProvider(_MODELS["gemini"])
    generate = AsyncMock(return_value=_gemini_stream("Merhaba", None, " dünya"))
    provider._client = _fake_gemini_client(generate)

    fragments = [f async for f in provider.generate("Selam", "Be brief.", max_tokens=64)]

    assert fragments == ["Merhaba", " dünya"]
    kwargs = generate.call_args.kwargs
    assert kwargs["model"] == "gemini-2.5-pro"
    assert kwargs["contents"] == "Selam"
    assert kwargs["config"].max_output_tokens == 64
    assert kwargs["config"].system_instruction == "Be brief."


async def test_gemini_uses_configured_budget(all_keys):
    provider = GeminiProvider(_MODELS["gemini"])
    generate = AsyncMock(return_value=_gemini_stream("ok"))
    provider._client = _fake_gemini_client(generate)

    assert [f async for f in provider.generate("Hi", "sys")] == ["ok"]
    assert generate.call_args.kwargs["config"].max_output_tokens == 700


async def test_gemini_wraps_sdk_errors(all_keys):
    provider = GeminiProvider(_MODELS["gemini"])
    provider._client = _fake_gemini_client(AsyncMock(side_effect=RuntimeError("RESOURCE_EXHAUSTED")))

    with pytest.raises(ProviderError, match="API call failed: RESOURCE_EXHAUSTED"):
        async for _ in provider.generate("Hi", "sys"):
            pass


async def test_gemini_empty_stream_is_an_error(all_keys):
    provider = GeminiProvider(_MODELS["gemini"])
    provider._client = _fake_gemini_client(AsyncMock(return_value=_gemini_stream(None, "")))

    with pytest.raises(ProviderError, match="Empty response text"):
        async for _ in provider.generate("Hi", "sys"):
            pass
