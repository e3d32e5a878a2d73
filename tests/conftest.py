"""Shared pytest fixtures."""

import asyncio
import re
from collections.abc import AsyncIterator
from pathlib import Path

import pytest

from agora.events import DebateEvent, EventType
from agora.models import DebateRequest, ProviderId, TranscriptEntry
from agora.providers.base import AIProvider, ProviderError
from config.config_loader import (
    AppConfig,
    DefaultsConfig,
    ModelConfig,
    PromptsConfig,
    RoundPromptConfig,
)


def split_fragments(text: str) -> list[str]:
    """Split text into word-sized fragments that join back to the original."""
    return re.findall(r"\S+\s*", text) or [text]


class MockProvider(AIProvider):
    """Scripted streaming test double.

    Each generate() call consumes the next entry of `script` (the last entry
    repeats). An entry is either the response text, streamed word by word,
    or an exception raised before anything is yielded.
    """

    def __init__(
        self,
        provider_name: str = "mock",
        response_content: str = "Mock response",
        script: list[str | Exception] | None = None,
        delay: float = 0.0,
        fail_after_first: bool = False,
        hang: bool = False,
        timeout: float = 5.0,
    ) -> None:
        self._name = provider_name
        self._script: list[str | Exception] = script if script is not None else [response_content]
        self._delay = delay
        self._fail_after_first = fail_after_first
        self._hang = hang
        self._timeout = timeout
        self.calls: list[dict] = []
        self.finished = asyncio.Event()

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "mock-model"

    def timeout_sec(self) -> float:
        return self._timeout

    @property
    def prompts(self) -> list[str]:
        return [call["prompt"] for call in self.calls]

    async def generate(
        self,
        prompt: str,
        system_instruction: str,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        self.calls.append({"prompt": prompt, "system": system_instruction, "max_tokens": max_tokens})
        item = self._script[min(len(self.calls), len(self._script)) - 1]
        try:
            if isinstance(item, Exception):
                raise item
            for index, fragment in enumerate(split_fragments(item)):
                if self._delay:
                    await asyncio.sleep(self._delay)
                if self._hang and index == 1:
                    await asyncio.sleep(3600)
                yield fragment
                if self._fail_after_first:
                    raise ProviderError(self._name, "stream dropped")
        finally:
            self.finished.set()


@pytest.fixture
def sample_model_config() -> ModelConfig:
    return ModelConfig(
        name="gpt",
        sdk="openai",
        model="test-model-1",
        api_key_env="TEST_API_KEY",
        timeout_sec=30,
        max_tokens=1024,
        base_url=None,
    )


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        system="You are {name}. Respond strictly in {language}.",
        rounds={
            1: RoundPromptConfig(
                instruction="ROUND1: answer briefly.",
                serious="TONE: empathetic, no jokes.",
                casual="TONE: friendly.",
            ),
            2: RoundPromptConfig(
                instruction="ROUND2: refine and name the others.",
                serious="TONE: professional and supportive.",
                casual="TONE: witty name-dropping.",
            ),
            3: RoundPromptConfig(
                instruction="ROUND3: comprehensive answer, about 400 words, reconcile disagreements.",
                serious="TONE: calm professional register.",
                casual="TONE: light opening remark.",
            ),
        },
        history_header="EARLIER:",
        context_header="CONTEXT:",
        refine="REFINE: note agreements and disagreements.",
        moderator_system="MODERATOR. {guidance} Respond strictly in {language}.",
        moderator="Q: {question}\nRounds: {rounds}\n{transcript}\nSynthesize.",
        moderator_styles={
            "neutral": "Be balanced.",
            "analytical": "Compare and contrast key points.",
            "educational": "Explain step by step.",
            "creative": "Be imaginative.",
            "quick-summary": "Terse executive summary.",
        },
    )


@pytest.fixture
def sample_defaults_config(tmp_path: Path) -> DefaultsConfig:
    return DefaultsConfig(
        rounds=1,
        output_dir=tmp_path / "output",
        moderator="gpt",
        default_panel=["gpt", "claude"],
        moderator_max_tokens=400,
        quick_summary_max_tokens=100,
    )


@pytest.fixture
def sample_app_config(
    sample_defaults_config: DefaultsConfig,
    sample_prompts_config: PromptsConfig,
) -> AppConfig:
    model_cfg = ModelConfig(
        name="claude",
        sdk="anthropic",
        model="claude-sonnet-4-20250514",
        api_key_env="ANTHROPIC_API_KEY",
        timeout_sec=60,
        max_tokens=4096,
    )
    return AppConfig(
        defaults=sample_defaults_config,
        models={"claude": model_cfg},
        prompts=sample_prompts_config,
        available_providers={"claude"},
    )


@pytest.fixture
def sample_request() -> DebateRequest:
    return DebateRequest(
        prompt="What is AI?",
        providers=(ProviderId.GPT, ProviderId.CLAUDE),
        rounds=1,
    )


@pytest.fixture
def sample_entries() -> list[TranscriptEntry]:
    return [
        TranscriptEntry(ProviderId.GPT, 1, "GPT says AI is pattern learning."),
        TranscriptEntry(ProviderId.CLAUDE, 1, "Claude says AI is a broad field."),
    ]


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()


@pytest.fixture
def two_mock_providers() -> dict[ProviderId, MockProvider]:
    return {
        ProviderId.GPT: MockProvider("gpt", "Response from GPT about the topic"),
        ProviderId.CLAUDE: MockProvider("claude", "Response from Claude about the topic"),
    }


async def collect(stream: AsyncIterator[DebateEvent]) -> list[DebateEvent]:
    return [event async for event in stream]


def event_types(collected: list[DebateEvent]) -> list[EventType]:
    return [event.type for event in collected]
