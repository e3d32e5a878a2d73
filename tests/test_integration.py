"""Integration tests: real API calls, no mocks. Requires .env with 2+ API keys."""

import os
from pathlib import Path

import pytest
from dotenv import load_dotenv

load_dotenv()

# Skip entire module if fewer than 2 API keys are set
_AVAILABLE_KEYS = [
    k for k in ["OPENAI_API_KEY", "ANTHROPIC_API_KEY", "GOOGLE_AI_API_KEY", "GEMINI_API_KEY", "XAI_API_KEY"]
    if os.environ.get(k, "").strip()
]
pytestmark = pytest.mark.integration

if len(_AVAILABLE_KEYS) < 2:
    pytestmark = pytest.mark.skip(reason=f"Need 2+ API keys, found {len(_AVAILABLE_KEYS)}")


async def test_full_debate_pipeline(tmp_path: Path):
    """Run a real 2-round debate with available providers, verify no crash."""
    from config.config_loader import load_config
    from agora.events import EventType
    from agora.models import DebateRequest, ordered_providers
    from agora.orchestrator import DebateOrchestrator
    from agora.output import save_to_file
    from agora.providers.registry import build_all_providers

    config = load_config()
    providers = build_all_providers(config)
    assert len(providers) >= 2, f"Need 2+ providers, got {len(providers)}"

    panel = ordered_providers(list(providers)[:2])
    request = DebateRequest(
        prompt="Should a small team use a monorepo or separate repos for a Python microservices project?",
        providers=panel,
        rounds=2,
    )
    orchestrator = DebateOrchestrator(providers, config.prompts, config.defaults)

    seen: list[EventType] = []
    result = await orchestrator.run(request, on_event=lambda e: seen.append(e.type))

    assert seen[0] is EventType.META
    assert seen[-1] is EventType.DONE
    assert seen.count(EventType.ROUND_END) == 2
    assert len(result.transcript) == 4
    assert any(not entry.failed for entry in result.transcript.entries)
    assert result.moderator is not None

    saved = save_to_file(result, tmp_path / "output")
    content = saved.read_text(encoding="utf-8")
    assert "AI Agora" in content
    assert "## Round 2" in content
