"""Round-aware prompt construction. Every function here is pure."""

from collections.abc import Iterable, Sequence

from agora.models import ProviderId, TranscriptEntry
from config.config_loader import PromptsConfig, RoundPromptConfig


def build_system_instruction(prompts: PromptsConfig, provider: ProviderId, language: str) -> str:
    """System instruction for one debater: who it is and the mandatory language."""
    return prompts.system.format(name=provider.label, language=language)


def round_copy(prompts: PromptsConfig, round_number: int) -> RoundPromptConfig:
    """Return the prompt copy for a round; later rounds reuse the last configured one."""
    if round_number in prompts.rounds:
        return prompts.rounds[round_number]
    configured = [n for n in prompts.rounds if n <= round_number]
    return prompts.rounds[max(configured) if configured else min(prompts.rounds)]


def format_context_block(entries: Iterable[TranscriptEntry], exclude: ProviderId) -> str:
    """Label every entry not written by `exclude` as `Name (Round n): text`."""
    return "\n\n".join(
        f"{entry.provider.label} (Round {entry.round_number}): {entry.text}"
        for entry in entries
        if entry.provider != exclude
    )


def build_round_prompt(
    prompts: PromptsConfig,
    base_prompt: str,
    round_number: int,
    prior_entries: Sequence[TranscriptEntry],
    provider: ProviderId,
    is_serious: bool,
    history: Sequence[str] = (),
) -> str:
    """Build the user prompt a provider receives for one round.

    Args:
        prompts: Prompt copy from settings.
        base_prompt: The user's question, verbatim.
        round_number: 1-indexed round.
        prior_entries: Transcript entries collected so far. Entries from
            this round or later are ignored.
        provider: The provider the prompt is for. Its own earlier answers
            are left out of the context block.
        is_serious: Seriousness flag from the topic classifier.
        history: Earlier user messages of the same conversation.

    Returns:
        The prompt text. Identical inputs give identical output.
    """
    parts: list[str] = []
    if history:
        parts.append(prompts.history_header + "\n" + "\n".join(f"- {message}" for message in history))

    parts.append(base_prompt)

    copy = round_copy(prompts, round_number)
    parts.append(copy.instruction)
    tone = copy.serious if is_serious else copy.casual
    if tone:
        parts.append(tone)

    if round_number > 1:
        earlier = [e for e in prior_entries if e.round_number < round_number]
        context = format_context_block(earlier, exclude=provider)
        if context:
            parts.append(f"{prompts.context_header}\n\n{context}")
            parts.append(prompts.refine)

    return "\n\n".join(part.strip() for part in parts if part.strip())
