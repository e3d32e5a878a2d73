"""Moderator synthesis: pick an engine, build the transcript prompt, stream the answer."""

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable, Mapping, Sequence
from contextlib import aclosing

from agora.models import (
    AUTO_MODERATOR,
    ModeratorResult,
    ModeratorStyle,
    ProviderId,
    TranscriptEntry,
)
from agora.providers.base import AIProvider, ProviderError
from config.config_loader import PromptsConfig

logger = logging.getLogger(__name__)


class ModeratorError(Exception):
    """Raised when the moderation phase cannot produce an answer."""


def format_transcript(entries: Iterable[TranscriptEntry]) -> str:
    """One line per entry as `[Label Rn] text`."""
    return "\n".join(f"[{e.provider.label} R{e.round_number}] {e.text}" for e in entries)


def build_moderator_system(prompts: PromptsConfig, style: ModeratorStyle, language: str) -> str:
    guidance = prompts.moderator_styles.get(style.value) or prompts.moderator_styles.get(
        ModeratorStyle.NEUTRAL.value, ""
    )
    return prompts.moderator_system.format(guidance=guidance, language=language)


def build_moderator_prompt(
    prompts: PromptsConfig,
    question: str,
    entries: Sequence[TranscriptEntry],
    rounds: int,
) -> str:
    return prompts.moderator.format(
        question=question,
        rounds=rounds,
        transcript=format_transcript(entries),
    )


class ModeratorSynthesizer:
    """Runs the single post-debate synthesis call.

    The moderator is independent of the debate panel: any configured
    provider can moderate, whether or not it debated.
    """

    def __init__(
        self,
        providers: Mapping[ProviderId, AIProvider],
        prompts: PromptsConfig,
        preferred: str = ProviderId.GPT.value,
        max_tokens: int | None = None,
        quick_summary_max_tokens: int | None = None,
    ) -> None:
        self._providers = providers
        self._prompts = prompts
        self._preferred = preferred
        self._max_tokens = max_tokens
        self._quick_summary_max_tokens = quick_summary_max_tokens

    def _preferred_id(self) -> ProviderId | None:
        try:
            return ProviderId(self._preferred)
        except ValueError:
            return None

    def resolve(
        self,
        engine: ProviderId | str,
        debaters: Sequence[ProviderId],
    ) -> tuple[ProviderId, AIProvider] | None:
        """Pick the moderator adapter. Returns None when no adapter exists at all.

        An explicit engine with an adapter is used as-is. "auto" prefers a
        provider that did not debate (the configured default first), then
        the configured default, then any adapter. An explicit engine without
        an adapter falls back the same way.
        """
        if not self._providers:
            return None

        if isinstance(engine, ProviderId):
            if engine in self._providers:
                return engine, self._providers[engine]
            logger.warning("Moderator engine %s unavailable, falling back", engine.value)
        elif engine != AUTO_MODERATOR:
            logger.warning("Unknown moderator engine %r, falling back", engine)

        preferred = self._preferred_id()
        not_in_panel = [p for p in self._providers if p not in debaters]
        if not_in_panel:
            chosen = preferred if preferred in not_in_panel else not_in_panel[0]
        elif preferred in self._providers:
            chosen = preferred
        else:
            chosen = next(iter(self._providers))
        return chosen, self._providers[chosen]

    def _budget(self, style: ModeratorStyle) -> int | None:
        if style is ModeratorStyle.QUICK_SUMMARY and self._quick_summary_max_tokens:
            return self._quick_summary_max_tokens
        return self._max_tokens

    async def stream(
        self,
        moderator: AIProvider,
        question: str,
        entries: Sequence[TranscriptEntry],
        rounds: int,
        style: ModeratorStyle,
        language: str,
    ) -> AsyncIterator[str]:
        """Stream the moderator's answer.

        Raises:
            ModeratorError: If the engine fails, times out or returns nothing.
        """
        prompt = build_moderator_prompt(self._prompts, question, entries, rounds)
        system_instruction = build_moderator_system(self._prompts, style, language)
        logger.info("Running moderation via %s (%s)", moderator.name(), style.value)
        logger.debug("Moderator prompt:\n%s", prompt)

        produced = False
        timeout = moderator.timeout_sec()
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        try:
            async with aclosing(
                moderator.generate(prompt, system_instruction, max_tokens=self._budget(style))
            ) as fragments:
                while True:
                    # The deadline covers the whole stream; yields stay outside the wait.
                    remaining = max(deadline - loop.time(), 0)
                    try:
                        fragment = await asyncio.wait_for(anext(fragments), remaining)
                    except StopAsyncIteration:
                        break
                    if fragment:
                        produced = True
                        yield fragment
        except TimeoutError as exc:
            raise ModeratorError(f"Moderator {moderator.name()} timed out after {timeout:g}s") from exc
        except ProviderError as exc:
            raise ModeratorError(f"Moderator response unavailable: {exc.message}") from exc
        except Exception as exc:
            raise ModeratorError(f"Moderator response unavailable: {exc}") from exc

        if not produced:
            raise ModeratorError(f"Moderator {moderator.name()} returned empty content")

    async def synthesize(
        self,
        question: str,
        entries: Sequence[TranscriptEntry],
        rounds: int,
        style: ModeratorStyle,
        language: str,
        engine: ProviderId | str = AUTO_MODERATOR,
        debaters: Sequence[ProviderId] = (),
    ) -> ModeratorResult:
        """Resolve an engine and collect its full answer. Never raises."""
        resolved = self.resolve(engine, debaters)
        if resolved is None:
            return ModeratorResult(error="No moderator engine is available")
        engine_id, moderator = resolved
        parts: list[str] = []
        try:
            async for fragment in self.stream(moderator, question, entries, rounds, style, language):
                parts.append(fragment)
        except ModeratorError as exc:
            logger.warning("%s", exc)
            return ModeratorResult(engine=engine_id, error=str(exc))
        return ModeratorResult(text="".join(parts), engine=engine_id)
