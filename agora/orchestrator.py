"""Debate orchestration: validate, run rounds, moderate, emit ordered events."""

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Any

from agora import events
from agora.debate import RoundCoordinator
from agora.events import DebateEvent, EventType
from agora.language import resolve_language
from agora.metrics import DebateMetrics
from agora.models import (
    DebateRequest,
    DebateResult,
    ModeratorResult,
    ProviderId,
    Round,
    Transcript,
)
from agora.providers.base import AIProvider
from agora.request import RequestError, parse_request, validate_request
from agora.synthesis import ModeratorError, ModeratorSynthesizer
from agora.topic import is_serious_topic
from config.config_loader import DefaultsConfig, PromptsConfig

logger = logging.getLogger(__name__)


@dataclass
class DebateSession:
    """Mutable state of one request. Owned by a single orchestrator run."""

    request: DebateRequest
    started: float = field(default_factory=time.monotonic)
    language: str = ""
    is_serious: bool = False
    rounds: list[Round] = field(default_factory=list)
    transcript: Transcript = field(default_factory=Transcript)
    moderator: ModeratorResult | None = None

    def to_result(self) -> DebateResult:
        return DebateResult(
            request=self.request,
            rounds=self.rounds,
            transcript=self.transcript,
            moderator=self.moderator,
            language=self.language,
            is_serious=self.is_serious,
            total_duration_sec=time.monotonic() - self.started,
        )


class DebateOrchestrator:
    """Turns one DebateRequest into an ordered stream of DebateEvents.

    The same instance serves many requests; nothing request-specific is kept
    on it apart from provider calls abandoned by a disconnected client.
    """

    def __init__(
        self,
        providers: Mapping[ProviderId, AIProvider],
        prompts: PromptsConfig,
        defaults: DefaultsConfig | None = None,
        metrics: DebateMetrics | None = None,
    ) -> None:
        self._providers = dict(providers)
        self._prompts = prompts
        self._defaults = defaults
        self._metrics = metrics or DebateMetrics()
        self._background: set[asyncio.Task] = set()
        self._coordinator = RoundCoordinator(self._providers, prompts, self._metrics, self._background)
        self._synthesizer = ModeratorSynthesizer(
            self._providers,
            prompts,
            preferred=defaults.moderator if defaults else ProviderId.GPT.value,
            max_tokens=defaults.moderator_max_tokens if defaults else None,
            quick_summary_max_tokens=defaults.quick_summary_max_tokens if defaults else None,
        )

    @property
    def metrics(self) -> DebateMetrics:
        return self._metrics

    @property
    def background_tasks(self) -> set[asyncio.Task]:
        return self._background

    async def stream_payload(self, payload: Mapping[str, Any]) -> AsyncIterator[DebateEvent]:
        """Parse a JSON body and stream its debate; a bad body yields one error event."""
        try:
            request = parse_request(payload, self._defaults)
        except RequestError as exc:
            logger.warning("Rejected request: %s", exc)
            self._metrics.request_rejected()
            yield events.error(str(exc))
            return
        async with aclosing(self.stream(request)) as stream:
            async for event in stream:
                yield event

    async def stream(
        self,
        request: DebateRequest,
        session: DebateSession | None = None,
    ) -> AsyncIterator[DebateEvent]:
        """Run the whole debate for request, yielding events as they happen.

        Order: meta, then per round round_start, chunk/message/provider_error
        events, round_end; then moderator_chunk events and moderator_message
        (or an error for the moderation phase); then done. A request that
        cannot start yields a single error event and nothing else.
        """
        session = session or DebateSession(request=request)

        try:
            validate_request(request)
            if not any(p in self._providers for p in request.providers):
                raise RequestError("None of the selected AI assistants is available")
        except RequestError as exc:
            logger.warning("Rejected request: %s", exc)
            self._metrics.request_rejected()
            yield events.error(str(exc))
            return

        self._metrics.request_started()
        session.language = resolve_language(request.prompt, request.language)
        session.is_serious = is_serious_topic(request.prompt)

        logger.info(
            "Debate: %d round(s), providers=%s, language=%s, serious=%s",
            request.rounds,
            ",".join(p.value for p in request.providers),
            session.language,
            session.is_serious,
        )

        yield events.meta(
            rounds=request.rounds,
            providers=[p.value for p in request.providers],
            language=session.language,
            serious=session.is_serious,
            moderator_engine=str(getattr(request.moderator_engine, "value", request.moderator_engine)),
            moderator_style=request.moderator_style.value,
            moderator=request.include_moderator,
        )

        for round_number in range(1, request.rounds + 1):
            rnd = Round(number=round_number)
            session.rounds.append(rnd)
            yield events.round_start(round_number)
            async with aclosing(
                self._coordinator.run_round(request, rnd, session.transcript, session.is_serious, session.language)
            ) as round_events:
                async for event in round_events:
                    yield event
            self._metrics.round_completed()
            yield events.round_end(round_number)

        if request.include_moderator:
            async with aclosing(self._moderate(session)) as moderator_events:
                async for event in moderator_events:
                    yield event

        yield events.done(duration_sec=round(time.monotonic() - session.started, 3))

    async def _moderate(self, session: DebateSession) -> AsyncIterator[DebateEvent]:
        request = session.request
        resolved = self._synthesizer.resolve(request.moderator_engine, request.providers)
        if resolved is None:
            session.moderator = ModeratorResult(error="No moderator engine is available")
            logger.warning("Moderation skipped: no engine available")
            self._metrics.moderation_finished(False)
            yield events.error(session.moderator.error, phase="moderator")
            return

        engine_id, moderator = resolved
        parts: list[str] = []
        try:
            async with aclosing(
                self._synthesizer.stream(
                    moderator,
                    request.prompt,
                    session.transcript.entries,
                    request.rounds,
                    request.moderator_style,
                    session.language,
                )
            ) as fragments:
                async for fragment in fragments:
                    parts.append(fragment)
                    yield events.moderator_chunk(fragment)
        except ModeratorError as exc:
            logger.warning("%s", exc)
            session.moderator = ModeratorResult(engine=engine_id, error=str(exc))
            self._metrics.moderation_finished(False)
            yield events.error(str(exc), phase="moderator")
            return

        session.moderator = ModeratorResult(text="".join(parts), engine=engine_id)
        self._metrics.moderation_finished(True)
        yield events.moderator_message(session.moderator.text, engine_id)

    async def run(
        self,
        request: DebateRequest,
        on_event: Callable[[DebateEvent], None] | None = None,
    ) -> DebateResult:
        """Drain the event stream in-process and return the collected result.

        Raises:
            RequestError: If the request was rejected before any round ran.
        """
        session = DebateSession(request=request)
        async for event in self.stream(request, session):
            if on_event:
                on_event(event)
            if event.type is EventType.ERROR and event.data.get("phase") == "request":
                raise RequestError(event.data["message"])
        return session.to_result()
