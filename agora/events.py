"""Typed debate events and their server-sent-events encoding."""

import json
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from agora.models import ProviderId


class EventType(str, Enum):
    META = "meta"
    ROUND_START = "round_start"
    CHUNK = "chunk"
    MESSAGE = "message"
    PROVIDER_ERROR = "provider_error"
    ROUND_END = "round_end"
    MODERATOR_CHUNK = "moderator_chunk"
    MODERATOR_MESSAGE = "moderator_message"
    ERROR = "error"
    DONE = "done"


@dataclass(frozen=True)
class DebateEvent:
    type: EventType
    data: dict[str, Any] = field(default_factory=dict)

    def to_sse(self) -> str:
        """Encode as one SSE frame: named event, JSON data, blank-line terminator."""
        payload = json.dumps(self.data, ensure_ascii=False)
        return f"event: {self.type.value}\ndata: {payload}\n\n"


def meta(**data: Any) -> DebateEvent:
    return DebateEvent(EventType.META, data)


def round_start(round_number: int) -> DebateEvent:
    return DebateEvent(EventType.ROUND_START, {"round": round_number})


def chunk(provider: ProviderId, round_number: int, text: str) -> DebateEvent:
    return DebateEvent(EventType.CHUNK, {"provider": provider.value, "round": round_number, "text": text})


def message(provider: ProviderId, round_number: int, text: str) -> DebateEvent:
    return DebateEvent(EventType.MESSAGE, {"provider": provider.value, "round": round_number, "text": text})


def provider_error(provider: ProviderId, round_number: int, error: str) -> DebateEvent:
    return DebateEvent(
        EventType.PROVIDER_ERROR,
        {"provider": provider.value, "round": round_number, "message": error},
    )


def round_end(round_number: int) -> DebateEvent:
    return DebateEvent(EventType.ROUND_END, {"round": round_number})


def moderator_chunk(text: str) -> DebateEvent:
    return DebateEvent(EventType.MODERATOR_CHUNK, {"text": text})


def moderator_message(text: str, engine: ProviderId) -> DebateEvent:
    return DebateEvent(EventType.MODERATOR_MESSAGE, {"text": text, "engine": engine.value})


def error(error_message: str, phase: str = "request") -> DebateEvent:
    return DebateEvent(EventType.ERROR, {"message": error_message, "phase": phase})


def done(**data: Any) -> DebateEvent:
    return DebateEvent(EventType.DONE, data)


async def encode_sse(events: AsyncIterable[DebateEvent]) -> AsyncIterator[str]:
    """Turn an event stream into SSE frames for any text transport."""
    async for event in events:
        yield event.to_sse()
