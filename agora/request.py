"""Turn a client JSON body into a validated DebateRequest."""

import logging
from collections.abc import Mapping
from typing import Any

from agora.models import (
    AUTO_MODERATOR,
    MAX_ROUNDS,
    MIN_ROUNDS,
    DebateRequest,
    ModeratorStyle,
    ProviderId,
    ordered_providers,
)
from config.config_loader import DefaultsConfig

logger = logging.getLogger(__name__)

_HISTORY_LIMIT = 3

# Labels sent by the mobile client
_STYLE_ALIASES = {
    "Quick Summary": ModeratorStyle.QUICK_SUMMARY,
    "Best Answer": ModeratorStyle.NEUTRAL,
    "Action Steps": ModeratorStyle.EDUCATIONAL,
    "Detailed Analysis": ModeratorStyle.ANALYTICAL,
}

_LEGACY_FLAGS = {
    "includeGPT": ProviderId.GPT,
    "includeClaude": ProviderId.CLAUDE,
    "includeGemini": ProviderId.GEMINI,
    "includeGrok": ProviderId.GROK,
}


class RequestError(ValueError):
    """Raised when a debate request is malformed. Nothing has run yet."""


def clamp_rounds(value: Any, default: int = MIN_ROUNDS) -> int:
    """Coerce value to an int within [1, 3]; non-numeric values use default."""
    try:
        rounds = int(value)
    except (TypeError, ValueError):
        rounds = default
    return max(MIN_ROUNDS, min(rounds, MAX_ROUNDS))


def parse_style(value: Any, default: ModeratorStyle = ModeratorStyle.NEUTRAL) -> ModeratorStyle:
    if isinstance(value, ModeratorStyle):
        return value
    if isinstance(value, str):
        if value in _STYLE_ALIASES:
            return _STYLE_ALIASES[value]
        try:
            return ModeratorStyle(value.strip().lower())
        except ValueError:
            logger.warning("Unknown moderator style %r, using %s", value, default.value)
    return default


def parse_engine(value: Any) -> ProviderId | str:
    """Map 'GPT', 'claude', 'auto', ... to a ProviderId or AUTO_MODERATOR."""
    if isinstance(value, ProviderId):
        return value
    if isinstance(value, str):
        try:
            return ProviderId(value.strip().lower())
        except ValueError:
            if value.strip().lower() != AUTO_MODERATOR:
                logger.warning("Unknown moderator engine %r, using auto", value)
    return AUTO_MODERATOR


def _enabled_providers(payload: Mapping[str, Any], default_panel: list[str]) -> tuple[set[ProviderId], bool]:
    """Return (enabled providers, moderator enabled)."""
    selection = payload.get("enabledAIs", payload.get("providers"))
    if isinstance(selection, Mapping):
        known = {p.value for p in ProviderId} | {"moderator"}
        for name in selection:
            if name not in known:
                logger.warning("Unknown provider '%s' in request, skipping", name)
        enabled = {p for p in ProviderId if selection.get(p.value) is True}
        return enabled, selection.get("moderator", True) is not False

    include_moderator = payload.get("includeModerator", True) is not False
    if any(flag in payload for flag in _LEGACY_FLAGS):
        enabled = {p for flag, p in _LEGACY_FLAGS.items() if payload.get(flag) is True}
        return enabled, include_moderator

    enabled = set()
    for name in default_panel:
        try:
            enabled.add(ProviderId(name))
        except ValueError:
            logger.warning("Unknown provider '%s' in default panel, skipping", name)
    return enabled, include_moderator


def _user_history(conversation: Any) -> tuple[str, ...]:
    if not isinstance(conversation, list):
        return ()
    texts = [
        str(item.get("text", "")).strip()
        for item in conversation
        if isinstance(item, Mapping) and item.get("sender") == "user"
    ]
    return tuple(t for t in texts if t)[-_HISTORY_LIMIT:]


def validate_request(request: DebateRequest) -> None:
    """Raise RequestError for an empty prompt, no providers or rounds out of range."""
    if not request.prompt or not request.prompt.strip():
        raise RequestError("Question is required")
    if not request.providers:
        raise RequestError("At least one AI assistant must be enabled")
    if not MIN_ROUNDS <= request.rounds <= MAX_ROUNDS:
        raise RequestError(f"Round count must be between {MIN_ROUNDS} and {MAX_ROUNDS}")


def parse_request(payload: Mapping[str, Any], defaults: DefaultsConfig | None = None) -> DebateRequest:
    """Build a DebateRequest from a JSON body.

    Accepts both the current field names (prompt, rounds, enabledAIs,
    moderatorEngine, moderatorStyle) and the mobile client's legacy ones
    (question, roundCount, includeGPT..., moderatorSource).

    Raises:
        RequestError: If the prompt is empty or no provider is enabled.
    """
    if not isinstance(payload, Mapping):
        raise RequestError("Request body must be a JSON object")

    prompt = payload.get("prompt", payload.get("question"))
    if not isinstance(prompt, str) or not prompt.strip():
        raise RequestError("Question is required")

    default_rounds = defaults.rounds if defaults else MIN_ROUNDS
    default_style = parse_style(defaults.moderator_style) if defaults else ModeratorStyle.NEUTRAL
    default_panel = defaults.default_panel if defaults else []

    enabled, include_moderator = _enabled_providers(payload, default_panel)
    if not enabled:
        raise RequestError("At least one AI assistant must be enabled")

    language = payload.get("language")
    request = DebateRequest(
        prompt=prompt.strip(),
        providers=ordered_providers(enabled),
        rounds=clamp_rounds(payload.get("rounds", payload.get("roundCount")), default_rounds),
        language=language if isinstance(language, str) and language.strip() else None,
        moderator_engine=parse_engine(payload.get("moderatorEngine", payload.get("moderatorSource"))),
        moderator_style=parse_style(payload.get("moderatorStyle"), default_style),
        include_moderator=include_moderator,
        history=_user_history(payload.get("conversation")),
    )
    logger.debug("Parsed request: %s", request)
    return request
