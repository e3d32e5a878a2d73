"""Provider health checks: ping each API before starting a debate."""

import asyncio
import logging
from collections.abc import Mapping

from agora.models import ProviderId
from agora.providers.base import AIProvider

logger = logging.getLogger(__name__)

_PING_PROMPT = "Reply with the word OK only."
_PING_SYSTEM = "You are a connectivity check. Answer with one word."
_PING_MAX_TOKENS = 5
_TIMEOUT_SEC = 15.0


async def _drain(provider: AIProvider) -> None:
    async for _ in provider.generate(_PING_PROMPT, _PING_SYSTEM, max_tokens=_PING_MAX_TOKENS):
        pass


async def _check_one(name: ProviderId, provider: AIProvider) -> tuple[ProviderId, bool, str]:
    """Ping a single provider. Returns (name, ok, error_message)."""
    try:
        await asyncio.wait_for(_drain(provider), timeout=_TIMEOUT_SEC)
        return name, True, ""
    except TimeoutError:
        return name, False, f"timed out after {_TIMEOUT_SEC:g}s"
    except Exception as exc:
        return name, False, str(exc)


async def run_health_checks(
    providers: Mapping[ProviderId, AIProvider],
) -> dict[ProviderId, tuple[bool, str]]:
    """Ping all providers in parallel.

    Returns:
        Dict mapping provider id -> (ok, error_message).
        error_message is "" when ok is True.
    """
    results = await asyncio.gather(*(_check_one(n, p) for n, p in providers.items()))
    for name, ok, err in results:
        if not ok:
            logger.debug("Health check failed for %s: %s", name.value, err)
    return {name: (ok, err) for name, ok, err in results}
