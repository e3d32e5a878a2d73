"""Round coordination: concurrent provider streams, fragment forwarding, round barrier."""

import asyncio
import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import aclosing
from dataclasses import dataclass

from agora import events
from agora.events import DebateEvent
from agora.metrics import DebateMetrics
from agora.models import DebateRequest, ProviderId, ProviderTask, Round, TaskState, Transcript
from agora.prompts import build_round_prompt, build_system_instruction
from agora.providers.base import AIProvider, ProviderError
from config.config_loader import PromptsConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Fragment:
    provider: ProviderId
    text: str


@dataclass(frozen=True)
class _Settled:
    provider: ProviderId


def error_text(provider: ProviderId, message: str) -> str:
    """Transcript placeholder for a provider that failed in a round."""
    return f"{provider.label} Error: {message}"


class RoundCoordinator:
    """Runs every requested provider for one round concurrently.

    Fragments are forwarded the moment they arrive. The round ends only when
    every provider task has settled, and only then are its entries appended
    to the transcript.
    """

    def __init__(
        self,
        providers: Mapping[ProviderId, AIProvider],
        prompts: PromptsConfig,
        metrics: DebateMetrics | None = None,
        background: set[asyncio.Task] | None = None,
    ) -> None:
        self._providers = providers
        self._prompts = prompts
        self._metrics = metrics or DebateMetrics()
        self._background: set[asyncio.Task] = background if background is not None else set()

    @property
    def background_tasks(self) -> set[asyncio.Task]:
        """Provider calls still running after their consumer went away."""
        return self._background

    async def _pump(
        self,
        task: ProviderTask,
        prompt: str,
        system_instruction: str,
        queue: asyncio.Queue,
    ) -> None:
        """Drive one provider stream into the queue. Never raises."""
        provider = self._providers.get(task.provider)
        try:
            if provider is None:
                raise ProviderError(task.provider.value, f"{task.provider.label} is not configured")
            timeout = provider.timeout_sec()
            try:
                async with asyncio.timeout(timeout):
                    async with aclosing(provider.generate(prompt, system_instruction)) as stream:
                        async for fragment in stream:
                            if not fragment:
                                continue
                            task.state = TaskState.STREAMING
                            task.fragments.append(fragment)
                            queue.put_nowait(_Fragment(task.provider, fragment))
            except TimeoutError as exc:
                raise ProviderError(task.provider.value, f"timed out after {timeout:g}s") from exc
            if not task.fragments:
                raise ProviderError(task.provider.value, "Empty response content")
            task.state = TaskState.DONE
        except ProviderError as exc:
            task.state = TaskState.FAILED
            task.error = exc.message
            logger.warning("Provider %s failed in round %d: %s", task.provider.value, task.round_number, exc.message)
        except Exception as exc:
            task.state = TaskState.FAILED
            task.error = f"Unexpected error: {exc}"
            logger.warning("Provider %s unexpected failure in round %d: %s", task.provider.value, task.round_number, exc)
        queue.put_nowait(_Settled(task.provider))

    async def run_round(
        self,
        request: DebateRequest,
        rnd: Round,
        transcript: Transcript,
        is_serious: bool,
        language: str,
    ) -> AsyncIterator[DebateEvent]:
        """Run one round and yield its chunk, message and provider_error events.

        Args:
            request: The debate request (fixes the provider set).
            rnd: The Round being filled; prompts and responses are recorded on it.
            transcript: Entries from earlier rounds. This round's entries are
                appended once every provider has settled.
            is_serious: Seriousness flag for tone.
            language: Resolved response language.
        """
        prior_entries = transcript.before_round(rnd.number)
        queue: asyncio.Queue = asyncio.Queue()
        provider_tasks: dict[ProviderId, ProviderTask] = {}
        running: list[asyncio.Task] = []

        for provider_id in request.providers:
            prompt = build_round_prompt(
                self._prompts,
                base_prompt=request.prompt,
                round_number=rnd.number,
                prior_entries=prior_entries,
                provider=provider_id,
                is_serious=is_serious,
                history=request.history,
            )
            rnd.prompts[provider_id] = prompt
            logger.debug("Round %d prompt for %s:\n%s", rnd.number, provider_id.value, prompt)
            task = ProviderTask(provider=provider_id, round_number=rnd.number)
            provider_tasks[provider_id] = task
            running.append(
                asyncio.create_task(
                    self._pump(task, prompt, build_system_instruction(self._prompts, provider_id, language), queue),
                    name=f"{provider_id.value}-round-{rnd.number}",
                )
            )

        logger.info("Starting round %d with %d providers", rnd.number, len(provider_tasks))

        settled = 0
        try:
            while settled < len(provider_tasks):
                item = await queue.get()
                if isinstance(item, _Fragment):
                    yield events.chunk(item.provider, rnd.number, item.text)
                    continue

                settled += 1
                task = provider_tasks[item.provider]
                if task.state is TaskState.DONE:
                    rnd.responses[task.provider] = task.text
                    yield events.message(task.provider, rnd.number, task.text)
                else:
                    message = task.error or "Unknown error"
                    rnd.responses[task.provider] = error_text(task.provider, message)
                    rnd.failed.add(task.provider)
                    self._metrics.provider_failed(task.provider)
                    yield events.provider_error(task.provider, rnd.number, message)
        finally:
            unfinished = [t for t in running if not t.done()]
            if unfinished:
                # Consumer went away mid-round; let the calls finish unobserved.
                logger.info("Round %d abandoned with %d provider calls in flight", rnd.number, len(unfinished))
                for t in unfinished:
                    self._background.add(t)
                    t.add_done_callback(self._background.discard)

        for entry in rnd.entries():
            transcript.append(entry)

        logger.info(
            "Round %d complete: %d/%d providers succeeded",
            rnd.number,
            len(provider_tasks) - len(rnd.failed),
            len(provider_tasks),
        )
