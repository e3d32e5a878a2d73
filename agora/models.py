"""Pure dataclasses and enums for the AI Agora debate pipeline. No I/O, no deps."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum


class ProviderId(str, Enum):
    GPT = "gpt"
    CLAUDE = "claude"
    GEMINI = "gemini"
    GROK = "grok"

    @property
    def label(self) -> str:
        return _PROVIDER_LABELS[self]


_PROVIDER_LABELS = {
    ProviderId.GPT: "GPT",
    ProviderId.CLAUDE: "Claude",
    ProviderId.GEMINI: "Gemini",
    ProviderId.GROK: "Grok",
}


class ModeratorStyle(str, Enum):
    NEUTRAL = "neutral"
    ANALYTICAL = "analytical"
    EDUCATIONAL = "educational"
    CREATIVE = "creative"
    QUICK_SUMMARY = "quick-summary"


AUTO_MODERATOR = "auto"

MIN_ROUNDS = 1
MAX_ROUNDS = 3


@dataclass(frozen=True)
class DebateRequest:
    prompt: str
    providers: tuple[ProviderId, ...]
    rounds: int = 1
    language: str | None = None
    moderator_engine: ProviderId | str = AUTO_MODERATOR  # ProviderId or "auto"
    moderator_style: ModeratorStyle = ModeratorStyle.NEUTRAL
    include_moderator: bool = True
    history: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # a set of providers, kept in panel order
        object.__setattr__(self, "providers", ordered_providers(self.providers))


class TaskState(str, Enum):
    PENDING = "pending"
    STREAMING = "streaming"
    DONE = "done"
    FAILED = "failed"


@dataclass
class ProviderTask:
    provider: ProviderId
    round_number: int
    state: TaskState = TaskState.PENDING
    fragments: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def text(self) -> str:
        return "".join(self.fragments)

    @property
    def settled(self) -> bool:
        return self.state in (TaskState.DONE, TaskState.FAILED)


@dataclass(frozen=True)
class TranscriptEntry:
    provider: ProviderId
    round_number: int
    text: str
    failed: bool = False


@dataclass
class Round:
    number: int
    prompts: dict[ProviderId, str] = field(default_factory=dict)
    responses: dict[ProviderId, str] = field(default_factory=dict)
    failed: set[ProviderId] = field(default_factory=set)

    def entries(self) -> Iterator[TranscriptEntry]:
        for provider in sorted(self.responses, key=_provider_order):
            yield TranscriptEntry(
                provider=provider,
                round_number=self.number,
                text=self.responses[provider],
                failed=provider in self.failed,
            )


@dataclass
class Transcript:
    entries: list[TranscriptEntry] = field(default_factory=list)

    def append(self, entry: TranscriptEntry) -> None:
        self.entries.append(entry)

    def before_round(self, round_number: int) -> list[TranscriptEntry]:
        return [e for e in self.entries if e.round_number < round_number]

    def for_round(self, round_number: int) -> list[TranscriptEntry]:
        return [e for e in self.entries if e.round_number == round_number]

    def __len__(self) -> int:
        return len(self.entries)


@dataclass
class ModeratorResult:
    text: str | None = None
    engine: ProviderId | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.text is not None


@dataclass
class DebateResult:
    request: DebateRequest
    rounds: list[Round]
    transcript: Transcript
    moderator: ModeratorResult | None
    language: str
    is_serious: bool
    total_duration_sec: float


def _provider_order(provider: ProviderId) -> int:
    return list(ProviderId).index(provider)


def ordered_providers(providers: Iterable[ProviderId]) -> tuple[ProviderId, ...]:
    """Return providers in canonical panel order (gpt, claude, gemini, grok)."""
    return tuple(sorted(set(providers), key=_provider_order))
