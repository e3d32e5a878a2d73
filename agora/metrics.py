"""Process-scoped debate counters, injected into the orchestrator."""

import time
from collections import Counter
from dataclasses import dataclass, field

from agora.models import ProviderId


@dataclass
class DebateMetrics:
    started_at: float = field(default_factory=time.monotonic)
    requests_started: int = 0
    requests_rejected: int = 0
    rounds_completed: int = 0
    moderations_succeeded: int = 0
    moderations_failed: int = 0
    provider_failures: Counter = field(default_factory=Counter)

    def request_started(self) -> None:
        self.requests_started += 1

    def request_rejected(self) -> None:
        self.requests_rejected += 1

    def round_completed(self) -> None:
        self.rounds_completed += 1

    def provider_failed(self, provider: ProviderId) -> None:
        self.provider_failures[provider.value] += 1

    def moderation_finished(self, ok: bool) -> None:
        if ok:
            self.moderations_succeeded += 1
        else:
            self.moderations_failed += 1

    def snapshot(self) -> dict:
        return {
            "uptime_sec": round(time.monotonic() - self.started_at, 3),
            "requests_started": self.requests_started,
            "requests_rejected": self.requests_rejected,
            "rounds_completed": self.rounds_completed,
            "moderations_succeeded": self.moderations_succeeded,
            "moderations_failed": self.moderations_failed,
            "provider_failures": dict(self.provider_failures),
        }
