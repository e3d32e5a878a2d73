"""Abstract base for all AI model providers."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

DEFAULT_TIMEOUT_SEC = 120.0


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        self.message = message
        super().__init__(f"[{provider_name}] {message}")


class AIProvider(ABC):
    """Abstract base for all AI model providers."""

    @abstractmethod
    def name(self) -> str:
        """Return the short provider name (e.g. 'gpt', 'claude')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the actual model identifier string."""
        ...

    def timeout_sec(self) -> float:
        """Upper bound in seconds for one complete generation stream."""
        return DEFAULT_TIMEOUT_SEC

    @abstractmethod
    def generate(
        self,
        prompt: str,
        system_instruction: str,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        """Stream a response for the given prompt.

        Implementations are async generators. Each call issues a new request;
        the returned iterator is finite and cannot be restarted.

        Args:
            prompt: The full user prompt text.
            system_instruction: Persona and language requirements.
            max_tokens: Optional override of the configured output budget.

        Yields:
            Non-empty text fragments in the order the provider produced them.

        Raises:
            ProviderError: On API failure or when the stream yields no text.
        """
        ...
