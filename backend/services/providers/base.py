"""
LLM Provider - abstract base class for remote text-generation APIs.

Providers wrap different LLM APIs behind a uniform async interface so the
chat and triage orchestrators can use either one. Providers make exactly
one attempt per call; pacing and retries belong to the request queue.
"""
from abc import ABC, abstractmethod
from typing import Dict, List


class LLMProvider(ABC):
    """Abstract async LLM provider interface."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Human-readable name (e.g. 'OpenAI', 'Gemini')."""
        ...

    @property
    @abstractmethod
    def model(self) -> str:
        ...

    @abstractmethod
    async def generate(
        self,
        messages: List[Dict[str, str]],
        max_tokens: int = 300,
        temperature: float = 0.7,
    ) -> str:
        """Generate a text response.

        Args:
            messages: [{"role": "system"|"user", "content": "..."}]
            max_tokens: Upper bound on generated tokens.
            temperature: Sampling temperature.

        Returns:
            The stripped text response.

        Raises:
            ExternalServiceError: upstream returned an error status or was
                unreachable (``status_code`` set when there was a response).
            LLMError: provider not configured, or the reply was empty.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources."""
        return None
