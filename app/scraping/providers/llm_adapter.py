"""LLM adapters for product description enhancement.

Provides a base interface, an adapter for OpenAI-compatible chat completion
APIs and a deterministic mock for tests and offline runs.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from app.config import AIEnhancementSettings


class BaseLLMAdapter(ABC):
    """Abstract base for all LLM adapters."""

    @abstractmethod
    def generate(self, prompt: str) -> str:
        """Send a prompt to the LLM and return the response text.

        Args:
            prompt: The fully formatted prompt string.

        Returns:
            Plain text response from the model.
        """


class OpenAILLMAdapter(BaseLLMAdapter):
    """Adapter for OpenAI-compatible chat completion APIs."""

    def __init__(
        self,
        model: str = "gpt-3.5-turbo",
        max_tokens: int = 400,
        temperature: float = 0.7,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        """Initialise the OpenAI adapter.

        Args:
            model: Model identifier.
            max_tokens: Maximum tokens in the completion.
            temperature: Sampling temperature; descriptions favour some variety.
            api_key: API key for the endpoint.
            base_url: Optional base URL for OpenAI-compatible endpoints.
            timeout_seconds: Per-request timeout passed to the client.
        """
        from openai import OpenAI

        client_kwargs: dict = {"api_key": api_key, "max_retries": 1}
        if base_url:
            client_kwargs["base_url"] = base_url
        if timeout_seconds:
            client_kwargs["timeout"] = timeout_seconds

        self._client = OpenAI(**client_kwargs)
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    def generate(self, prompt: str) -> str:
        response = self._client.chat.completions.create(
            model=self._model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self._temperature,
            max_tokens=self._max_tokens,
            stream=False,
        )
        return (response.choices[0].message.content or "").strip()


MOCK_DESCRIPTION = (
    "A dependable everyday product with a practical design, quality materials "
    "and the key features shoppers look for."
)


class MockLLMAdapter(BaseLLMAdapter):
    """Deterministic adapter that returns a fixed description.

    Used for local testing and CI pipelines where no LLM API is available.
    """

    def __init__(self, response: str = MOCK_DESCRIPTION) -> None:
        self._response = response
        self.prompts: list[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self._response


def build_llm_adapter(settings: AIEnhancementSettings) -> BaseLLMAdapter | None:
    """Return the adapter selected by settings, or None when not configured."""
    if not settings.is_configured:
        return None
    if settings.adapter == "mock":
        return MockLLMAdapter()
    return OpenAILLMAdapter(
        model=settings.model,
        max_tokens=settings.max_tokens,
        temperature=settings.temperature,
        api_key=settings.api_key,
        base_url=settings.base_url,
        timeout_seconds=settings.timeout_seconds,
    )
