"""
LLM Provider Base
=================

Message models, the backend contract and the process-wide backend accessor.

A deployment talks to exactly one chat backend, picked by ``LLM_BACKEND``.
Both backends expose the same two calls: a buffered ``complete`` used for
query decomposition and an incremental ``stream`` used for answer synthesis.

Version: 0.1.0
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

from shared.config import LLMBackend, settings
from shared.logging import get_logger

logger = get_logger(__name__)


class MessageRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class LLMMessage(BaseModel):
    """One turn of a chat prompt."""

    role: MessageRole | Literal["system", "user", "assistant"]
    content: str

    @property
    def role_name(self) -> str:
        return self.role.value if isinstance(self.role, MessageRole) else self.role

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role_name, "content": self.content}


class LLMResponse(BaseModel):
    """Buffered completion returned by ``LLMProvider.complete``."""

    content: str = Field(..., description="Generated text")
    model: str = Field(..., description="Model identifier that produced the text")
    provider: str = Field(..., description="Backend name")
    finish_reason: str | None = None
    latency_ms: float = 0.0


class ModelUnavailable(Exception):
    """A model call failed at the transport level or returned a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    @classmethod
    def from_status(cls, provider: str, status_code: int, body: str) -> "ModelUnavailable":
        return cls(f"{provider} API error: {status_code} - {body}", status_code=status_code, body=body)


class LLMProvider(ABC):
    """Contract shared by the Bedrock and OpenAI-compatible chat backends."""

    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def model(self) -> str: ...

    @abstractmethod
    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """
        Run the prompt to completion and return the whole reply.

        Raises:
            ModelUnavailable: On transport error or non-success status
        """

    @abstractmethod
    def stream(
        self,
        messages: list[LLMMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        """
        Yield reply text fragments as the backend produces them.

        Closing the iterator early aborts the HTTP response.

        Raises:
            ModelUnavailable: On transport error or non-success status
        """

    @abstractmethod
    async def close(self) -> None:
        """Release pooled connections."""

    async def stream_answer(
        self,
        messages: list[LLMMessage],
        on_chunk: Callable[[str], Any] | None = None,
        **kwargs: Any,
    ) -> str:
        """Drain ``stream``, handing each fragment to ``on_chunk``, and return the joined text."""
        parts: list[str] = []
        async for chunk in self.stream(messages, **kwargs):
            parts.append(chunk)
            if on_chunk is not None:
                on_chunk(chunk)
        return "".join(parts)


_provider: LLMProvider | None = None


def _build_provider(backend: LLMBackend) -> LLMProvider:
    if backend == LLMBackend.BEDROCK:
        from shared.llm.bedrock import BedrockProvider

        return BedrockProvider()
    if backend == LLMBackend.OPENAI:
        from shared.llm.openai import OpenAIProvider

        return OpenAIProvider()
    raise ValueError(f"Unknown LLM backend: {backend}")


def get_llm_provider() -> LLMProvider:
    """Return the backend selected by ``settings.llm.backend``, creating it on first use."""
    global _provider

    if _provider is None:
        _provider = _build_provider(settings.llm.backend)
        logger.info("llm_provider_initialized", provider=_provider.name, model=_provider.model)

    return _provider


async def reset_llm_provider() -> None:
    """Close the cached backend; the next ``get_llm_provider`` call rebuilds it."""
    global _provider
    if _provider is not None:
        await _provider.close()
    _provider = None
