"""
OpenAI Provider
===============

OpenAI-compatible chat completions backend over plain HTTP.

Authenticates with a bearer token and streams text SSE
(``data: <json>`` lines terminated by ``data: [DONE]``).

Version: 0.1.0
"""

import time
from collections.abc import AsyncIterator
from typing import Any

import httpx

from shared.config import settings
from shared.llm.provider import LLMMessage, LLMProvider, LLMResponse, ModelUnavailable
from shared.llm.sse import SSEDataDecoder
from shared.logging import get_logger


logger = get_logger(__name__)


def chunk_text(event: dict[str, Any]) -> str:
    """Extract incremental text from a chat completion chunk."""
    choices = event.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return ""
    delta = choices[0].get("delta") or {}
    content = delta.get("content") if isinstance(delta, dict) else None
    return content if isinstance(content, str) else ""


class OpenAIProvider(LLMProvider):
    """
    OpenAI-compatible chat completions provider.

    Works against any endpoint implementing ``/chat/completions`` with
    ``stream: true`` SSE output.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize OpenAI provider.

        Args:
            api_key: API key (default from settings)
            model: Model to use (default from settings)
            base_url: API base URL (default from settings)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        self._api_key = api_key or settings.openai.api_key.get_secret_value()
        self._model = model or settings.openai.chat_model
        self._base_url = (base_url or settings.openai.base_url).rstrip("/")
        self._timeout = timeout or settings.llm.timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

        if not self._api_key:
            raise ValueError("OpenAI API key not configured")

        logger.debug("openai_provider_initialized", model=self._model)

    @property
    def name(self) -> str:
        return "openai"

    @property
    def model(self) -> str:
        return self._model

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )
        return self._client

    def _build_body(
        self,
        messages: list[LLMMessage],
        temperature: float | None,
        max_tokens: int | None,
        stream: bool,
    ) -> dict[str, Any]:
        return {
            "model": self._model,
            "messages": [msg.to_dict() for msg in messages],
            "max_tokens": max_tokens or settings.llm.answer_max_tokens,
            "temperature": temperature if temperature is not None else settings.llm.answer_temperature,
            "stream": stream,
        }

    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """
        Generate a completion.

        Raises:
            ModelUnavailable: On transport error, non-200 status or empty output
        """
        start_time = time.perf_counter()
        client = await self._get_client()

        try:
            response = await client.post(
                "/chat/completions",
                json=self._build_body(messages, temperature, max_tokens, stream=False),
            )
        except httpx.HTTPError as e:
            logger.error("openai_request_error", error=str(e), error_type=type(e).__name__)
            raise ModelUnavailable(f"OpenAI request failed: {e}") from e

        if response.status_code != 200:
            logger.error("openai_error_response", status_code=response.status_code, body=response.text[:500])
            raise ModelUnavailable.from_status(self.name, response.status_code, response.text)

        try:
            data = response.json()
            choice = data["choices"][0]
            content = choice["message"]["content"] or ""
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ModelUnavailable(f"OpenAI response malformed: {e}") from e

        if not content:
            raise ModelUnavailable("OpenAI response contained no text")

        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.debug("openai_completion", model=self._model, latency_ms=round(latency_ms, 2))

        return LLMResponse(
            content=content,
            model=data.get("model", self._model),
            provider=self.name,
            finish_reason=choice.get("finish_reason"),
            latency_ms=latency_ms,
        )

    async def stream(
        self,
        messages: list[LLMMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        """
        Stream answer text from SSE chunks.

        Raises:
            ModelUnavailable: On transport error or non-200 status
        """
        client = await self._get_client()
        decoder = SSEDataDecoder()

        try:
            async with client.stream(
                "POST",
                "/chat/completions",
                json=self._build_body(messages, temperature, max_tokens, stream=True),
                headers={"Accept": "text/event-stream"},
            ) as response:
                if response.status_code != 200:
                    error_body = (await response.aread()).decode("utf-8", errors="replace")
                    logger.error("openai_error_response", status_code=response.status_code, body=error_body[:500])
                    raise ModelUnavailable.from_status(self.name, response.status_code, error_body)

                async for text in response.aiter_text():
                    for event in decoder.feed(text):
                        fragment = chunk_text(event)
                        if fragment:
                            yield fragment
                    if decoder.done:
                        break

                for event in decoder.flush():
                    fragment = chunk_text(event)
                    if fragment:
                        yield fragment
        except httpx.HTTPError as e:
            logger.error("openai_stream_error", error=str(e), error_type=type(e).__name__)
            raise ModelUnavailable(f"OpenAI request failed: {e}") from e

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
