"""
Bedrock Provider
================

AWS Bedrock runtime backend over plain HTTP.

Requests are SigV4-signed; streaming responses arrive as binary
event-stream frames and are decoded incrementally.

Version: 0.1.0
"""

import json
import time
from collections.abc import AsyncIterator
from typing import Any

import httpx

from shared.aws.eventstream import EventStreamDecoder, EventStreamError
from shared.aws.sigv4 import SigV4Signer, model_invocation_paths
from shared.config import settings
from shared.llm.provider import LLMMessage, LLMProvider, LLMResponse, ModelUnavailable
from shared.logging import get_logger

logger = get_logger(__name__)


def to_converse_messages(messages: list[LLMMessage]) -> tuple[list[dict[str, Any]], list[dict[str, str]]]:
    """
    Split messages into Converse API turns and system blocks.

    Returns:
        (messages, system) in Converse request format
    """
    turns: list[dict[str, Any]] = []
    system: list[dict[str, str]] = []

    for msg in messages:
        if msg.role_name == "system":
            system.append({"text": msg.content})
            continue
        role = "assistant" if msg.role_name == "assistant" else "user"
        turns.append({"role": role, "content": [{"text": msg.content}]})

    return turns, system


def delta_text(event_type: str, payload: Any) -> str:
    """Extract incremental text from a converse-stream event payload."""
    if not isinstance(payload, dict):
        return ""
    if "contentBlockDelta" in payload:
        payload = payload["contentBlockDelta"]
    elif event_type != "contentBlockDelta":
        return ""
    delta = payload.get("delta") if isinstance(payload, dict) else None
    if isinstance(delta, dict) and isinstance(delta.get("text"), str):
        return delta["text"]
    return ""


class BedrockProvider(LLMProvider):
    """
    Bedrock Converse API provider.

    Uses ``converse`` for one-shot completions and ``converse-stream`` for
    incremental answers.
    """

    def __init__(
        self,
        model: str | None = None,
        signer: SigV4Signer | None = None,
        endpoint: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize Bedrock provider.

        Args:
            model: Model id (default from settings)
            signer: Request signer (default from settings credentials)
            endpoint: Runtime endpoint (default derived from region)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        self._model = model or settings.bedrock.chat_model
        self._signer = signer or SigV4Signer()
        self._endpoint = (endpoint or settings.bedrock_endpoint).rstrip("/")
        self._timeout = timeout or settings.llm.timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

        logger.debug("bedrock_provider_initialized", model=self._model, endpoint=self._endpoint)

    @property
    def name(self) -> str:
        return "bedrock"

    @property
    def model(self) -> str:
        return self._model

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )
        return self._client

    def _build_body(
        self,
        messages: list[LLMMessage],
        temperature: float | None,
        max_tokens: int | None,
    ) -> bytes:
        turns, system = to_converse_messages(messages)
        body: dict[str, Any] = {
            "messages": turns,
            "inferenceConfig": {
                "maxTokens": max_tokens or settings.llm.answer_max_tokens,
                "temperature": temperature if temperature is not None else settings.llm.answer_temperature,
            },
        }
        if system:
            body["system"] = system
        return json.dumps(body).encode("utf-8")

    def _signed_request(self, action: str, body: bytes) -> tuple[str, dict[str, str]]:
        request_path, canonical_path = model_invocation_paths(self._model, action)
        url = f"{self._endpoint}{request_path}"
        signed = self._signer.sign(
            "POST",
            url,
            body,
            settings.bedrock.service,
            canonical_path=canonical_path,
        )
        return url, signed.headers

    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """
        Generate a completion with the Converse API.

        Raises:
            ModelUnavailable: On transport error, non-200 status or empty output
        """
        start_time = time.perf_counter()
        body = self._build_body(messages, temperature, max_tokens)
        url, headers = self._signed_request("converse", body)
        client = await self._get_client()

        try:
            response = await client.post(url, content=body, headers=headers)
        except httpx.HTTPError as e:
            logger.error("bedrock_request_error", error=str(e), error_type=type(e).__name__)
            raise ModelUnavailable(f"Bedrock request failed: {e}") from e

        if response.status_code != 200:
            logger.error("bedrock_error_response", status_code=response.status_code, body=response.text[:500])
            raise ModelUnavailable.from_status(self.name, response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as e:
            raise ModelUnavailable(f"Bedrock returned invalid JSON: {e}") from e

        blocks = data.get("output", {}).get("message", {}).get("content", []) or []
        content = "".join(block.get("text", "") for block in blocks if isinstance(block, dict))
        if not content:
            raise ModelUnavailable("Bedrock response contained no text")

        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.debug("bedrock_completion", model=self._model, latency_ms=round(latency_ms, 2))

        return LLMResponse(
            content=content,
            model=self._model,
            provider=self.name,
            finish_reason=data.get("stopReason"),
            latency_ms=latency_ms,
        )

    async def stream(
        self,
        messages: list[LLMMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        """
        Stream answer text from ``converse-stream``.

        Raises:
            ModelUnavailable: On transport error, non-200 status, an exception
                frame from the service, or lost framing
        """
        body = self._build_body(messages, temperature, max_tokens)
        url, headers = self._signed_request("converse-stream", body)
        client = await self._get_client()
        decoder = EventStreamDecoder()
        total_chars = 0

        try:
            async with client.stream("POST", url, content=body, headers=headers) as response:
                logger.debug("bedrock_stream_opened", status_code=response.status_code)

                if response.status_code != 200:
                    error_body = (await response.aread()).decode("utf-8", errors="replace")
                    logger.error("bedrock_error_response", status_code=response.status_code, body=error_body[:500])
                    raise ModelUnavailable.from_status(self.name, response.status_code, error_body)

                async for message in decoder.iter_messages(response.aiter_bytes()):
                    if message.is_exception:
                        detail = message.payload.get("message", "") if isinstance(message.payload, dict) else ""
                        exception_type = message.headers.get(":exception-type", message.event_type)
                        raise ModelUnavailable(f"Bedrock stream error: {exception_type} - {detail}")

                    text = delta_text(message.event_type, message.payload)
                    if text:
                        total_chars += len(text)
                        yield text
        except httpx.HTTPError as e:
            logger.error("bedrock_stream_error", error=str(e), error_type=type(e).__name__)
            raise ModelUnavailable(f"Bedrock request failed: {e}") from e
        except EventStreamError as e:
            logger.error("bedrock_stream_framing_lost", error=str(e))
            raise ModelUnavailable(f"Bedrock stream corrupted: {e}") from e

        logger.debug(
            "bedrock_stream_ended",
            chars=total_chars,
            dropped_frames=decoder.dropped_frames,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
