"""
Regulatory Search Routes
========================

Streaming search endpoint. Each response is a ``text/event-stream`` of
JSON pipeline events, one ``data:`` message per event.

Version: 0.1.0
"""

import contextlib
import json
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from services.regulatory_search.dependencies import get_orchestrator
from services.regulatory_search.errors import MalformedRequest
from services.regulatory_search.models import ErrorEvent, SearchRequest
from services.regulatory_search.orchestrator import RegulatorySearchOrchestrator
from services.regulatory_search.streaming import sse_message
from shared.logging import get_logger


logger = get_logger(__name__)

router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "Access-Control-Allow-Origin": "*",
    "X-Accel-Buffering": "no",
}

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def parse_search_request(body: bytes) -> SearchRequest:
    """
    Decode the request body.

    An empty body is treated as a request without a query.

    Raises:
        MalformedRequest: If the body is not a JSON object of the expected shape
    """
    if not body.strip():
        return SearchRequest()

    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedRequest("Invalid request body") from e

    if not isinstance(data, dict):
        raise MalformedRequest("Invalid request body")

    try:
        return SearchRequest.model_validate(data)
    except ValidationError as e:
        raise MalformedRequest("Invalid request body") from e


async def _event_source(
    orchestrator: RegulatorySearchOrchestrator,
    search_request: SearchRequest,
) -> AsyncIterator[str]:
    events = orchestrator.stream(search_request)
    async with contextlib.aclosing(events):
        async for event in events:
            yield sse_message(event)


async def _single_error(message: str) -> AsyncIterator[str]:
    yield sse_message(ErrorEvent(message=message))


@router.post("/regulatory-search")
async def regulatory_search(
    request: Request,
    orchestrator: RegulatorySearchOrchestrator = Depends(get_orchestrator),
) -> StreamingResponse:
    """
    Search regulatory documents and stream a cited answer.

    Body: ``{"query": "...", "sourcesOnly": false}``. With ``sourcesOnly``
    the stream ends after the ``sources`` event.
    """
    body = await request.body()

    try:
        search_request = parse_search_request(body)
    except MalformedRequest as e:
        logger.warning("search_request_invalid", error=str(e), body_bytes=len(body))
        content = _single_error(str(e))
    else:
        content = _event_source(orchestrator, search_request)

    return StreamingResponse(
        content,
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.options("/regulatory-search")
async def regulatory_search_preflight() -> Response:
    """CORS preflight."""
    return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)
