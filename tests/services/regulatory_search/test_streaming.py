"""
Tests for the event channel and SSE framing.
"""

import asyncio

import pytest

from services.regulatory_search.errors import TransportCancelled
from services.regulatory_search.models import (
    AnswerChunkEvent,
    DoneEvent,
    ErrorEvent,
    PipelineStep,
    SourcesEvent,
    StepEvent,
    StepStatus,
    SubQueryStatusEvent,
)
from services.regulatory_search.streaming import EventChannel, EventOrderError, sse_message
from tests.services.regulatory_search.fakes import make_hit


async def drain(channel: EventChannel) -> list:
    return [event async for event in channel]


class TestEventChannel:
    """Tests for EventChannel ordering rules."""

    @pytest.mark.asyncio
    async def test_delivers_in_order_and_stops_at_terminal(self) -> None:
        channel = EventChannel()
        await channel.emit(StepEvent(step=PipelineStep.ANALYZE, status=StepStatus.ACTIVE))
        await channel.emit(SourcesEvent(sources=[]))
        await channel.emit(DoneEvent())

        events = await drain(channel)

        assert [e.type for e in events] == ["step", "sources", "done"]
        assert channel.terminated

    @pytest.mark.asyncio
    async def test_nothing_after_terminal(self) -> None:
        channel = EventChannel()
        await channel.emit(ErrorEvent(message="Search failed"))

        with pytest.raises(EventOrderError):
            await channel.emit(DoneEvent())

    @pytest.mark.asyncio
    async def test_sources_at_most_once(self) -> None:
        channel = EventChannel()
        await channel.emit(SourcesEvent(sources=[]))

        with pytest.raises(EventOrderError, match="twice"):
            await channel.emit(SourcesEvent(sources=[]))

    @pytest.mark.asyncio
    async def test_answer_requires_sources(self) -> None:
        channel = EventChannel()

        with pytest.raises(EventOrderError, match="before sources"):
            await channel.emit(AnswerChunkEvent(text="too early"))

    @pytest.mark.asyncio
    async def test_emit_after_close_is_cancelled(self) -> None:
        channel = EventChannel()
        channel.close()

        with pytest.raises(TransportCancelled):
            await channel.emit(StepEvent(step=PipelineStep.SEARCH, status=StepStatus.ACTIVE))

    @pytest.mark.asyncio
    async def test_close_ends_iteration(self) -> None:
        channel = EventChannel()
        await channel.emit(StepEvent(step=PipelineStep.ANALYZE, status=StepStatus.ACTIVE))
        channel.close()

        events = await drain(channel)

        assert len(events) == 1
        assert channel.closed

    @pytest.mark.asyncio
    async def test_concurrent_emitters(self) -> None:
        """Test that concurrent writers never lose or duplicate events."""
        channel = EventChannel()

        async def writer(sub_query_id: str) -> None:
            for _ in range(10):
                await channel.emit(SubQueryStatusEvent(id=sub_query_id, status="searching"))
                await asyncio.sleep(0)

        await asyncio.gather(*(writer(f"sq-{i}") for i in range(4)))
        await channel.emit(DoneEvent())

        events = await drain(channel)
        assert len(events) == 41
        assert isinstance(events[-1], DoneEvent)


class TestSSEMessage:
    """Tests for SSE framing of events."""

    def test_step_event(self) -> None:
        message = sse_message(StepEvent(step=PipelineStep.ANALYZE, status=StepStatus.ACTIVE))
        assert message == 'data: {"type":"step","step":"analyze","status":"active"}\n\n'

    def test_omits_none_fields(self) -> None:
        message = sse_message(SubQueryStatusEvent(id="sq-0", status="searching"))
        assert message == 'data: {"type":"subQueryStatus","id":"sq-0","status":"searching"}\n\n'

    def test_camel_case_fields(self) -> None:
        message = sse_message(SubQueryStatusEvent(id="sq-1", status="complete", result_count=3))
        assert '"resultCount":3' in message

    def test_sources_keys(self) -> None:
        message = sse_message(SourcesEvent(sources=[make_hit("a", 0.5)]))
        for key in ("sourceType", "ichType", "fullText", "relevanceScore", "pageCitation", "sourceUrl", "headerPath"):
            assert f'"{key}"' in message

    def test_done(self) -> None:
        assert sse_message(DoneEvent()) == 'data: {"type":"done"}\n\n'
