"""
Pipeline Event Models
=====================

Tagged union of the events streamed to the caller, discriminated by
``type``. Unknown fields are ignored on parse; missing required fields
are rejected.

Version: 0.1.0
"""

from enum import Enum
from typing import Annotated, Literal

from pydantic import Field, TypeAdapter

from services.regulatory_search.models.search import CamelModel, SourceHit, SubQuery


class PipelineStep(str, Enum):
    """Pipeline stages reported to the caller."""

    ANALYZE = "analyze"
    DECOMPOSE = "decompose"
    SEARCH = "search"
    SYNTHESIZE = "synthesize"


class StepStatus(str, Enum):
    """Stage progress."""

    ACTIVE = "active"
    COMPLETE = "complete"


class StepEvent(CamelModel):
    type: Literal["step"] = "step"
    step: PipelineStep
    status: StepStatus


class SubQueriesEvent(CamelModel):
    type: Literal["subQueries"] = "subQueries"
    sub_queries: list[SubQuery]


class SubQueryStatusEvent(CamelModel):
    type: Literal["subQueryStatus"] = "subQueryStatus"
    id: str
    status: Literal["searching", "complete"]
    result_count: int | None = None


class SourcesEvent(CamelModel):
    type: Literal["sources"] = "sources"
    sources: list[SourceHit] = Field(max_length=8)


class AnswerChunkEvent(CamelModel):
    type: Literal["answerChunk"] = "answerChunk"
    text: str


class ErrorEvent(CamelModel):
    type: Literal["error"] = "error"
    message: str


class DoneEvent(CamelModel):
    type: Literal["done"] = "done"


PipelineEvent = Annotated[
    StepEvent
    | SubQueriesEvent
    | SubQueryStatusEvent
    | SourcesEvent
    | AnswerChunkEvent
    | ErrorEvent
    | DoneEvent,
    Field(discriminator="type"),
]

TERMINAL_EVENTS = (ErrorEvent, DoneEvent)

_event_adapter: TypeAdapter[PipelineEvent] = TypeAdapter(PipelineEvent)


def parse_event(data: str | bytes | dict) -> PipelineEvent:
    """
    Parse one event from JSON text or a decoded dict.

    Raises:
        pydantic.ValidationError: On unknown ``type`` or missing fields
    """
    if isinstance(data, dict):
        return _event_adapter.validate_python(data)
    return _event_adapter.validate_json(data)


def serialize_event(event: CamelModel) -> str:
    """Serialize an event to its wire JSON."""
    return event.model_dump_json(by_alias=True, exclude_none=True)
