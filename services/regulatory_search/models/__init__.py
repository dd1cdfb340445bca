"""
Regulatory Search Models
========================

Pydantic models for the search pipeline.

Models:
- SearchRequest, SubQuery, SourceHit
- Pipeline events (step, subQueries, subQueryStatus, sources,
  answerChunk, error, done)
"""

from services.regulatory_search.models.events import (
    TERMINAL_EVENTS,
    AnswerChunkEvent,
    DoneEvent,
    ErrorEvent,
    PipelineEvent,
    PipelineStep,
    SourcesEvent,
    StepEvent,
    StepStatus,
    SubQueriesEvent,
    SubQueryStatusEvent,
    parse_event,
    serialize_event,
)
from services.regulatory_search.models.search import (
    SearchRequest,
    SourceHit,
    SubQuery,
    SubQueryStatus,
)

__all__ = [
    # Search
    "SearchRequest",
    "SourceHit",
    "SubQuery",
    "SubQueryStatus",
    # Events
    "PipelineEvent",
    "PipelineStep",
    "StepStatus",
    "StepEvent",
    "SubQueriesEvent",
    "SubQueryStatusEvent",
    "SourcesEvent",
    "AnswerChunkEvent",
    "ErrorEvent",
    "DoneEvent",
    "TERMINAL_EVENTS",
    "parse_event",
    "serialize_event",
]
