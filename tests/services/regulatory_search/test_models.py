"""
Tests for request and event models.
"""

import pytest
from pydantic import ValidationError

from services.regulatory_search.models import (
    AnswerChunkEvent,
    SearchRequest,
    SourcesEvent,
    SubQueriesEvent,
    SubQueryStatus,
    SubQueryStatusEvent,
    parse_event,
    serialize_event,
)
from tests.services.regulatory_search.fakes import make_hit


class TestSearchRequest:
    """Tests for SearchRequest parsing."""

    def test_camel_case_flag(self) -> None:
        request = SearchRequest.model_validate({"query": "ICH E6", "sourcesOnly": True})
        assert request.sources_only is True

    def test_snake_case_flag(self) -> None:
        request = SearchRequest.model_validate({"query": "ICH E6", "sources_only": True})
        assert request.sources_only is True

    def test_defaults(self) -> None:
        request = SearchRequest.model_validate({})
        assert request.query == ""
        assert request.sources_only is False

    def test_null_values(self) -> None:
        request = SearchRequest.model_validate({"query": None, "sourcesOnly": None})
        assert request.query == ""
        assert request.sources_only is False

    def test_immutable(self) -> None:
        request = SearchRequest(query="ICH E6")
        with pytest.raises(ValidationError):
            request.query = "changed"


class TestParseEvent:
    """Tests for tagged-union event parsing."""

    def test_parse_by_type(self) -> None:
        event = parse_event('{"type": "answerChunk", "text": "Hello"}')
        assert isinstance(event, AnswerChunkEvent)
        assert event.text == "Hello"

    def test_unknown_fields_ignored(self) -> None:
        event = parse_event({"type": "subQueryStatus", "id": "sq-0", "status": "complete", "resultCount": 2, "extra": 1})
        assert isinstance(event, SubQueryStatusEvent)
        assert event.result_count == 2

    def test_missing_field_rejected(self) -> None:
        with pytest.raises(ValidationError):
            parse_event({"type": "error"})

    def test_unknown_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            parse_event({"type": "heartbeat"})

    def test_serialized_event_parses_back(self) -> None:
        original = SubQueriesEvent(sub_queries=[{"id": "sq-0", "query": "Q1A", "intent": "main query"}])
        parsed = parse_event(serialize_event(original))

        assert isinstance(parsed, SubQueriesEvent)
        assert parsed.sub_queries[0].status == SubQueryStatus.PENDING

    def test_sources_capped_at_eight(self) -> None:
        with pytest.raises(ValidationError):
            SourcesEvent(sources=[make_hit(f"h{i}", 0.1) for i in range(9)])
