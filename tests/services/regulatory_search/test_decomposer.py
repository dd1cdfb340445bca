"""
Tests for query decomposition.
"""

import json

import pytest

from services.regulatory_search.decomposer import (
    MAIN_QUERY_INTENT,
    QueryDecomposer,
    extract_json_object,
    parse_decomposition,
)
from services.regulatory_search.errors import DecompositionUnavailable
from shared.llm import ModelUnavailable
from tests.services.regulatory_search.fakes import FakeLLM


class TestExtractJsonObject:
    """Tests for extract_json_object."""

    def test_plain_object(self) -> None:
        assert extract_json_object('{"a": 1}') == '{"a": 1}'

    def test_markdown_fence(self) -> None:
        text = 'Here you go:\n```json\n{"subQueries": [{"query": "q"}]}\n```\nHope this helps {sic'
        assert extract_json_object(text) == '{"subQueries": [{"query": "q"}]}'

    def test_braces_inside_strings(self) -> None:
        text = '{"query": "use {curly} braces \\" and }", "n": {"x": 1}} trailing }'
        assert extract_json_object(text) == '{"query": "use {curly} braces \\" and }", "n": {"x": 1}}'

    def test_first_of_several(self) -> None:
        assert extract_json_object('{"a": 1} {"b": 2}') == '{"a": 1}'

    def test_none_when_absent(self) -> None:
        assert extract_json_object("no json here") is None

    def test_none_when_unbalanced(self) -> None:
        assert extract_json_object('{"a": [1, 2') is None

    def test_skips_unbalanced_prefix(self) -> None:
        assert extract_json_object('{"a": {"b": 1}') == '{"b": 1}'


class TestParseDecomposition:
    """Tests for parse_decomposition."""

    def test_valid(self) -> None:
        sub_queries = parse_decomposition(
            '{"subQueries": [{"query": "ICH Q1A storage conditions", "intent": "conditions"}]}'
        )
        assert [(sq.query, sq.intent) for sq in sub_queries] == [("ICH Q1A storage conditions", "conditions")]

    def test_missing_intent_defaults(self) -> None:
        sub_queries = parse_decomposition('{"subQueries": [{"query": "q"}]}')
        assert sub_queries[0].intent == ""

    @pytest.mark.parametrize(
        "text",
        [
            "nothing",
            '{"subQueries": [}',
            '{"subQueries": []}',
            '{"other": []}',
            '{"subQueries": [{"intent": "no query"}]}',
            '{"subQueries": [{"query": "   "}]}',
        ],
    )
    def test_invalid(self, text: str) -> None:
        with pytest.raises(DecompositionUnavailable):
            parse_decomposition(text)


class TestQueryDecomposer:
    """Tests for QueryDecomposer."""

    @pytest.mark.asyncio
    async def test_decompose(self) -> None:
        completion = json.dumps(
            {
                "subQueries": [
                    {"query": "GCP monitoring responsibilities", "intent": "sponsor duties"},
                    {"query": "risk-based monitoring ICH E6(R3)", "intent": "current guidance"},
                ]
            }
        )
        llm = FakeLLM(completion=completion)

        sub_queries = await QueryDecomposer(llm).decompose("How should sponsors monitor trials?")

        assert [sq.intent for sq in sub_queries] == ["sponsor duties", "current guidance"]
        messages = llm.complete_calls[0]
        assert messages[0].role_name == "system"
        assert "valid JSON only" in messages[0].content
        assert 'Query: "How should sponsors monitor trials?"' in messages[1].content
        assert '{"subQueries": [{"query": "...", "intent": "..."}]}' in messages[1].content

    @pytest.mark.asyncio
    async def test_truncates_to_maximum(self) -> None:
        completion = json.dumps({"subQueries": [{"query": f"q{i}", "intent": "i"} for i in range(7)]})

        sub_queries = await QueryDecomposer(FakeLLM(completion=completion), max_sub_queries=4).decompose("question")

        assert [sq.query for sq in sub_queries] == ["q0", "q1", "q2", "q3"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "completion",
        [
            ModelUnavailable("bedrock API error: 503 - unavailable", status_code=503),
            "Sorry, I can't do that.",
            '{"subQueries": []}',
            '{"subQueries": "q1, q2"}',
        ],
    )
    async def test_fallback(self, completion) -> None:
        """Test that every failure degrades to the original query."""
        sub_queries = await QueryDecomposer(FakeLLM(completion=completion)).decompose("Annex 11 validation")

        assert len(sub_queries) == 1
        assert sub_queries[0].query == "Annex 11 validation"
        assert sub_queries[0].intent == MAIN_QUERY_INTENT

    @pytest.mark.asyncio
    async def test_unexpected_errors_propagate(self) -> None:
        with pytest.raises(RuntimeError):
            await QueryDecomposer(FakeLLM(completion=RuntimeError("bug"))).decompose("question")
