"""
Query Decomposer
================

Asks the model to split a regulatory question into 2-4 focused
sub-queries. Any failure falls back to the original question as a single
sub-query with intent "main query".

Version: 0.1.0
"""

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from services.regulatory_search.errors import DecompositionUnavailable
from services.regulatory_search.policies import DECOMPOSE_FALLBACK, FallbackPolicy
from shared.config import settings
from shared.llm import LLMMessage, LLMProvider
from shared.logging import get_logger


logger = get_logger(__name__)

MAIN_QUERY_INTENT = "main query"

DECOMPOSE_SYSTEM_PROMPT = (
    "You are a regulatory expert. Always respond with valid JSON only, no markdown or other formatting."
)

DECOMPOSE_USER_PROMPT = """You are a regulatory expert. Break down this query into 2-4 focused sub-queries for searching regulatory documents.

Query: "{query}"

Return ONLY a JSON object in this exact format (no other text):
{{"subQueries": [{{"query": "...", "intent": "..."}}]}}"""


class DecomposedQuery(BaseModel):
    """A sub-query as returned by the model."""

    model_config = ConfigDict(extra="ignore")

    query: str = Field(..., min_length=1)
    intent: str = ""

    @field_validator("query")
    @classmethod
    def strip_query(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("empty sub-query")
        return v


class DecompositionResult(BaseModel):
    """The model's JSON object."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    sub_queries: list[DecomposedQuery] = Field(..., alias="subQueries", min_length=1)


def extract_json_object(text: str) -> str | None:
    """
    Return the first balanced ``{...}`` substring of ``text``.

    Braces inside JSON string literals are ignored. Returns None when no
    complete object is present.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
            elif ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start : i + 1]
        # Unbalanced from this brace; try the next one.
        start = text.find("{", start + 1)
    return None


def parse_decomposition(text: str) -> list[DecomposedQuery]:
    """
    Parse model output into sub-queries.

    Raises:
        DecompositionUnavailable: If no valid ``subQueries`` list is found
    """
    candidate = extract_json_object(text)
    if candidate is None:
        raise DecompositionUnavailable("no JSON object in model output")

    try:
        data: Any = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise DecompositionUnavailable(f"invalid JSON in model output: {e}") from e

    try:
        result = DecompositionResult.model_validate(data)
    except ValidationError as e:
        raise DecompositionUnavailable(f"unexpected decomposition shape: {e.error_count()} errors") from e

    return result.sub_queries


class QueryDecomposer:
    """
    Splits a question into sub-queries using the configured model.

    Example:
        decomposer = QueryDecomposer(get_llm_provider())
        sub_queries = await decomposer.decompose("ICH Q1A stability requirements")
    """

    def __init__(
        self,
        provider: LLMProvider,
        max_sub_queries: int | None = None,
        policy: FallbackPolicy = DECOMPOSE_FALLBACK,
    ) -> None:
        self.provider = provider
        self.max_sub_queries = max_sub_queries or settings.search.max_sub_queries
        self.policy = policy

    def build_messages(self, query: str) -> list[LLMMessage]:
        return [
            LLMMessage(role="system", content=DECOMPOSE_SYSTEM_PROMPT),
            LLMMessage(role="user", content=DECOMPOSE_USER_PROMPT.format(query=query)),
        ]

    async def _decompose(self, query: str) -> list[DecomposedQuery]:
        response = await self.provider.complete(
            self.build_messages(query),
            temperature=settings.llm.decompose_temperature,
            max_tokens=settings.llm.decompose_max_tokens,
        )
        sub_queries = parse_decomposition(response.content)

        if len(sub_queries) > self.max_sub_queries:
            logger.info(
                "decomposition_truncated",
                returned=len(sub_queries),
                kept=self.max_sub_queries,
            )
            sub_queries = sub_queries[: self.max_sub_queries]
        return sub_queries

    async def decompose(self, query: str) -> list[DecomposedQuery]:
        """
        Decompose ``query``; never raises for model or parse failures.

        Returns:
            One to ``max_sub_queries`` sub-queries
        """
        sub_queries = await self.policy.run(
            lambda: self._decompose(query),
            lambda: [DecomposedQuery(query=query, intent=MAIN_QUERY_INTENT)],
            query=query[:100],
        )
        logger.info("query_decomposed", sub_queries=len(sub_queries))
        return sub_queries
