"""
Search Models
=============

Request, sub-query and source-hit models for the search pipeline.

Wire format uses camelCase keys; Python attributes stay snake_case.

Version: 0.1.0
"""

from enum import Enum

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class SearchRequest(CamelModel):
    """Inbound search request body."""

    model_config = ConfigDict(frozen=True)

    query: str = ""
    sources_only: bool = Field(
        default=False,
        validation_alias=AliasChoices("sourcesOnly", "sources_only"),
    )

    @field_validator("query", mode="before")
    @classmethod
    def null_query_is_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("sources_only", mode="before")
    @classmethod
    def null_flag_is_false(cls, v: Any) -> Any:
        return False if v is None else v


class SubQueryStatus(str, Enum):
    """Lifecycle of one sub-query."""

    PENDING = "pending"
    SEARCHING = "searching"
    COMPLETE = "complete"


class SubQuery(CamelModel):
    """One decomposed facet of the user question."""

    id: str
    query: str
    intent: str
    status: SubQueryStatus = SubQueryStatus.PENDING


class SourceHit(CamelModel):
    """A passage retrieved from the regulatory index."""

    id: str
    title: str = "Untitled"
    code: str = ""
    source_type: str = "doc"
    ich_type: str = ""
    snippet: str = ""
    full_text: str = ""
    relevance_score: float = 0.0
    page_citation: str = ""
    source_url: str = ""
    header_path: str = ""
