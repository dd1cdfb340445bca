"""
Fallback Policies
=================

Degrade-to-default behaviour for pipeline stages that must not fail the
whole run. A policy awaits an operation and, if it raises one of the
handled errors, logs the failure and returns a default instead.

Cancellation is never handled.

Version: 0.1.0
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import httpx

from services.regulatory_search.errors import (
    DecompositionUnavailable,
    EmbeddingUnavailable,
    ModelUnavailable,
    RetrievalUnavailable,
)
from shared.logging import get_logger


logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class FallbackPolicy:
    """Maps a stage's expected failures to a default result."""

    stage: str
    handles: tuple[type[Exception], ...]

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        default: Callable[[], T],
        **log_context: Any,
    ) -> T:
        """
        Await ``operation()``; on a handled error return ``default()``.

        Unhandled exceptions propagate unchanged.
        """
        try:
            return await operation()
        except self.handles as e:
            logger.warning(
                "search_stage_degraded",
                stage=self.stage,
                error=str(e),
                error_type=type(e).__name__,
                **log_context,
            )
            return default()


DECOMPOSE_FALLBACK = FallbackPolicy(
    stage="decompose",
    handles=(DecompositionUnavailable, ModelUnavailable, httpx.HTTPError),
)

RETRIEVAL_FALLBACK = FallbackPolicy(
    stage="search",
    handles=(EmbeddingUnavailable, RetrievalUnavailable, httpx.HTTPError),
)
