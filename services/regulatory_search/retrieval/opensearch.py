"""
OpenSearch Hybrid Retrieval
===========================

Hybrid (k-NN + keyword) search over the regulatory chunk index.

Requests are SigV4-signed for the OpenSearch Serverless (``aoss``)
service. Failures degrade to an empty result list.

Version: 0.1.0
"""

import json
import math
from typing import Any

import httpx

from services.regulatory_search.errors import RetrievalUnavailable
from services.regulatory_search.models import SourceHit
from shared.aws.sigv4 import SigV4Signer
from shared.config import settings
from shared.logging import get_logger


logger = get_logger(__name__)

SNIPPET_LENGTH = 200


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return str(value)


def _score(value: Any) -> float:
    try:
        score = float(value or 0.0)
    except (TypeError, ValueError):
        return 0.0
    return score if math.isfinite(score) else 0.0


def normalize_hit(hit: dict[str, Any]) -> SourceHit:
    """
    Convert a raw OpenSearch hit into a SourceHit.

    Title falls back through ``title``, ``full_name`` and ``section_title``;
    full text prefers ``original_text`` over ``contextualized_text``.
    """
    source = hit.get("_source")
    if not isinstance(source, dict):
        source = {}
    original_text = _text(source.get("original_text"))

    return SourceHit(
        id=_text(hit.get("_id")),
        title=_text(source.get("title"))
        or _text(source.get("full_name"))
        or _text(source.get("section_title"))
        or "Untitled",
        code=_text(source.get("code")),
        source_type=_text(source.get("source_type")) or "doc",
        ich_type=_text(source.get("ich_type")),
        snippet=original_text[:SNIPPET_LENGTH] + "...",
        full_text=original_text or _text(source.get("contextualized_text")),
        relevance_score=_score(hit.get("_score")),
        page_citation=_text(source.get("page_citation")),
        source_url=_text(source.get("source_url")),
        header_path=_text(source.get("header_path")),
    )


class OpenSearchClient:
    """
    Signed HTTP client for the hybrid search query.

    Example:
        client = OpenSearchClient()
        hits = await client.search("stability testing", vector, size_hint=5)
    """

    def __init__(
        self,
        search_url: str | None = None,
        signer: SigV4Signer | None = None,
        vector_field: str | None = None,
        text_fields: list[str] | None = None,
        keyword_boost: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        config = settings.opensearch
        self.search_url = search_url or config.search_url
        self.vector_field = vector_field or config.vector_field
        self.text_fields = text_fields or list(config.text_fields)
        self.keyword_boost = config.keyword_boost if keyword_boost is None else keyword_boost
        self._signer = signer or SigV4Signer()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(settings.opensearch.timeout_seconds),
                transport=self._transport,
            )
        return self._client

    def build_query(self, query_text: str, query_vector: list[float], size_hint: int) -> dict[str, Any]:
        """Build the hybrid query body."""
        return {
            "size": size_hint * 3,
            "query": {
                "bool": {
                    "should": [
                        {
                            "knn": {
                                self.vector_field: {
                                    "vector": query_vector,
                                    "k": size_hint * 5,
                                }
                            }
                        },
                        {
                            "multi_match": {
                                "query": query_text,
                                "fields": self.text_fields,
                                "boost": self.keyword_boost,
                            }
                        },
                    ]
                }
            },
            "_source": {"excludes": [self.vector_field]},
        }

    async def execute(self, body: dict[str, Any]) -> list[dict[str, Any]]:
        """
        Send a query and return the raw hits.

        Raises:
            RetrievalUnavailable: On transport error, non-2xx status or an
                undecodable response
        """
        payload = json.dumps(body).encode("utf-8")
        signed = self._signer.sign("POST", self.search_url, payload, settings.opensearch.service)

        client = await self._get_client()
        try:
            response = await client.post(self.search_url, content=payload, headers=signed.headers)
        except httpx.HTTPError as e:
            raise RetrievalUnavailable(f"OpenSearch request failed: {e}") from e

        if not response.is_success:
            raise RetrievalUnavailable(f"OpenSearch error: {response.status_code} - {response.text[:500]}")

        try:
            data = response.json()
        except ValueError as e:
            raise RetrievalUnavailable("OpenSearch response is not JSON") from e

        hits = (data.get("hits") or {}).get("hits") if isinstance(data, dict) else None
        return hits if isinstance(hits, list) else []

    async def fetch(self, query_text: str, query_vector: list[float], size_hint: int = 5) -> list[SourceHit]:
        """
        Run the hybrid query and normalize the hits.

        Raises:
            RetrievalUnavailable: If the index cannot be queried
        """
        raw_hits = await self.execute(self.build_query(query_text, query_vector, size_hint))
        hits = [normalize_hit(hit) for hit in raw_hits if isinstance(hit, dict)]
        logger.debug("opensearch_search_complete", query=query_text[:100], hits=len(hits))
        return hits

    async def search(self, query_text: str, query_vector: list[float], size_hint: int = 5) -> list[SourceHit]:
        """
        Run the hybrid query.

        Returns:
            Normalized hits in index order; empty on any retrieval failure
        """
        try:
            return await self.fetch(query_text, query_vector, size_hint)
        except RetrievalUnavailable as e:
            logger.error("opensearch_error", error=str(e), query=query_text[:100])
            return []

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
