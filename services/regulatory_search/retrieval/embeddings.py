"""
Embeddings Module
=================

Query embeddings for vector search over the regulatory index.

Providers:
- Bedrock Titan (SigV4-signed)
- OpenAI-compatible (bearer token)

Version: 0.1.0
"""

import json
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

import httpx

from services.regulatory_search.errors import EmbeddingUnavailable
from shared.aws.sigv4 import SigV4Signer, model_invocation_paths
from shared.config import EmbeddingBackend, settings
from shared.logging import get_logger


logger = get_logger(__name__)


class EmbeddingProvider(str, Enum):
    """Supported embedding providers."""

    BEDROCK = "bedrock"
    OPENAI = "openai"


def validate_vector(value: Any, dimensions: int) -> list[float]:
    """
    Check a decoded vector field.

    Raises:
        EmbeddingUnavailable: If the value is not a numeric vector of the
            configured dimensionality
    """
    if not isinstance(value, list) or not value:
        raise EmbeddingUnavailable("response lacks an embedding vector")
    if len(value) != dimensions:
        raise EmbeddingUnavailable(f"expected {dimensions} dimensions, got {len(value)}")
    if not all(isinstance(v, int | float) for v in value):
        raise EmbeddingUnavailable("embedding vector contains non-numeric values")
    return [float(v) for v in value]


class BaseEmbeddingProvider(ABC):
    """Abstract base class for embedding providers."""

    def __init__(self, dimensions: int | None = None, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._dimensions = dimensions or settings.embedding.dimensions
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    @abstractmethod
    def provider_name(self) -> EmbeddingProvider:
        """Provider identifier."""
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Model identifier."""
        ...

    @property
    def dimensions(self) -> int:
        """Embedding dimensions."""
        return self._dimensions

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """
        Generate embedding for a single text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector

        Raises:
            EmbeddingUnavailable: On transport error, non-200 status or a
                response without the expected vector
        """
        ...

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None


class BedrockTitanEmbeddings(BaseEmbeddingProvider):
    """
    Amazon Titan text embeddings on Bedrock.

    Calls ``/model/{id}/invoke`` with a SigV4-signed request.
    """

    def __init__(
        self,
        model: str | None = None,
        signer: SigV4Signer | None = None,
        endpoint: str | None = None,
        dimensions: int | None = None,
        normalize: bool | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(dimensions=dimensions, transport=transport)
        self._model = model or settings.bedrock.embedding_model
        self._signer = signer or SigV4Signer()
        self._endpoint = (endpoint or settings.bedrock_endpoint).rstrip("/")
        self._normalize = settings.embedding.normalize if normalize is None else normalize

    @property
    def provider_name(self) -> EmbeddingProvider:
        return EmbeddingProvider.BEDROCK

    @property
    def model_name(self) -> str:
        return self._model

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(settings.embedding.timeout_seconds),
                transport=self._transport,
            )
        return self._client

    async def embed(self, text: str) -> list[float]:
        """Generate embedding for a single text."""
        body = json.dumps(
            {
                "inputText": text,
                "dimensions": self._dimensions,
                "normalize": self._normalize,
            }
        ).encode("utf-8")

        request_path, canonical_path = model_invocation_paths(self._model, "invoke")
        url = f"{self._endpoint}{request_path}"
        signed = self._signer.sign(
            "POST",
            url,
            body,
            settings.bedrock.service,
            canonical_path=canonical_path,
        )

        client = await self._get_client()
        try:
            response = await client.post(url, content=body, headers=signed.headers)
        except httpx.HTTPError as e:
            logger.error("titan_embedding_request_error", error=str(e), error_type=type(e).__name__)
            raise EmbeddingUnavailable(f"embedding request failed: {e}") from e

        if response.status_code != 200:
            logger.error("titan_embedding_error", status_code=response.status_code, body=response.text[:500])
            raise EmbeddingUnavailable(f"embedding request returned {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise EmbeddingUnavailable("embedding response is not JSON") from e

        embedding = validate_vector(data.get("embedding") if isinstance(data, dict) else None, self._dimensions)

        logger.debug(
            "titan_embedding_generated",
            model=self._model,
            dimensions=len(embedding),
        )
        return embedding


class OpenAIEmbeddings(BaseEmbeddingProvider):
    """
    OpenAI embeddings provider.

    Uses text-embedding-3-small or text-embedding-3-large with an explicit
    ``dimensions`` parameter so vectors match the index.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        dimensions: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(dimensions=dimensions, transport=transport)
        self._api_key = api_key or settings.openai.api_key.get_secret_value()
        self._model = model or settings.openai.embedding_model
        self._base_url = (base_url or settings.openai.base_url).rstrip("/")

        if not self._api_key:
            raise ValueError("OpenAI API key required for embeddings")

    @property
    def provider_name(self) -> EmbeddingProvider:
        return EmbeddingProvider.OPENAI

    @property
    def model_name(self) -> str:
        return self._model

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                timeout=httpx.Timeout(settings.embedding.timeout_seconds),
                transport=self._transport,
            )
        return self._client

    async def embed(self, text: str) -> list[float]:
        """Generate embedding for a single text."""
        client = await self._get_client()

        try:
            response = await client.post(
                "/embeddings",
                json={
                    "model": self._model,
                    "input": text[:30000],
                    "dimensions": self._dimensions,
                },
            )
        except httpx.HTTPError as e:
            logger.error("openai_embedding_request_error", error=str(e), error_type=type(e).__name__)
            raise EmbeddingUnavailable(f"embedding request failed: {e}") from e

        if response.status_code != 200:
            logger.error("openai_embedding_error", status_code=response.status_code, body=response.text[:500])
            raise EmbeddingUnavailable(f"embedding request returned {response.status_code}")

        try:
            vector = response.json()["data"][0]["embedding"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise EmbeddingUnavailable("embedding response lacks data[0].embedding") from e

        return validate_vector(vector, self._dimensions)


def get_embedding_provider() -> BaseEmbeddingProvider:
    """Build the embedding provider selected by settings.embedding.backend."""
    if settings.embedding.backend == EmbeddingBackend.OPENAI:
        return OpenAIEmbeddings()
    return BedrockTitanEmbeddings()
