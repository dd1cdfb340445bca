"""
Retrieval Module
================

Query embeddings and hybrid search over the regulatory index.
"""

from services.regulatory_search.retrieval.embeddings import (
    BaseEmbeddingProvider,
    BedrockTitanEmbeddings,
    EmbeddingProvider,
    OpenAIEmbeddings,
    get_embedding_provider,
)
from services.regulatory_search.retrieval.opensearch import OpenSearchClient, normalize_hit

__all__ = [
    "BaseEmbeddingProvider",
    "BedrockTitanEmbeddings",
    "EmbeddingProvider",
    "OpenAIEmbeddings",
    "OpenSearchClient",
    "get_embedding_provider",
    "normalize_hit",
]
