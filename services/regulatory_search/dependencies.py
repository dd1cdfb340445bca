"""
Service Dependencies
====================

FastAPI dependency providers for the search pipeline.

Version: 0.1.0
"""

from services.regulatory_search.orchestrator import RegulatorySearchOrchestrator
from services.regulatory_search.retrieval import OpenSearchClient, get_embedding_provider
from shared.llm import get_llm_provider, reset_llm_provider
from shared.logging import get_logger


logger = get_logger(__name__)

_orchestrator: RegulatorySearchOrchestrator | None = None


def get_orchestrator() -> RegulatorySearchOrchestrator:
    """
    Get the shared orchestrator, building it on first use.

    Clients are pooled across requests; per-request state lives in each run.
    """
    global _orchestrator

    if _orchestrator is None:
        _orchestrator = RegulatorySearchOrchestrator(
            llm=get_llm_provider(),
            embeddings=get_embedding_provider(),
            retriever=OpenSearchClient(),
        )
        logger.info(
            "orchestrator_initialized",
            llm=_orchestrator.llm.name,
            embeddings=_orchestrator.embeddings.provider_name.value,
        )

    return _orchestrator


async def close_orchestrator() -> None:
    """Close pooled clients and drop the shared orchestrator."""
    global _orchestrator

    if _orchestrator is not None:
        await _orchestrator.close()
        _orchestrator = None
    await reset_llm_provider()
