"""
Fixtures for Regulatory Search service tests.
"""

from collections.abc import Callable
from typing import Any

import pytest

from services.regulatory_search.orchestrator import RegulatorySearchOrchestrator
from shared.config.settings import SearchSettings
from shared.llm import ModelUnavailable
from tests.services.regulatory_search.fakes import FakeEmbeddings, FakeLLM, FakeRetriever


@pytest.fixture
def search_config() -> SearchSettings:
    """Search settings without the readiness pause."""
    return SearchSettings(analyze_pause_ms=0)


@pytest.fixture
def fake_model_unavailable() -> ModelUnavailable:
    """A model backend failure, as raised by the LLM client."""
    return ModelUnavailable("bedrock API error: 503 - unavailable", status_code=503)


@pytest.fixture
def build_orchestrator(search_config: SearchSettings) -> Callable[..., RegulatorySearchOrchestrator]:
    """Assemble an orchestrator from fakes."""

    def build(
        llm: FakeLLM | None = None,
        embeddings: FakeEmbeddings | None = None,
        retriever: FakeRetriever | None = None,
        **config_overrides: Any,
    ) -> RegulatorySearchOrchestrator:
        config = search_config.model_copy(update=config_overrides) if config_overrides else search_config
        return RegulatorySearchOrchestrator(
            llm=llm or FakeLLM(),
            embeddings=embeddings or FakeEmbeddings(),
            retriever=retriever or FakeRetriever(),
            config=config,
        )

    return build
