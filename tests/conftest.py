"""
Test Configuration
==================

Pytest fixtures for the regulatory search tests.
"""

import os
from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime
from typing import Any

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment before settings are loaded
os.environ["ENVIRONMENT"] = "testing"
os.environ.setdefault("AWS_REGION", "us-east-1")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "AKIDEXAMPLE")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY")
os.environ.setdefault("SEARCH_ANALYZE_PAUSE_MS", "0")

from shared.aws.sigv4 import AWSCredentials, SigV4Signer  # noqa: E402


FIXED_NOW = datetime(2024, 5, 1, 12, 30, 0, tzinfo=UTC)


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture
def credentials() -> AWSCredentials:
    """Static test credentials."""
    return AWSCredentials(
        access_key_id="AKIDEXAMPLE",
        secret_access_key="wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY",
    )


@pytest.fixture
def signer(credentials: AWSCredentials) -> SigV4Signer:
    """Signer bound to the test credentials."""
    return SigV4Signer(credentials, region="us-east-1")


@pytest.fixture
def recorded_requests() -> list[httpx.Request]:
    """Requests captured by mock transports."""
    return []


@pytest.fixture
def mock_transport(
    recorded_requests: list[httpx.Request],
) -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.MockTransport]:
    """Build an httpx.MockTransport that records each request."""

    def build(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.MockTransport:
        def recording_handler(request: httpx.Request) -> httpx.Response:
            recorded_requests.append(request)
            return handler(request)

        return httpx.MockTransport(recording_handler)

    return build


@pytest.fixture
def sample_hit() -> dict[str, Any]:
    """A raw OpenSearch hit."""
    return {
        "_id": "ich-q1a-3.2",
        "_score": 12.5,
        "_source": {
            "title": "ICH Q1A(R2) Stability Testing",
            "code": "Q1A",
            "source_type": "guideline",
            "ich_type": "quality",
            "original_text": "Stability testing should be conducted on at least three primary batches. " * 5,
            "contextualized_text": "Context: stability. Stability testing should be conducted...",
            "page_citation": "p. 7",
            "source_url": "https://database.ich.org/sites/default/files/Q1A.pdf",
            "header_path": "3 > 3.2 > 3.2.1",
        },
    }


@pytest_asyncio.fixture
async def regulatory_search_client() -> AsyncGenerator[AsyncClient, None]:
    """Create test client for Regulatory Search Service."""
    from services.regulatory_search.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()
