"""
Regulatory Search Service - Main Application
============================================

FastAPI application for streaming regulatory search and answer synthesis.

Version: 0.1.0
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from services.regulatory_search.dependencies import close_orchestrator
from services.regulatory_search.routes import search
from shared.config import settings
from shared.logging import get_logger, setup_logging
from shared.models.common import ErrorResponse, HealthResponse


SERVICE_NAME = "regulatory-search"
VERSION = "0.1.0"

# Setup logging
setup_logging(
    log_level=settings.log_level.value,
    json_logs=settings.is_production,
    service_name=SERVICE_NAME,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> Any:
    """Application lifespan manager."""
    logger.info(
        "regulatory_search_starting",
        environment=settings.environment.value,
        port=settings.ports.regulatory_search,
        llm_backend=settings.llm.backend.value,
        embedding_backend=settings.embedding.backend.value,
    )

    yield

    # Shutdown
    logger.info("regulatory_search_shutting_down")
    await close_orchestrator()


# Create FastAPI application
app = FastAPI(
    title="Regulatory Search Service",
    description="Hybrid retrieval over regulatory documents with streamed, cited answers",
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """
    Service health check.

    Reports the configured backends; upstream services are not called.
    """
    components: dict[str, dict[str, Any]] = {
        "llm": {
            "status": "healthy",
            "backend": settings.llm.backend.value,
        },
        "embeddings": {
            "status": "healthy",
            "backend": settings.embedding.backend.value,
            "dimensions": settings.embedding.dimensions,
        },
        "opensearch": {
            "status": "healthy",
            "index": settings.opensearch.index,
        },
    }

    return HealthResponse(
        status="healthy",
        service=SERVICE_NAME,
        version=VERSION,
        components=components,
    )


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": "Regulatory Search Service",
        "version": VERSION,
        "docs": "/docs",
    }


# ============================================================================
# Include Routers
# ============================================================================

app.include_router(
    search.router,
    prefix="/api",
    tags=["Search"],
)


# ============================================================================
# Error Handlers
# ============================================================================


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions."""
    logger.warning(
        "http_exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=str(exc.detail), status_code=exc.status_code).model_dump(mode="json"),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="Internal server error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        ).model_dump(mode="json"),
    )


# ============================================================================
# Run with Uvicorn
# ============================================================================


def main() -> None:
    import uvicorn

    uvicorn.run(
        "services.regulatory_search.main:app",
        host="0.0.0.0",
        port=settings.ports.regulatory_search,
        reload=settings.debug,
        log_level=settings.log_level.value.lower(),
    )


if __name__ == "__main__":
    main()
