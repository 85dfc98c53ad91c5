"""FastAPI application entry point.

Configures the application with logging, services, exception handling,
metrics and health checks.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from catalog_rag import __version__
from catalog_rag.api.deps import ServiceContainer, build_services, get_services
from catalog_rag.api.routes import router
from catalog_rag.config import get_settings
from catalog_rag.exceptions import CatalogRAGError, ErrorCode, UpstreamError
from catalog_rag.logging_config import get_logger, setup_logging
from catalog_rag.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    get_metrics_content_type,
)

logger = get_logger(__name__)

_STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.PRECONDITION_FAILED: 409,
    ErrorCode.EMBEDDING_DIMENSION_MISMATCH: 409,
    ErrorCode.FEED_PARSE_ERROR: 422,
    ErrorCode.FEED_DOWNLOAD_ERROR: 502,
    ErrorCode.EMBEDDING_SERVICE_ERROR: 502,
    ErrorCode.EMBEDDING_BATCH_FAILED: 502,
    ErrorCode.LLM_SERVICE_ERROR: 502,
    ErrorCode.LLM_SERVER_ERROR: 502,
    ErrorCode.LLM_EMPTY_REPLY: 502,
    ErrorCode.LLM_UPSTREAM_FAILURE: 502,
    ErrorCode.LLM_RATE_LIMIT: 429,
    ErrorCode.LLM_TIMEOUT: 504,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Builds the shared services on startup and closes their HTTP clients on
    shutdown.
    """
    # Startup
    settings = get_settings()
    setup_logging(level=settings.log_level)
    logger.info(
        "Starting catalog RAG service",
        extra={
            "version": __version__,
            "environment": settings.environment.value,
        },
    )
    if getattr(app.state, "services", None) is None:
        app.state.services = build_services(settings)

    yield

    # Shutdown
    logger.info("Shutting down catalog RAG service")
    services: ServiceContainer | None = getattr(app.state, "services", None)
    if services is not None:
        await services.close()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Catalog RAG Service",
        description="Product feed ingestion and catalog question answering",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.add_middleware(MetricsMiddleware)

    # Register exception handlers
    app.add_exception_handler(CatalogRAGError, catalog_exception_handler)

    # Register routes
    app.add_api_route("/health", health_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/ready", readiness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/live", liveness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/metrics", metrics_endpoint, methods=["GET"], tags=["Observability"])
    app.include_router(router)

    return app


async def catalog_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle CatalogRAGError exceptions.

    Converts exceptions to structured JSON responses.
    """
    if not isinstance(exc, CatalogRAGError):
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": ErrorCode.INTERNAL_ERROR.value,
                    "message": str(exc),
                    "details": {},
                }
            },
        )

    status_code = get_status_code(exc)
    log = logger.warning if status_code < 500 else logger.error
    log(
        f"Request failed: {exc.message}",
        extra={
            "error_code": exc.code.value,
            "path": request.url.path,
            "status_code": status_code,
        },
    )

    return JSONResponse(
        status_code=status_code,
        content=exc.to_dict(),
    )


def get_status_code(exc: CatalogRAGError) -> int:
    """Map an application error to an HTTP status code.

    Upstream failures reuse the provider's error status when it was one.
    """
    if isinstance(exc, UpstreamError):
        upstream = exc.status_code
        if upstream is not None and 400 <= upstream <= 599:
            return upstream
        return 502
    return _STATUS_BY_CODE.get(exc.code, 500)


async def health_check() -> dict[str, Any]:
    """Basic health check endpoint.

    Returns:
        Health status with version and timestamp.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.now(UTC).isoformat(),
    }


async def readiness_check(request: Request) -> dict[str, Any]:
    """Kubernetes readiness probe.

    Reports whether services are wired and how many products are indexed.
    An empty store is still ready; queries answer 409 until a feed is ingested.

    Returns:
        Readiness status with component checks.
    """
    services = get_services(request)
    store_size = await services.vector_store.count()
    checks: dict[str, str] = {
        "config": "ok",
        "vector_store": "ok" if store_size > 0 else "empty",
    }

    return {
        "status": "ready",
        "checks": checks,
        "store_size": store_size,
        "timestamp": datetime.now(UTC).isoformat(),
    }


async def liveness_check() -> dict[str, str]:
    """Kubernetes liveness probe.

    Simple check that the service is running.

    Returns:
        Liveness status.
    """
    return {"status": "alive"}


async def metrics_endpoint() -> Response:
    """Prometheus scrape endpoint."""
    return Response(content=get_metrics(), media_type=get_metrics_content_type())


# Create the application instance
app = create_app()
