"""Prometheus metrics for the catalog RAG service.

Covers the HTTP surface, both upstream providers (chat completions and
embeddings), retrieval quality, feed ingestion and the in-memory index.
"""

import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

_FAST_BUCKETS = [0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
_UPSTREAM_BUCKETS = [0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 20.0, 30.0, 60.0]

# HTTP
HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "Time spent serving an HTTP request",
    ["method", "endpoint", "status_code"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)
HTTP_REQUEST_TOTAL = Counter(
    "http_requests_total",
    "HTTP requests served",
    ["method", "endpoint", "status_code"],
)

# Catalog questions
RAG_QUERY_DURATION = Histogram(
    "rag_query_duration_seconds",
    "End-to-end catalog question latency",
    ["status"],
    buckets=_UPSTREAM_BUCKETS,
)
RAG_QUERY_TOTAL = Counter("rag_queries_total", "Catalog questions answered", ["status"])

# Chat completions; one observation per attempt, retries included
LLM_REQUEST_DURATION = Histogram(
    "llm_request_duration_seconds",
    "Chat completion attempt latency",
    ["model", "status"],
    buckets=_UPSTREAM_BUCKETS,
)
LLM_REQUEST_TOTAL = Counter("llm_requests_total", "Chat completion attempts", ["model", "status"])
LLM_TOKENS_TOTAL = Counter("llm_tokens_total", "Tokens reported by the provider", ["model", "type"])
LLM_FALLBACK_TOTAL = Counter(
    "llm_fallbacks_total",
    "Candidate models given up on in favour of the next one",
    ["model"],
)

# Embeddings
EMBEDDING_REQUEST_DURATION = Histogram(
    "embedding_request_duration_seconds",
    "Embedding batch request latency",
    ["model", "status"],
    buckets=_UPSTREAM_BUCKETS,
)
EMBEDDING_REQUEST_TOTAL = Counter(
    "embedding_requests_total", "Embedding batch requests", ["model", "status"]
)
EMBEDDING_BATCH_SIZE = Histogram(
    "embedding_batch_size",
    "Texts per embedding request",
    ["model"],
    buckets=[1, 2, 4, 8, 16, 32, 64, 128],
)

# Retrieval
RETRIEVAL_RESULTS_RETURNED = Histogram(
    "retrieval_results_returned",
    "Products returned per search",
    buckets=[0, 1, 2, 3, 5, 10, 20],
)
RETRIEVAL_TOP_SCORE = Histogram(
    "retrieval_top_score",
    "Cosine similarity of the best match",
    buckets=[0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0],
)

# Ingestion and index
INGESTION_TOTAL = Counter("ingestions_total", "Feed ingestions", ["mode", "status"])
INGESTED_RECORDS_TOTAL = Counter(
    "ingested_records_total",
    "Feed records by outcome (processed, indexed, skipped)",
    ["outcome"],
)
VECTORSTORE_OPERATION_DURATION = Histogram(
    "vectorstore_operation_duration_seconds",
    "Vector store replace/upsert/search latency",
    ["operation", "status"],
    buckets=_FAST_BUCKETS,
)
VECTORSTORE_SIZE = Gauge("vectorstore_entries", "Products currently indexed")


def _status(success: bool) -> str:
    return "success" if success else "error"


class MetricsMiddleware(BaseHTTPMiddleware):
    """Records latency and count of every HTTP request except scrapes."""

    def __init__(self, app: ASGIApp) -> None:
        """Initialize the middleware."""
        super().__init__(app)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Time the request and label it by endpoint."""
        if request.url.path == "/metrics":
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        labels = {
            "method": request.method,
            "endpoint": self._normalize_endpoint(request.url.path),
            "status_code": response.status_code,
        }
        HTTP_REQUEST_DURATION.labels(**labels).observe(duration)
        HTTP_REQUEST_TOTAL.labels(**labels).inc()
        return response

    def _normalize_endpoint(self, path: str) -> str:
        """Collapse paths to a small label set: probes and first API segment."""
        if path.startswith("/health"):
            return "/health"
        parts = path.split("/")
        if path.startswith("/api/v1/") and len(parts) >= 4:
            return "/".join(parts[:4])
        return path


def get_metrics() -> bytes:
    """Render all metrics in the Prometheus text format."""
    return generate_latest()


def get_metrics_content_type() -> str:
    """Content type of ``get_metrics`` output."""
    return CONTENT_TYPE_LATEST


def track_llm_request(
    model: str,
    duration: float,
    prompt_tokens: int,
    completion_tokens: int,
    success: bool = True,
) -> None:
    """Record one chat completion attempt.

    Args:
        model: Candidate model the attempt went to.
        duration: Attempt duration in seconds.
        prompt_tokens: Prompt tokens reported by the provider.
        completion_tokens: Completion tokens reported by the provider.
        success: Whether the attempt produced a usable reply.
    """
    status = _status(success)
    LLM_REQUEST_DURATION.labels(model=model, status=status).observe(duration)
    LLM_REQUEST_TOTAL.labels(model=model, status=status).inc()
    if success:
        LLM_TOKENS_TOTAL.labels(model=model, type="prompt").inc(prompt_tokens)
        LLM_TOKENS_TOTAL.labels(model=model, type="completion").inc(completion_tokens)


def track_llm_fallback(model: str) -> None:
    """Record that ``model`` was abandoned for the next candidate."""
    LLM_FALLBACK_TOTAL.labels(model=model).inc()


def track_embedding_request(
    model: str,
    duration: float,
    batch_size: int,
    success: bool = True,
) -> None:
    """Record one embedding batch request."""
    status = _status(success)
    EMBEDDING_REQUEST_DURATION.labels(model=model, status=status).observe(duration)
    EMBEDDING_REQUEST_TOTAL.labels(model=model, status=status).inc()
    EMBEDDING_BATCH_SIZE.labels(model=model).observe(batch_size)


def track_retrieval_request(results_returned: int, top_score: float) -> None:
    """Record the size and best score of a search result.

    Args:
        results_returned: Products returned.
        top_score: Similarity of the first result; ignored when not positive.
    """
    RETRIEVAL_RESULTS_RETURNED.observe(results_returned)
    if top_score > 0:
        RETRIEVAL_TOP_SCORE.observe(top_score)


def track_rag_query(duration: float, success: bool = True) -> None:
    """Record an end-to-end catalog question."""
    status = _status(success)
    RAG_QUERY_DURATION.labels(status=status).observe(duration)
    RAG_QUERY_TOTAL.labels(status=status).inc()


def track_ingestion(
    mode: str,
    processed: int,
    indexed: int,
    skipped: int,
    success: bool = True,
) -> None:
    """Record a feed ingestion run.

    Args:
        mode: "replace" or "upsert".
        processed: Records that reached the embedding step.
        indexed: Records stored with a vector.
        skipped: Items dropped for lacking name and description.
        success: Whether the ingestion completed.
    """
    INGESTION_TOTAL.labels(mode=mode, status=_status(success)).inc()
    for outcome, count in (("processed", processed), ("indexed", indexed), ("skipped", skipped)):
        INGESTED_RECORDS_TOTAL.labels(outcome=outcome).inc(count)


def track_vectorstore_operation(operation: str, duration: float, success: bool = True) -> None:
    """Record the duration of a store operation."""
    VECTORSTORE_OPERATION_DURATION.labels(operation=operation, status=_status(success)).observe(
        duration
    )


def update_vectorstore_size(size: int) -> None:
    """Set the indexed products gauge."""
    VECTORSTORE_SIZE.set(size)
