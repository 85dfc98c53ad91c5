"""Observability module for metrics and monitoring."""

from catalog_rag.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    track_embedding_request,
    track_ingestion,
    track_llm_fallback,
    track_llm_request,
    track_rag_query,
    track_retrieval_request,
)

__all__ = [
    "MetricsMiddleware",
    "get_metrics",
    "track_embedding_request",
    "track_ingestion",
    "track_llm_fallback",
    "track_llm_request",
    "track_rag_query",
    "track_retrieval_request",
]
