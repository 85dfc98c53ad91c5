"""Embedding service module."""

from catalog_rag.embeddings.models import BatchFailure, EmbeddingBatch, EmbeddingResult
from catalog_rag.embeddings.service import EmbeddingService, HTTPEmbeddingService

__all__ = [
    "BatchFailure",
    "EmbeddingBatch",
    "EmbeddingResult",
    "EmbeddingService",
    "HTTPEmbeddingService",
]
