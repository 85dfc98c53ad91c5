"""Retrieval pipeline module."""

from catalog_rag.retrieval.models import RetrievalResult
from catalog_rag.retrieval.retriever import Retriever, SemanticRetriever

__all__ = [
    "Retriever",
    "RetrievalResult",
    "SemanticRetriever",
]
