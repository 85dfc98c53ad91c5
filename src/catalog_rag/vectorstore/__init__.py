"""Vector store module."""

from catalog_rag.vectorstore.models import ProductMeta, SearchResult, VectorEntry
from catalog_rag.vectorstore.service import (
    InMemoryVectorStore,
    VectorStore,
    cosine_similarity,
)

__all__ = [
    "InMemoryVectorStore",
    "ProductMeta",
    "SearchResult",
    "VectorEntry",
    "VectorStore",
    "cosine_similarity",
]
