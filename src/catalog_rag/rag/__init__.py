"""RAG pipeline module."""

from catalog_rag.rag.models import RAGQuery, RAGResponse, SourceAttribution
from catalog_rag.rag.pipeline import RAGPipeline

__all__ = [
    "RAGPipeline",
    "RAGQuery",
    "RAGResponse",
    "SourceAttribution",
]
