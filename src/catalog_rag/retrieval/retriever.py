"""Retriever interface and implementations."""

from abc import ABC, abstractmethod

from catalog_rag.embeddings.service import EmbeddingService
from catalog_rag.exceptions import CatalogRAGError, ErrorCode, RetrievalError
from catalog_rag.logging_config import get_logger
from catalog_rag.observability.metrics import track_retrieval_request
from catalog_rag.retrieval.models import RetrievalResult
from catalog_rag.vectorstore.service import VectorStore

logger = get_logger(__name__)


class Retriever(ABC):
    """Abstract base class for retrievers.

    Defines the interface for retrieving relevant products.
    """

    @abstractmethod
    async def retrieve(
        self,
        query: str,
        top_k: int = 5,
    ) -> list[RetrievalResult]:
        """Retrieve relevant products for a query.

        Args:
            query: The search query.
            top_k: Maximum number of results to return.

        Returns:
            List of retrieval results ordered by relevance.

        Raises:
            RetrievalError: If retrieval fails.
        """
        ...


class SemanticRetriever(Retriever):
    """Semantic search retriever using embeddings and vector store.

    Embeds the query and finds similar vectors in the store.
    """

    def __init__(
        self,
        embedding_service: EmbeddingService,
        vector_store: VectorStore,
        score_threshold: float | None = None,
    ) -> None:
        """Initialize the semantic retriever.

        Args:
            embedding_service: Service for generating embeddings.
            vector_store: Vector store for similarity search.
            score_threshold: Minimum score to include in results; None keeps
                everything, including mismatched vectors.
        """
        self._embedding_service = embedding_service
        self._vector_store = vector_store
        self._score_threshold = score_threshold

    async def retrieve(
        self,
        query: str,
        top_k: int = 5,
    ) -> list[RetrievalResult]:
        """Retrieve products using semantic similarity.

        Args:
            query: The search query.
            top_k: Maximum number of results.

        Returns:
            List of relevant results.

        Raises:
            EmbeddingError: If the query cannot be embedded.
            RetrievalError: If the search fails unexpectedly.
        """
        if not query.strip():
            return []

        try:
            embedding_result = await self._embedding_service.embed(query)

            search_results = await self._vector_store.search(
                vector=embedding_result.embedding,
                top_k=top_k,
            )

            results = [
                RetrievalResult(
                    id=sr.id,
                    score=sr.score,
                    product=sr.entry.meta,
                    text=sr.entry.text,
                )
                for sr in search_results
                if self._score_threshold is None or sr.score >= self._score_threshold
            ]

        except CatalogRAGError:
            raise
        except Exception as e:
            logger.error(f"Retrieval failed: {e}")
            raise RetrievalError(
                f"Failed to retrieve products: {e}",
                code=ErrorCode.RETRIEVAL_ERROR,
                details={"query": query[:100], "error": str(e)},
            ) from e

        track_retrieval_request(
            results_returned=len(results),
            top_score=results[0].score if results else 0.0,
        )
        logger.debug(
            f"Retrieved {len(results)} results for query",
            extra={
                "query_length": len(query),
                "top_k": top_k,
                "results_count": len(results),
            },
        )

        return results
