"""Tests for retrieval module."""

from unittest.mock import AsyncMock

import pytest
from conftest import KeywordEmbeddingService, make_entry

from catalog_rag.exceptions import EmbeddingError, RetrievalError
from catalog_rag.retrieval.models import RetrievalResult
from catalog_rag.retrieval.retriever import SemanticRetriever
from catalog_rag.vectorstore.models import ProductMeta
from catalog_rag.vectorstore.service import InMemoryVectorStore


class TestRetrievalResult:
    """Tests for RetrievalResult model."""

    def test_create_result(self) -> None:
        """Result can be created."""
        result = RetrievalResult(
            id="1",
            score=0.9,
            product=ProductMeta(name="Drone A"),
            text="Drone A",
        )
        assert result.product.name == "Drone A"
        assert result.score == 0.9


class TestSemanticRetriever:
    """Tests for SemanticRetriever."""

    async def _store(self, embeddings: KeywordEmbeddingService) -> InMemoryVectorStore:
        store = InMemoryVectorStore()
        await store.replace(
            [
                make_entry("1", embeddings.vector("Drone A 2999"), "Drone A"),
                make_entry("2", embeddings.vector("Drone B 4999 premium"), "Drone B"),
            ]
        )
        return store

    async def test_retrieve_ranks_by_similarity(
        self, drone_embeddings: KeywordEmbeddingService
    ) -> None:
        """The most similar product comes first."""
        store = await self._store(drone_embeddings)
        retriever = SemanticRetriever(drone_embeddings, store)

        results = await retriever.retrieve("cheap drone under 3000", top_k=2)

        assert [r.id for r in results] == ["1", "2"]
        assert results[0].score > results[1].score
        assert results[0].product.name == "Drone A"

    async def test_top_k_limits_results(
        self, drone_embeddings: KeywordEmbeddingService
    ) -> None:
        """No more than top_k results are returned."""
        store = await self._store(drone_embeddings)
        retriever = SemanticRetriever(drone_embeddings, store)

        results = await retriever.retrieve("drone", top_k=1)

        assert len(results) == 1

    async def test_score_threshold(self, drone_embeddings: KeywordEmbeddingService) -> None:
        """Results under the threshold are dropped."""
        store = await self._store(drone_embeddings)
        retriever = SemanticRetriever(drone_embeddings, store, score_threshold=0.99)

        results = await retriever.retrieve("Drone A 2999", top_k=5)

        assert [r.id for r in results] == ["1"]

    async def test_blank_query(self, drone_embeddings: KeywordEmbeddingService) -> None:
        """A blank query returns nothing and embeds nothing."""
        store = await self._store(drone_embeddings)
        retriever = SemanticRetriever(drone_embeddings, store)

        assert await retriever.retrieve("   ") == []
        assert drone_embeddings.embedded == []

    async def test_embedding_error_propagates(self) -> None:
        """Embedding failures are raised unchanged."""
        embedding_service = AsyncMock()
        embedding_service.embed.side_effect = EmbeddingError("down")
        retriever = SemanticRetriever(embedding_service, InMemoryVectorStore())

        with pytest.raises(EmbeddingError):
            await retriever.retrieve("drone")

    async def test_unexpected_error_wrapped(
        self, drone_embeddings: KeywordEmbeddingService
    ) -> None:
        """Other failures become RetrievalError."""
        vector_store = AsyncMock()
        vector_store.search.side_effect = RuntimeError("boom")
        retriever = SemanticRetriever(drone_embeddings, vector_store)

        with pytest.raises(RetrievalError) as exc_info:
            await retriever.retrieve("drone")

        assert "boom" in exc_info.value.message
