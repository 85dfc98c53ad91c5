"""Pytest configuration and shared fixtures."""

import math
from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from catalog_rag.api.app import app
from catalog_rag.embeddings.models import EmbeddingBatch, EmbeddingResult
from catalog_rag.embeddings.service import EmbeddingService
from catalog_rag.vectorstore.models import ProductMeta, VectorEntry


class KeywordEmbeddingService(EmbeddingService):
    """Deterministic embeddings: one dimension per keyword group plus a bias.

    A text scores one point in a dimension for every occurrence of any word
    in that group, which makes similarity rankings easy to reason about.
    """

    def __init__(self, groups: list[tuple[str, ...]]) -> None:
        self._groups = groups
        self.embedded: list[str] = []

    @property
    def model_name(self) -> str:
        return "keyword-test"

    @property
    def dimensions(self) -> int:
        return len(self._groups) + 1

    def vector(self, text: str) -> list[float]:
        lowered = text.lower()
        values = [float(sum(lowered.count(word) for word in group)) for group in self._groups]
        return [*values, 1.0]

    async def embed(self, text: str) -> EmbeddingResult:
        self.embedded.append(text)
        return EmbeddingResult(
            text=text,
            embedding=self.vector(text),
            model=self.model_name,
            dimensions=self.dimensions,
        )

    async def embed_batch(self, texts: list[str]) -> EmbeddingBatch:
        results = [await self.embed(text) for text in texts]
        return EmbeddingBatch(
            results=list(results),
            dimensions=self.dimensions if results else None,
        )


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_entry(entry_id: str, vector: list[float], name: str | None = None) -> VectorEntry:
    """Build a vector entry with minimal metadata."""
    return VectorEntry(
        id=entry_id,
        vector=vector,
        meta=ProductMeta(name=name or f"Product {entry_id}"),
        text=name or f"Product {entry_id}",
    )


def unit(vector: list[float]) -> list[float]:
    """Scale a vector to unit length."""
    norm = math.sqrt(sum(v * v for v in vector))
    return [v / norm for v in vector]


@pytest.fixture
def drone_embeddings() -> KeywordEmbeddingService:
    """Embedding fake that separates cheap and expensive drones."""
    return KeywordEmbeddingService(
        [
            ("drone",),
            ("2999", "3000", "under", "cheap"),
            ("4999", "premium"),
        ]
    )


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    """Sleep fake for backoff assertions."""
    return RecordingSleep()


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create async test client for FastAPI app.

    Yields:
        AsyncClient configured for testing.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
