"""Vector store interface and in-memory implementation."""

import asyncio
import math
import time
from abc import ABC, abstractmethod
from collections.abc import Sequence

from catalog_rag.exceptions import ErrorCode, VectorStoreError
from catalog_rag.logging_config import get_logger
from catalog_rag.observability.metrics import (
    track_vectorstore_operation,
    update_vectorstore_size,
)
from catalog_rag.vectorstore.models import SearchResult, VectorEntry

logger = get_logger(__name__)

EPSILON = 1e-12
MISMATCH_SCORE = -1.0


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors.

    Vectors of different length score -1.0 so they always rank last; a zero
    vector scores 0.0 instead of dividing by zero.
    """
    if len(a) != len(b):
        return MISMATCH_SCORE
    dot = sum(x * y for x, y in zip(a, b, strict=True))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    return dot / (norm_a * norm_b + EPSILON)


class VectorStore(ABC):
    """Abstract base class for vector stores.

    Defines the interface for storing and searching product vectors.
    """

    @abstractmethod
    async def replace(self, entries: list[VectorEntry]) -> int:
        """Make the store hold exactly ``entries``.

        Args:
            entries: New content.

        Returns:
            Number of entries stored.

        Raises:
            VectorStoreError: If the entries disagree on dimension.
        """
        ...

    @abstractmethod
    async def upsert(self, entries: list[VectorEntry]) -> int:
        """Merge entries by id; same id replaces, new ids are added.

        Args:
            entries: Entries to merge.

        Returns:
            Number of entries upserted.

        Raises:
            VectorStoreError: If an entry's dimension differs from the store's.
        """
        ...

    @abstractmethod
    async def search(self, vector: list[float], top_k: int = 5) -> list[SearchResult]:
        """Find the entries most similar to ``vector``.

        Args:
            vector: Query vector.
            top_k: Maximum results to return.

        Returns:
            Results sorted by descending similarity.
        """
        ...

    @abstractmethod
    async def count(self) -> int:
        """Number of stored entries."""
        ...

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Vector dimension shared by all entries."""
        ...

    async def replace_or_upsert(self, entries: list[VectorEntry], append: bool) -> int:
        """Upsert when ``append`` is set, otherwise replace."""
        if append:
            return await self.upsert(entries)
        return await self.replace(entries)


class InMemoryVectorStore(VectorStore):
    """Process-local vector store with exhaustive cosine search.

    Writes are serialized by a lock and publish a new mapping with a single
    assignment, so a concurrent search sees either the old or the new
    content, never a mix.
    """

    def __init__(self, default_dimensions: int = 1536) -> None:
        """Initialize an empty store.

        Args:
            default_dimensions: Dimension reported before anything is stored.
        """
        self._default_dimensions = default_dimensions
        self._entries: dict[str, VectorEntry] = {}
        self._dimensions: int | None = None
        self._write_lock = asyncio.Lock()

    @property
    def dimensions(self) -> int:
        """Dimension of stored vectors, or the default when empty."""
        if self._dimensions is not None:
            return self._dimensions
        return self._default_dimensions

    async def count(self) -> int:
        """Number of stored entries."""
        return len(self._entries)

    def snapshot(self) -> list[VectorEntry]:
        """Current entries in insertion order."""
        return list(self._entries.values())

    async def clear(self) -> None:
        """Drop all entries."""
        async with self._write_lock:
            self._publish({}, None)

    def _publish(self, entries: dict[str, VectorEntry], dims: int | None) -> None:
        self._entries = entries
        self._dimensions = dims
        update_vectorstore_size(len(entries))

    @staticmethod
    def _common_dimension(entries: list[VectorEntry], expected: int | None) -> int | None:
        dims = expected
        for entry in entries:
            if dims is None:
                dims = len(entry.vector)
            elif len(entry.vector) != dims:
                raise VectorStoreError(
                    f"Entry '{entry.id}' has {len(entry.vector)} dimensions, expected {dims}",
                    code=ErrorCode.EMBEDDING_DIMENSION_MISMATCH,
                    details={"id": entry.id, "expected": dims, "received": len(entry.vector)},
                )
        return dims

    async def replace(self, entries: list[VectorEntry]) -> int:
        """Replace the whole store content."""
        start_time = time.perf_counter()
        async with self._write_lock:
            dims = self._common_dimension(entries, None)
            new_entries = {entry.id: entry for entry in entries}
            self._publish(new_entries, dims)

        track_vectorstore_operation("replace", time.perf_counter() - start_time)
        logger.info(
            f"Replaced store content with {len(new_entries)} entries",
            extra={"dimensions": self.dimensions},
        )
        return len(new_entries)

    async def upsert(self, entries: list[VectorEntry]) -> int:
        """Merge entries into the store by id."""
        if not entries:
            return 0

        start_time = time.perf_counter()
        async with self._write_lock:
            dims = self._common_dimension(entries, self._dimensions)
            merged = dict(self._entries)
            for entry in entries:
                merged[entry.id] = entry
            self._publish(merged, dims)

        track_vectorstore_operation("upsert", time.perf_counter() - start_time)
        logger.info(
            f"Upserted {len(entries)} entries",
            extra={"store_size": len(merged)},
        )
        return len(entries)

    async def search(self, vector: list[float], top_k: int = 5) -> list[SearchResult]:
        """Exhaustive cosine search over the current snapshot.

        Ties keep insertion order. An empty store gives an empty list.
        """
        entries = self._entries
        if top_k <= 0 or not entries:
            return []

        start_time = time.perf_counter()
        scored = [
            SearchResult(id=entry.id, score=cosine_similarity(vector, entry.vector), entry=entry)
            for entry in entries.values()
        ]
        scored.sort(key=lambda result: result.score, reverse=True)
        track_vectorstore_operation("search", time.perf_counter() - start_time)

        return scored[:top_k]
