"""Embedding service interface and implementations."""

import time
from abc import ABC, abstractmethod

import httpx

from catalog_rag.config import EmbeddingSettings, get_settings
from catalog_rag.embeddings.models import BatchFailure, EmbeddingBatch, EmbeddingResult
from catalog_rag.exceptions import EmbeddingError, ErrorCode
from catalog_rag.logging_config import get_logger
from catalog_rag.observability.metrics import track_embedding_request

logger = get_logger(__name__)


class EmbeddingService(ABC):
    """Abstract base class for embedding services.

    Defines the interface for generating text embeddings.
    """

    @abstractmethod
    async def embed(self, text: str) -> EmbeddingResult:
        """Generate embedding for a single text.

        Args:
            text: Text to embed.

        Returns:
            EmbeddingResult with vector.

        Raises:
            EmbeddingError: If embedding fails.
        """
        ...

    @abstractmethod
    async def embed_batch(self, texts: list[str]) -> EmbeddingBatch:
        """Generate embeddings for many texts, batch by batch.

        A failed batch leaves ``None`` in place of its results; it never
        discards vectors from batches that succeeded.

        Args:
            texts: Texts to embed.

        Returns:
            EmbeddingBatch aligned with ``texts``.
        """
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Get the model name used for embeddings."""
        ...

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Get the embedding dimensions."""
        ...


class HTTPEmbeddingService(EmbeddingService):
    """Embedding service using an OpenAI-style ``/embeddings`` API."""

    def __init__(
        self,
        settings: EmbeddingSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the HTTP embedding service.

        Args:
            settings: Embedding configuration. Uses defaults if not provided.
            client: HTTP client. Creates new one if not provided.
        """
        self._settings = settings or get_settings().embedding
        self._client = client
        self._owns_client = client is None
        self._dimensions: int | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def model_name(self) -> str:
        """Get the model name."""
        return self._settings.model

    @property
    def dimensions(self) -> int:
        """Last observed dimension, or the configured default."""
        if self._dimensions is not None:
            return self._dimensions
        return self._settings.dimensions

    def _headers(self) -> dict[str, str]:
        api_key = self._settings.api_key.get_secret_value()
        if api_key and api_key != "not-required":
            return {"Authorization": f"Bearer {api_key}"}
        return {}

    async def embed(self, text: str) -> EmbeddingResult:
        """Generate embedding for a single text.

        Args:
            text: Text to embed.

        Returns:
            EmbeddingResult with vector.

        Raises:
            EmbeddingError: If embedding fails.
        """
        client = await self._get_client()
        url = f"{self._settings.base_url}/embeddings"
        results = await self._embed_batch_request(client, url, [text], expected_dims=None)
        return results[0]

    async def embed_batch(self, texts: list[str]) -> EmbeddingBatch:
        """Generate embeddings batch by batch.

        Batches run sequentially. The first successful batch fixes the
        dimension for the rest of the call; a later batch that disagrees is
        treated as failed.
        """
        if not texts:
            return EmbeddingBatch()

        client = await self._get_client()
        url = f"{self._settings.base_url}/embeddings"
        batch_size = self._settings.batch_size

        results: list[EmbeddingResult | None] = []
        failures: list[BatchFailure] = []
        dims: int | None = None

        for start in range(0, len(texts), batch_size):
            batch = texts[start : start + batch_size]
            try:
                batch_results = await self._embed_batch_request(
                    client, url, batch, expected_dims=dims
                )
            except EmbeddingError as e:
                logger.warning(
                    f"Skipping embedding batch: {e.message}",
                    extra={"batch_start": start, "batch_size": len(batch)},
                )
                failures.append(
                    BatchFailure(
                        start=start,
                        size=len(batch),
                        code=ErrorCode.EMBEDDING_BATCH_FAILED.value,
                        message=e.message,
                        status_code=e.details.get("status_code"),
                    )
                )
                results.extend([None] * len(batch))
                continue

            if dims is None and batch_results:
                dims = batch_results[0].dimensions
            results.extend(batch_results)

        if dims is not None:
            self._dimensions = dims

        return EmbeddingBatch(results=results, failures=failures, dimensions=dims)

    async def _embed_batch_request(
        self,
        client: httpx.AsyncClient,
        url: str,
        texts: list[str],
        expected_dims: int | None,
    ) -> list[EmbeddingResult]:
        """Make embedding request for a batch.

        Args:
            client: HTTP client.
            url: Embedding endpoint URL.
            texts: Batch of texts.
            expected_dims: Dimension every vector must have, if known.

        Returns:
            List of EmbeddingResult objects, one per text.

        Raises:
            EmbeddingError: If the request fails or the response is unusable.
        """
        payload = {
            "input": texts,
            "model": self._settings.model,
        }
        start_time = time.perf_counter()

        try:
            response = await client.post(url, json=payload, headers=self._headers())
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            track_embedding_request(
                self.model_name, time.perf_counter() - start_time, len(texts), success=False
            )
            logger.error(
                f"Embedding request failed: {e.response.status_code}",
                extra={"url": url, "status": e.response.status_code},
            )
            raise EmbeddingError(
                f"Embedding service returned {e.response.status_code}",
                code=ErrorCode.EMBEDDING_SERVICE_ERROR,
                details={"status_code": e.response.status_code},
            ) from e
        except httpx.RequestError as e:
            track_embedding_request(
                self.model_name, time.perf_counter() - start_time, len(texts), success=False
            )
            logger.error(
                f"Embedding request error: {e}",
                extra={"url": url},
            )
            raise EmbeddingError(
                f"Failed to connect to embedding service: {e}",
                code=ErrorCode.EMBEDDING_SERVICE_ERROR,
                details={"url": url},
            ) from e

        try:
            try:
                data = response.json()
            except ValueError as e:
                raise EmbeddingError(
                    f"Invalid JSON from embedding service: {e}",
                    code=ErrorCode.EMBEDDING_SERVICE_ERROR,
                ) from e
            results = self._parse_response(data, texts, expected_dims)
        except EmbeddingError:
            track_embedding_request(
                self.model_name, time.perf_counter() - start_time, len(texts), success=False
            )
            raise

        track_embedding_request(
            self.model_name, time.perf_counter() - start_time, len(texts), success=True
        )
        return results

    def _parse_response(
        self,
        data: object,
        texts: list[str],
        expected_dims: int | None,
    ) -> list[EmbeddingResult]:
        """Turn an ``{"data": [{"embedding": [...]}, ...]}`` body into results."""
        items = data.get("data") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise EmbeddingError(
                "Embedding response has no data array",
                code=ErrorCode.EMBEDDING_SERVICE_ERROR,
            )
        if len(items) != len(texts):
            raise EmbeddingError(
                f"Embedding response has {len(items)} vectors for {len(texts)} texts",
                code=ErrorCode.EMBEDDING_SERVICE_ERROR,
                details={"expected": len(texts), "received": len(items)},
            )

        if any(isinstance(item, dict) and "index" in item for item in items):
            indexes = [item.get("index") if isinstance(item, dict) else None for item in items]
            if not all(type(i) is int for i in indexes) or sorted(indexes) != list(
                range(len(texts))
            ):
                raise EmbeddingError(
                    "Embedding response indexes do not cover the batch",
                    code=ErrorCode.EMBEDDING_SERVICE_ERROR,
                    details={"indexes": indexes},
                )
            items = sorted(items, key=lambda item: item["index"])

        results: list[EmbeddingResult] = []
        dims = expected_dims
        for text, item in zip(texts, items, strict=True):
            embedding = item.get("embedding") if isinstance(item, dict) else None
            if not isinstance(embedding, list) or not embedding:
                raise EmbeddingError(
                    "Embedding response item has no vector",
                    code=ErrorCode.EMBEDDING_SERVICE_ERROR,
                )
            if dims is None:
                dims = len(embedding)
            elif len(embedding) != dims:
                raise EmbeddingError(
                    f"Embedding has {len(embedding)} dimensions, expected {dims}",
                    code=ErrorCode.EMBEDDING_DIMENSION_MISMATCH,
                    details={"expected": dims, "received": len(embedding)},
                )

            try:
                results.append(
                    EmbeddingResult(
                        text=text,
                        embedding=embedding,
                        model=self._settings.model,
                        dimensions=len(embedding),
                    )
                )
            except ValueError as e:
                raise EmbeddingError(
                    f"Invalid vector from embedding service: {e}",
                    code=ErrorCode.EMBEDDING_SERVICE_ERROR,
                    details={"error": str(e)},
                ) from e

        return results
