"""Feed ingestion orchestrator."""

from catalog_rag.config import FeedSettings, get_settings
from catalog_rag.embeddings.service import EmbeddingService
from catalog_rag.exceptions import ValidationError
from catalog_rag.feeds.loader import FeedLoader
from catalog_rag.feeds.models import FeedSpec
from catalog_rag.feeds.normalizer import normalize_feed, validate_mapping
from catalog_rag.feeds.parser import parse_feed
from catalog_rag.feeds.tree import is_valid_path
from catalog_rag.ingestion.models import IngestMode, IngestResult, IngestSummary
from catalog_rag.logging_config import get_logger
from catalog_rag.observability.metrics import track_ingestion
from catalog_rag.vectorstore.models import ProductMeta, VectorEntry
from catalog_rag.vectorstore.service import VectorStore

logger = get_logger(__name__)


class IngestionPipeline:
    """Loads a product feed, embeds its records and stores the vectors.

    Flow: download → parse → normalize → embed (batched) → replace/upsert.
    """

    def __init__(
        self,
        loader: FeedLoader,
        embedding_service: EmbeddingService,
        vector_store: VectorStore,
        settings: FeedSettings | None = None,
    ) -> None:
        """Initialize the ingestion pipeline.

        Args:
            loader: Feed downloader.
            embedding_service: Service for generating embeddings.
            vector_store: Store receiving the vectors.
            settings: Feed configuration.
        """
        self._loader = loader
        self._embedding_service = embedding_service
        self._vector_store = vector_store
        self._settings = settings or get_settings().feed

    def _check_feed(self, spec: FeedSpec) -> int:
        """Validate feed fields before any network call; return the limit."""
        if not spec.url or not spec.url.strip():
            raise ValidationError("Feed URL is required", details={"field": "url"})
        if spec.item_path is None or not is_valid_path(spec.item_path):
            raise ValidationError(
                "Item path is required",
                details={"field": "item_path", "path": spec.item_path},
            )
        validate_mapping(spec.mapping)

        limit = spec.limit or self._settings.default_limit
        if limit > self._settings.max_limit:
            raise ValidationError(
                f"Limit may not exceed {self._settings.max_limit}",
                details={"field": "limit", "limit": limit},
            )
        return limit

    async def normalize_and_embed(self, spec: FeedSpec) -> IngestResult:
        """Turn a feed into vector entries without touching the store.

        Args:
            spec: Feed location and field mapping.

        Returns:
            IngestResult with entries and counts.

        Raises:
            ValidationError: On missing or malformed feed fields.
            FeedError: If the feed cannot be downloaded or parsed.
        """
        limit = self._check_feed(spec)
        url = spec.url.strip() if spec.url else ""
        mode = IngestMode.UPSERT if spec.append else IngestMode.REPLACE

        document = await self._loader.load(url)
        tree = parse_feed(
            document.text,
            feed_format=spec.format,
            content_type=document.content_type,
            source=url,
            raw=document.content,
        )
        normalized = normalize_feed(tree, spec.item_path, spec.mapping, limit=limit)
        records = normalized.records

        batch = await self._embedding_service.embed_batch([record.text for record in records])

        entries = [
            VectorEntry(
                id=record.id,
                vector=result.embedding,
                meta=ProductMeta.from_record(record),
                text=result.text,
            )
            for record, result in zip(records, batch.results, strict=True)
            if result is not None
        ]

        if batch.failures:
            logger.warning(
                f"{len(batch.failures)} embedding batches failed",
                extra={"source": url, "lost_records": len(records) - len(entries)},
            )

        summary = IngestSummary(
            source=url,
            mode=mode,
            items_found=normalized.items_found,
            processed=len(records),
            skipped=normalized.skipped,
            indexed=len(entries),
            failed_batches=batch.failures,
            dimensions=batch.dimensions,
        )
        return IngestResult(entries=entries, summary=summary)

    async def ingest(self, spec: FeedSpec) -> IngestSummary:
        """Ingest a feed and apply it to the store.

        With ``spec.append`` the entries are upserted, otherwise they replace
        the store content.

        Args:
            spec: Feed location, mapping and mode.

        Returns:
            IngestSummary including the resulting store size.
        """
        mode = IngestMode.UPSERT if spec.append else IngestMode.REPLACE
        try:
            result = await self.normalize_and_embed(spec)
            if mode is IngestMode.REPLACE and not result.entries:
                previous = await self._vector_store.count()
                if previous:
                    logger.error(
                        f"Replace with no indexed products empties the store, "
                        f"dropping {previous} entries",
                        extra={
                            "source": result.summary.source,
                            "dropped_entries": previous,
                            "failed_batches": len(result.summary.failed_batches),
                        },
                    )
            await self._vector_store.replace_or_upsert(result.entries, append=spec.append)
        except Exception:
            track_ingestion(mode.value, 0, 0, 0, success=False)
            raise

        summary = result.summary.model_copy(
            update={"store_size": await self._vector_store.count()}
        )
        track_ingestion(
            mode.value,
            processed=summary.processed,
            indexed=summary.indexed,
            skipped=summary.skipped,
        )
        logger.info(
            "Ingestion completed",
            extra={
                "source": summary.source,
                "mode": mode.value,
                "processed": summary.processed,
                "indexed": summary.indexed,
                "store_size": summary.store_size,
            },
        )
        return summary
