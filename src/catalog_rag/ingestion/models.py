"""Ingestion data models."""

from enum import Enum

from pydantic import BaseModel, Field

from catalog_rag.embeddings.models import BatchFailure
from catalog_rag.vectorstore.models import VectorEntry


class IngestMode(str, Enum):
    """How ingested entries are applied to the store."""

    REPLACE = "replace"
    UPSERT = "upsert"


class IngestSummary(BaseModel):
    """Counts reported for one ingestion.

    Attributes:
        source: Feed URL.
        mode: Replace or upsert.
        items_found: Raw items at the item path.
        processed: Records sent to the embedding step.
        skipped: Items dropped for lacking name and description.
        indexed: Records that received a vector.
        failed_batches: Embedding batches that were skipped.
        dimensions: Vector dimension of the indexed records.
        store_size: Entries in the store after applying the ingestion.
    """

    source: str = Field(description="Feed URL")
    mode: IngestMode = Field(description="Replace or upsert")
    items_found: int = Field(default=0, description="Raw items at the item path")
    processed: int = Field(default=0, description="Records sent to embedding")
    skipped: int = Field(default=0, description="Items without name or description")
    indexed: int = Field(default=0, description="Records with a vector")
    failed_batches: list[BatchFailure] = Field(
        default_factory=list,
        description="Embedding batches that failed",
    )
    dimensions: int | None = Field(default=None, description="Vector dimension")
    store_size: int | None = Field(default=None, description="Store size after ingestion")


class IngestResult(BaseModel):
    """Entries produced by normalization and embedding, not yet stored."""

    entries: list[VectorEntry] = Field(default_factory=list)
    summary: IngestSummary
