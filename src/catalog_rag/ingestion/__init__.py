"""Feed ingestion module."""

from catalog_rag.ingestion.models import IngestMode, IngestResult, IngestSummary
from catalog_rag.ingestion.pipeline import IngestionPipeline

__all__ = [
    "IngestMode",
    "IngestResult",
    "IngestSummary",
    "IngestionPipeline",
]
