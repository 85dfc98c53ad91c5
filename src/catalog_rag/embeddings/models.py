"""Embedding data models."""

from pydantic import BaseModel, Field


class EmbeddingResult(BaseModel):
    """Result of an embedding operation.

    Attributes:
        text: The original text that was embedded.
        embedding: The embedding vector.
        model: The model used to generate the embedding.
        dimensions: Number of dimensions in the embedding.
    """

    text: str = Field(description="Original text")
    embedding: list[float] = Field(description="Embedding vector")
    model: str = Field(description="Model used for embedding")
    dimensions: int = Field(description="Vector dimensions")

    def model_post_init(self, __context: object) -> None:
        """Validate dimensions match embedding length."""
        if self.dimensions != len(self.embedding):
            raise ValueError(
                f"dimensions ({self.dimensions}) does not match "
                f"embedding length ({len(self.embedding)})"
            )


class BatchFailure(BaseModel):
    """One embedding batch that could not be embedded.

    Attributes:
        start: Index of the batch's first text in the input.
        size: Number of texts in the batch.
        code: Error code of the failure.
        message: Failure description.
        status_code: Upstream HTTP status, if any.
    """

    start: int = Field(description="Index of the first text in the batch")
    size: int = Field(description="Texts in the batch")
    code: str = Field(description="Error code")
    message: str = Field(description="Failure description")
    status_code: int | None = Field(default=None, description="Upstream HTTP status")


class EmbeddingBatch(BaseModel):
    """Embeddings for a sequence of texts, tolerant of failed batches.

    ``results`` lines up with the input texts; texts of a failed batch hold
    ``None``.
    """

    results: list[EmbeddingResult | None] = Field(default_factory=list)
    failures: list[BatchFailure] = Field(default_factory=list)
    dimensions: int | None = Field(default=None, description="Established dimension")

    @property
    def embedded_count(self) -> int:
        """Number of texts that received a vector."""
        return sum(1 for result in self.results if result is not None)
