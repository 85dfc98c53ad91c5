"""RAG pipeline data models."""

from pydantic import BaseModel, Field


class SourceAttribution(BaseModel):
    """A product used as context for an answer.

    Attributes:
        id: Product identifier.
        name: Product name.
        url: Product page URL.
        price: Product price.
        score: Relevance score.
    """

    id: str = Field(description="Product identifier")
    name: str = Field(default="", description="Product name")
    url: str = Field(default="", description="Product page URL")
    price: str = Field(default="", description="Product price")
    score: float = Field(description="Relevance score")


class RAGQuery(BaseModel):
    """Input for RAG query.

    Attributes:
        question: The customer's question.
        top_k: Number of products to retrieve.
        score_threshold: Minimum relevance score, if any.
    """

    question: str = Field(description="Customer question")
    top_k: int = Field(default=5, ge=1, description="Products to retrieve")
    score_threshold: float | None = Field(
        default=None,
        ge=-1.0,
        le=1.0,
        description="Minimum relevance score",
    )


class RAGResponse(BaseModel):
    """Response from RAG query.

    Attributes:
        answer: Generated answer.
        sources: Source attributions in retrieval order.
        model: LLM model used.
        tokens_used: Total tokens consumed.
    """

    answer: str = Field(description="Generated answer")
    sources: list[SourceAttribution] = Field(
        default_factory=list,
        description="Source attributions",
    )
    model: str = Field(description="LLM model used")
    tokens_used: int = Field(default=0, description="Total tokens consumed")
