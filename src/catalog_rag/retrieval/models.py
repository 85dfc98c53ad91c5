"""Retrieval data models."""

from pydantic import BaseModel, Field

from catalog_rag.vectorstore.models import ProductMeta


class RetrievalResult(BaseModel):
    """A product retrieved for a query.

    Attributes:
        id: Product identifier.
        score: Cosine similarity to the query (higher is more relevant).
        product: Display fields of the product.
        text: The text that was embedded for the product.
    """

    id: str = Field(description="Product identifier")
    score: float = Field(description="Relevance score")
    product: ProductMeta = Field(description="Product display fields")
    text: str = Field(default="", description="Embedded text")
