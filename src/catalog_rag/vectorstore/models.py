"""Vector store data models."""

from pydantic import BaseModel, Field

from catalog_rag.feeds.models import ProductRecord


class ProductMeta(BaseModel):
    """Display fields of a product kept alongside its vector."""

    name: str = Field(default="", description="Product name")
    description: str = Field(default="", description="Product description")
    url: str = Field(default="", description="Product page URL")
    price: str = Field(default="", description="Extracted price")
    brand: str = Field(default="", description="Brand or manufacturer")
    tags: str = Field(default="", description="Category or tag text")

    @classmethod
    def from_record(cls, record: ProductRecord) -> "ProductMeta":
        """Copy the display subset of a product record."""
        return cls(
            name=record.name,
            description=record.description,
            url=record.url,
            price=record.price,
            brand=record.brand,
            tags=record.tags,
        )


class VectorEntry(BaseModel):
    """A product vector held by the store.

    Attributes:
        id: Product identifier, unique within the store.
        vector: The embedding vector.
        meta: Display fields of the product.
        text: The exact text that was embedded.
    """

    id: str = Field(description="Unique product identifier")
    vector: list[float] = Field(description="Embedding vector")
    meta: ProductMeta = Field(default_factory=ProductMeta, description="Display fields")
    text: str = Field(default="", description="Embedded text")


class SearchResult(BaseModel):
    """Result from a vector similarity search.

    Attributes:
        id: Entry identifier.
        score: Cosine similarity (higher is more similar).
        entry: The matching entry.
    """

    id: str = Field(description="Entry identifier")
    score: float = Field(description="Cosine similarity")
    entry: VectorEntry = Field(description="Matching entry")
