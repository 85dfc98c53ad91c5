"""Feed and product data models."""

from pydantic import BaseModel, Field, computed_field

from catalog_rag.feeds.parser import FeedFormat

PRODUCT_FIELDS = ("id", "name", "description", "brand", "tags", "price", "url")


class ProductRecord(BaseModel):
    """A catalog entry normalized from one feed item.

    Attributes:
        id: Unique product identifier.
        name: Product name.
        description: Product description.
        brand: Brand or manufacturer.
        tags: Category or tag text.
        price: Extracted price string.
        url: Product page URL.
    """

    id: str = Field(description="Unique product identifier")
    name: str = Field(default="", description="Product name")
    description: str = Field(default="", description="Product description")
    brand: str = Field(default="", description="Brand or manufacturer")
    tags: str = Field(default="", description="Category or tag text")
    price: str = Field(default="", description="Extracted price")
    url: str = Field(default="", description="Product page URL")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def text(self) -> str:
        """Embedding input, derived from the other fields in a fixed order."""
        parts = [
            self.name,
            self.description,
            f"Brand: {self.brand}" if self.brand else "",
            f"Tags: {self.tags}" if self.tags else "",
            f"Price: {self.price}" if self.price else "",
            f"URL: {self.url}" if self.url else "",
        ]
        return "\n".join(part for part in parts if part)

    @property
    def is_embeddable(self) -> bool:
        """A record needs a name or a description to be worth embedding."""
        return bool(self.name or self.description)


class FeedSpec(BaseModel):
    """Where to fetch a feed and how to map its items.

    Fields are optional at the model level so that missing values surface
    as bad-request errors from the ingestion pipeline rather than schema
    errors.
    """

    url: str | None = Field(default=None, description="Feed URL")
    item_path: str | None = Field(
        default=None,
        description="Dotted path to the list of items, e.g. rss.channel.item",
    )
    mapping: dict[str, str] | None = Field(
        default=None,
        description="Logical field name to dotted path within one item",
    )
    limit: int | None = Field(
        default=None,
        ge=1,
        description="Maximum number of raw items to process",
    )
    append: bool = Field(
        default=False,
        description="Upsert into the store instead of replacing it",
    )
    format: FeedFormat = Field(
        default=FeedFormat.AUTO,
        description="Feed format; detected when auto",
    )


class NormalizedFeed(BaseModel):
    """Output of feed normalization.

    Attributes:
        records: Embeddable records in source order.
        items_found: Raw items at the item path, before the limit.
        skipped: Items dropped for lacking both name and description.
    """

    records: list[ProductRecord] = Field(default_factory=list)
    items_found: int = Field(default=0, description="Raw items before limit")
    skipped: int = Field(default=0, description="Items without name or description")
