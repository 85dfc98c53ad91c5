"""Feed normalization: heterogeneous feed items to ProductRecords."""

import re
from collections.abc import Mapping, Sequence
from typing import Any
from uuid import uuid4

from catalog_rag.exceptions import ValidationError
from catalog_rag.feeds.models import PRODUCT_FIELDS, NormalizedFeed, ProductRecord
from catalog_rag.feeds.tree import TextNode, extract_path, is_valid_path
from catalog_rag.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_LIMIT = 50

_PRICE_PATTERN = re.compile(r"\d+(?:[.,]\d+)?")


def unwrap(value: Any) -> Any:
    """Replace a wrapped text node with its plain text."""
    if isinstance(value, TextNode):
        return value.text
    return value


def to_text(value: Any) -> str:
    """Render a resolved feed value as a display string.

    Lists give their first non-empty entry; nested elements give "".
    """
    value = unwrap(value)
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, Mapping):
        return ""
    if isinstance(value, Sequence):
        for entry in value:
            text = to_text(entry)
            if text:
                return text
        return ""
    return str(value)


def extract_price(value: Any) -> str:
    """Pull the first number out of a price string.

    ``"2999 TRY"`` gives ``"2999"`` and ``"12,50 TL"`` gives ``"12,50"``.
    Strings without digits are kept as-is; non-string values are preserved.
    """
    value = unwrap(value)
    if value is None:
        return ""
    if isinstance(value, str):
        match = _PRICE_PATTERN.search(value)
        return match.group(0) if match else value.strip()
    if isinstance(value, Sequence | Mapping):
        return to_text(value)
    return str(value)


def validate_mapping(mapping: Mapping[str, str] | None) -> dict[str, str]:
    """Check the field mapping and drop keys that are not product fields.

    Raises:
        ValidationError: If the mapping is empty or holds a malformed path.
    """
    if not mapping:
        raise ValidationError(
            "Field mapping is required",
            details={"field": "mapping"},
        )

    usable: dict[str, str] = {}
    for field_name, path in mapping.items():
        if not isinstance(path, str) or not is_valid_path(path):
            raise ValidationError(
                f"Malformed path for field '{field_name}': {path!r}",
                details={"field": field_name, "path": path},
            )
        if field_name not in PRODUCT_FIELDS:
            logger.debug("Ignoring unknown mapping field", extra={"field": field_name})
            continue
        usable[field_name] = path.strip()
    return usable


def resolve_items(tree: Any, item_path: str | None) -> list[Any]:
    """Find the item list at ``item_path``; a single item becomes a list.

    Raises:
        ValidationError: If the path is missing, malformed, or does not lead
            to items.
    """
    if item_path is None or not is_valid_path(item_path):
        raise ValidationError(
            "Item path is required",
            details={"field": "item_path", "path": item_path},
        )
    items = extract_path(tree, item_path)
    if isinstance(items, list):
        return items
    if isinstance(items, Mapping):
        return [items]

    raise ValidationError(
        f"Item path '{item_path}' does not point to a list of items",
        details={
            "field": "item_path",
            "path": item_path,
            "found": type(items).__name__,
        },
    )


def normalize_item(item: Any, mapping: Mapping[str, str]) -> ProductRecord:
    """Build a ProductRecord from one raw feed item."""
    values: dict[str, str] = {}
    for field_name, path in mapping.items():
        raw = extract_path(item, path)
        if field_name == "price":
            values[field_name] = extract_price(raw)
        else:
            values[field_name] = to_text(raw)

    if not values.get("id"):
        values["id"] = uuid4().hex

    return ProductRecord(**values)


def normalize_feed(
    tree: Any,
    item_path: str | None,
    mapping: Mapping[str, str] | None,
    limit: int = DEFAULT_LIMIT,
) -> NormalizedFeed:
    """Convert a parsed feed into ProductRecords.

    The limit is applied to the raw items before normalization, so it bounds
    how many records can reach the embedding step.

    Args:
        tree: Parsed feed tree.
        item_path: Dotted path to the item list.
        mapping: Logical field name to dotted path within an item.
        limit: Maximum number of raw items to process.

    Returns:
        NormalizedFeed with records in source order.

    Raises:
        ValidationError: On a missing or malformed path or mapping.
    """
    fields = validate_mapping(mapping)
    items = resolve_items(tree, item_path)

    if limit < 1:
        raise ValidationError(
            "Limit must be at least 1",
            details={"field": "limit", "limit": limit},
        )

    records: list[ProductRecord] = []
    skipped = 0
    for item in items[:limit]:
        record = normalize_item(item, fields)
        if not record.is_embeddable:
            skipped += 1
            continue
        records.append(record)

    logger.info(
        "Normalized feed",
        extra={
            "items_found": len(items),
            "records": len(records),
            "skipped": skipped,
        },
    )

    return NormalizedFeed(records=records, items_found=len(items), skipped=skipped)
