"""XML and CSV feed parsers.

Both parsers produce a feed tree (see ``catalog_rag.feeds.tree``).

XML conversion rules:
- the document becomes ``{root_tag: <root value>}``
- an element with child elements becomes a dict; repeated child tags
  collapse into a list; attributes are stored under ``"@name"`` keys and
  non-blank mixed text under ``"#text"``
- a leaf element without attributes becomes its stripped text
- a leaf element with attributes becomes a ``TextNode``
- namespaced tags use the document's prefix, e.g. ``g:price``

CSV rows are returned as ``{"rows": [row, ...]}`` so that the same
``item_path`` mechanism applies (``item_path="rows"``).
"""

import csv
import io
import xml.etree.ElementTree as ET
from enum import Enum
from typing import Any

from catalog_rag.exceptions import ErrorCode, FeedError
from catalog_rag.feeds.tree import TextNode

CSV_ROWS_KEY = "rows"


class FeedFormat(str, Enum):
    """Supported feed formats."""

    AUTO = "auto"
    XML = "xml"
    CSV = "csv"


def _namespace_prefixes(content: str | bytes) -> dict[str, str]:
    parser = ET.XMLPullParser(events=("start-ns",))
    parser.feed(content)
    parser.close()
    prefixes: dict[str, str] = {}
    for _event, (prefix, uri) in parser.read_events():
        # First declaration wins; the default namespace maps to no prefix.
        prefixes.setdefault(uri, prefix)
    return prefixes


def _qualified(tag: str, prefixes: dict[str, str]) -> str:
    if not tag.startswith("{"):
        return tag
    uri, local = tag[1:].split("}", 1)
    prefix = prefixes.get(uri)
    return f"{prefix}:{local}" if prefix else local


def _convert(element: ET.Element, prefixes: dict[str, str]) -> Any:
    attributes = {
        f"@{_qualified(key, prefixes)}": value for key, value in element.attrib.items()
    }
    text = (element.text or "").strip()
    children = list(element)

    if not children:
        if attributes:
            return TextNode(
                text=text,
                attributes={key[1:]: value for key, value in attributes.items()},
            )
        return text

    node: dict[str, Any] = dict(attributes)
    for child in children:
        tag = _qualified(child.tag, prefixes)
        value = _convert(child, prefixes)
        if tag in node:
            existing = node[tag]
            if isinstance(existing, list):
                existing.append(value)
            else:
                node[tag] = [existing, value]
        else:
            node[tag] = value
    if text:
        node["#text"] = text
    return node


def parse_xml(content: str | bytes) -> dict[str, Any]:
    """Parse an XML document into a feed tree.

    Args:
        content: Raw XML.

    Returns:
        ``{root_tag: value}``.

    Raises:
        FeedError: If the XML is malformed.
    """
    try:
        prefixes = _namespace_prefixes(content)
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise FeedError(
            f"Failed to parse XML feed: {e}",
            code=ErrorCode.FEED_PARSE_ERROR,
            details={"format": FeedFormat.XML.value, "error": str(e)},
        ) from e

    return {_qualified(root.tag, prefixes): _convert(root, prefixes)}


def parse_csv(content: str) -> dict[str, Any]:
    """Parse a CSV document with a header row into a feed tree.

    The delimiter is sniffed among comma, semicolon, tab and pipe.

    Args:
        content: Raw CSV text.

    Returns:
        ``{"rows": [dict, ...]}``.

    Raises:
        FeedError: If the CSV cannot be read.
    """
    text = content.lstrip("\ufeff")
    try:
        dialect: type[csv.Dialect] | csv.Dialect = csv.Sniffer().sniff(
            text[:4096], delimiters=",;\t|"
        )
    except csv.Error:
        dialect = csv.excel

    try:
        reader = csv.DictReader(io.StringIO(text), dialect=dialect)
        rows = [
            {key.strip(): (value or "").strip() for key, value in row.items() if key}
            for row in reader
        ]
    except csv.Error as e:
        raise FeedError(
            f"Failed to parse CSV feed: {e}",
            code=ErrorCode.FEED_PARSE_ERROR,
            details={"format": FeedFormat.CSV.value, "error": str(e)},
        ) from e

    return {CSV_ROWS_KEY: rows}


def detect_format(content: str, content_type: str = "", source: str = "") -> FeedFormat:
    """Guess the feed format from content type, URL suffix and content."""
    content_type = content_type.lower()
    if "csv" in content_type or source.lower().split("?", 1)[0].endswith(".csv"):
        return FeedFormat.CSV
    if "xml" in content_type or content.lstrip("\ufeff \t\r\n").startswith("<"):
        return FeedFormat.XML
    return FeedFormat.CSV


def parse_feed(
    text: str,
    feed_format: FeedFormat = FeedFormat.AUTO,
    content_type: str = "",
    source: str = "",
    raw: bytes | None = None,
) -> dict[str, Any]:
    """Parse feed content into a tree, detecting the format when asked to.

    Args:
        text: Decoded feed body.
        feed_format: Explicit format, or AUTO to detect.
        content_type: Response content type, used for detection.
        source: Feed URL, used for detection.
        raw: Undecoded body; preferred for XML so the declared encoding
            is honoured.

    Returns:
        Feed tree.
    """
    if feed_format == FeedFormat.AUTO:
        feed_format = detect_format(text, content_type=content_type, source=source)
    if feed_format == FeedFormat.XML:
        return parse_xml(raw if raw is not None else text)
    return parse_csv(text)
