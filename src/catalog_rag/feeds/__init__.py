"""Product feed loading, parsing and normalization."""

from catalog_rag.feeds.loader import FeedDocument, FeedLoader
from catalog_rag.feeds.models import FeedSpec, NormalizedFeed, ProductRecord
from catalog_rag.feeds.normalizer import normalize_feed
from catalog_rag.feeds.parser import FeedFormat, parse_csv, parse_feed, parse_xml
from catalog_rag.feeds.tree import TextNode, extract_path

__all__ = [
    "FeedDocument",
    "FeedFormat",
    "FeedLoader",
    "FeedSpec",
    "NormalizedFeed",
    "ProductRecord",
    "TextNode",
    "extract_path",
    "normalize_feed",
    "parse_csv",
    "parse_feed",
    "parse_xml",
]
