"""Tests for feed parsing and normalization."""

from unittest.mock import AsyncMock

import httpx
import pytest

from catalog_rag.exceptions import ErrorCode, FeedError, ValidationError
from catalog_rag.feeds.loader import FeedLoader
from catalog_rag.feeds.models import ProductRecord
from catalog_rag.feeds.normalizer import (
    extract_price,
    normalize_feed,
    resolve_items,
    to_text,
    validate_mapping,
)
from catalog_rag.feeds.parser import (
    FeedFormat,
    detect_format,
    parse_csv,
    parse_feed,
    parse_xml,
)
from catalog_rag.feeds.tree import TextNode, extract_path, is_valid_path

RSS_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss xmlns:g="http://base.google.com/ns/1.0" version="2.0">
  <channel>
    <title>Robocombo</title>
    <item>
      <g:id>1</g:id>
      <title><![CDATA[Drone A]]></title>
      <description>Compact camera drone</description>
      <g:price currency="TRY">2999 TRY</g:price>
      <link>https://shop.test/drone-a</link>
    </item>
    <item>
      <g:id>2</g:id>
      <title>Drone B</title>
      <description>Long range drone</description>
      <g:price currency="TRY">4999 TRY</g:price>
      <link>https://shop.test/drone-b</link>
    </item>
  </channel>
</rss>
"""

RSS_MAPPING = {
    "id": "g:id",
    "name": "title",
    "description": "description",
    "price": "g:price",
    "url": "link",
}


class TestExtractPath:
    """Tests for dotted-path lookup."""

    def test_nested_mapping(self) -> None:
        """Dotted segments walk nested mappings."""
        tree = {"rss": {"channel": {"title": "Shop"}}}
        assert extract_path(tree, "rss.channel.title") == "Shop"

    def test_missing_key_is_none(self) -> None:
        """A missing key gives None, not an error."""
        assert extract_path({"a": {"b": 1}}, "a.c") is None
        assert extract_path({"a": "text"}, "a.b") is None

    def test_list_index(self) -> None:
        """Numeric segments index into lists."""
        tree = {"items": [{"name": "first"}, {"name": "second"}]}
        assert extract_path(tree, "items.1.name") == "second"
        assert extract_path(tree, "items.5.name") is None
        assert extract_path(tree, "items.name") is None

    def test_text_node(self) -> None:
        """Text nodes expose #text and @attribute."""
        node = TextNode(text="2999", attributes={"currency": "TRY"})
        tree = {"price": node}
        assert extract_path(tree, "price") is node
        assert extract_path(tree, "price.#text") == "2999"
        assert extract_path(tree, "price.@currency") == "TRY"
        assert extract_path(tree, "price.@missing") is None

    def test_empty_segment_is_none(self) -> None:
        """A path with an empty segment resolves to None."""
        assert extract_path({"a": {"b": 1}}, "a..b") is None

    def test_is_valid_path(self) -> None:
        """Valid paths are non-blank with no empty segments."""
        assert is_valid_path("rss.channel.item")
        assert not is_valid_path("")
        assert not is_valid_path("   ")
        assert not is_valid_path(None)
        assert not is_valid_path("rss..item")
        assert not is_valid_path(".item")


class TestParseXML:
    """Tests for the XML parser."""

    def test_rss_structure(self) -> None:
        """Repeated items become a list under the channel."""
        tree = parse_xml(RSS_FEED)

        items = tree["rss"]["channel"]["item"]
        assert isinstance(items, list)
        assert len(items) == 2
        assert tree["rss"]["@version"] == "2.0"

    def test_cdata_is_plain_text(self) -> None:
        """CDATA content is returned as stripped text."""
        tree = parse_xml(RSS_FEED)
        assert tree["rss"]["channel"]["item"][0]["title"] == "Drone A"

    def test_namespace_prefix_kept(self) -> None:
        """Namespaced tags use the document prefix."""
        tree = parse_xml(RSS_FEED)
        item = tree["rss"]["channel"]["item"][0]
        assert item["g:id"] == "1"

    def test_attributes_wrap_text(self) -> None:
        """A leaf with attributes becomes a TextNode."""
        tree = parse_xml(RSS_FEED)
        price = tree["rss"]["channel"]["item"][0]["g:price"]
        assert price == TextNode(text="2999 TRY", attributes={"currency": "TRY"})

    def test_single_child_not_list(self) -> None:
        """A single child element stays a mapping."""
        tree = parse_xml("<products><product><name>X</name></product></products>")
        assert tree == {"products": {"product": {"name": "X"}}}

    def test_bytes_with_declared_encoding(self) -> None:
        """Bytes input honours the declared encoding."""
        content = '<?xml version="1.0" encoding="ISO-8859-9"?><p><n>Şapka</n></p>'.encode(
            "iso-8859-9"
        )
        assert parse_xml(content) == {"p": {"n": "Şapka"}}

    def test_malformed_xml(self) -> None:
        """Malformed XML raises a parse error."""
        with pytest.raises(FeedError) as exc_info:
            parse_xml("<rss><channel></rss>")
        assert exc_info.value.code == ErrorCode.FEED_PARSE_ERROR


class TestParseCSV:
    """Tests for the CSV parser."""

    def test_comma_rows(self) -> None:
        """Rows are keyed by header under 'rows'."""
        tree = parse_csv("id,name,price\n1,Drone A,2999 TRY\n2,Drone B,4999 TRY\n")
        assert tree["rows"] == [
            {"id": "1", "name": "Drone A", "price": "2999 TRY"},
            {"id": "2", "name": "Drone B", "price": "4999 TRY"},
        ]

    def test_semicolon_delimiter(self) -> None:
        """Semicolon-separated files are detected."""
        tree = parse_csv("id;name;price\n1;Drone A;2999\n2;Drone B;4999\n")
        assert tree["rows"][1]["name"] == "Drone B"

    def test_bom_stripped(self) -> None:
        """A leading byte order mark does not pollute the first header."""
        tree = parse_csv("\ufeffid,name\n7,Kit\n")
        assert tree["rows"] == [{"id": "7", "name": "Kit"}]


class TestDetectFormat:
    """Tests for feed format detection."""

    def test_content_type_csv(self) -> None:
        """CSV content type wins."""
        assert detect_format("id,name", content_type="text/csv") == FeedFormat.CSV

    def test_url_suffix_csv(self) -> None:
        """A .csv URL is CSV even with a query string."""
        assert detect_format("a,b", source="https://x.test/feed.csv?key=1") == FeedFormat.CSV

    def test_xml_by_content(self) -> None:
        """Markup content is XML."""
        assert detect_format("  <?xml version='1.0'?><rss/>") == FeedFormat.XML

    def test_parse_feed_explicit_format(self) -> None:
        """An explicit format skips detection."""
        tree = parse_feed("id,name\n1,A\n", feed_format=FeedFormat.CSV, content_type="text/xml")
        assert tree["rows"][0]["name"] == "A"


class TestNormalizerHelpers:
    """Tests for value conversion helpers."""

    def test_extract_price(self) -> None:
        """The first number is taken from a price string."""
        assert extract_price("2999 TRY") == "2999"
        assert extract_price("TRY 1.299,90") == "1.299"
        assert extract_price("12,50 TL") == "12,50"
        assert extract_price(TextNode(text="4999 TRY")) == "4999"
        assert extract_price("on request") == "on request"
        assert extract_price(None) == ""
        assert extract_price(15) == "15"

    def test_to_text(self) -> None:
        """Values render as display strings."""
        assert to_text("  Drone  ") == "Drone"
        assert to_text(TextNode(text="Wrapped")) == "Wrapped"
        assert to_text(["", "second"]) == "second"
        assert to_text({"nested": "x"}) == ""
        assert to_text(None) == ""
        assert to_text(42) == "42"


class TestValidateMapping:
    """Tests for mapping validation."""

    def test_empty_mapping(self) -> None:
        """An empty mapping is a bad request."""
        with pytest.raises(ValidationError):
            validate_mapping({})
        with pytest.raises(ValidationError):
            validate_mapping(None)

    def test_malformed_path(self) -> None:
        """A blank or broken path is a bad request."""
        with pytest.raises(ValidationError) as exc_info:
            validate_mapping({"name": "title..text"})
        assert exc_info.value.details["field"] == "name"

    def test_unknown_fields_ignored(self) -> None:
        """Keys that are not product fields are dropped."""
        assert validate_mapping({"name": "title", "colour": "c"}) == {"name": "title"}


class TestResolveItems:
    """Tests for item list lookup."""

    def test_missing_item_path(self) -> None:
        """A missing item path is a bad request."""
        with pytest.raises(ValidationError) as exc_info:
            resolve_items({"rows": []}, None)
        assert exc_info.value.message == "Item path is required"

    def test_single_item_wrapped(self) -> None:
        """A lone mapping is treated as one item."""
        assert resolve_items({"a": {"item": {"name": "X"}}}, "a.item") == [{"name": "X"}]

    def test_path_to_nothing(self) -> None:
        """A path that finds no items is a bad request naming the path."""
        with pytest.raises(ValidationError) as exc_info:
            resolve_items({"rss": {"channel": {}}}, "rss.channel.item")
        assert exc_info.value.details["path"] == "rss.channel.item"


class TestNormalizeFeed:
    """Tests for feed normalization."""

    def test_rss_feed(self) -> None:
        """RSS items map to product records in source order."""
        tree = parse_xml(RSS_FEED)

        result = normalize_feed(tree, "rss.channel.item", RSS_MAPPING)

        assert result.items_found == 2
        assert [r.id for r in result.records] == ["1", "2"]
        assert [r.price for r in result.records] == ["2999", "4999"]
        assert result.records[0].name == "Drone A"
        assert result.records[0].url == "https://shop.test/drone-a"

    def test_prices_from_plain_items(self) -> None:
        """Price strings are reduced to their number."""
        tree = {
            "items": [
                {"id": "1", "name": "Drone A", "price": "2999 TRY"},
                {"id": "2", "name": "Drone B", "price": "4999 TRY"},
            ]
        }

        result = normalize_feed(tree, "items", {"id": "id", "name": "name", "price": "price"})

        assert [r.price for r in result.records] == ["2999", "4999"]

    def test_generated_id(self) -> None:
        """Items without an id receive a unique one."""
        tree = {"items": [{"name": "A"}, {"name": "B"}]}

        result = normalize_feed(tree, "items", {"name": "name"})

        ids = [r.id for r in result.records]
        assert all(ids)
        assert ids[0] != ids[1]

    def test_skips_items_without_name_and_description(self) -> None:
        """Items lacking both name and description are skipped."""
        tree = {"items": [{"name": "A"}, {"price": "10"}, {"description": "Only text"}]}

        result = normalize_feed(
            tree, "items", {"name": "name", "description": "description", "price": "price"}
        )

        assert len(result.records) == 2
        assert result.skipped == 1

    def test_limit_applies_to_raw_items(self) -> None:
        """The limit bounds raw items, before skipping."""
        tree = {"items": [{"price": "1"}, {"name": "B"}, {"name": "C"}]}

        result = normalize_feed(tree, "items", {"name": "name", "price": "price"}, limit=2)

        assert [r.name for r in result.records] == ["B"]
        assert result.items_found == 3
        assert result.skipped == 1

    def test_invalid_limit(self) -> None:
        """A limit below one is a bad request."""
        with pytest.raises(ValidationError):
            normalize_feed({"items": []}, "items", {"name": "name"}, limit=0)

    def test_csv_rows(self) -> None:
        """CSV rows normalize through the 'rows' item path."""
        tree = parse_csv("sku,title,cost\nA1,Kit,19.90 USD\n")

        result = normalize_feed(tree, "rows", {"id": "sku", "name": "title", "price": "cost"})

        assert result.records == [ProductRecord(id="A1", name="Kit", price="19.90")]


class TestProductRecord:
    """Tests for ProductRecord text."""

    def test_text_is_deterministic(self) -> None:
        """Text joins populated fields in a fixed order."""
        record = ProductRecord(
            id="1",
            name="Drone A",
            description="Compact",
            brand="Acme",
            tags="drones",
            price="2999",
            url="https://shop.test/a",
        )
        assert record.text == (
            "Drone A\nCompact\nBrand: Acme\nTags: drones\nPrice: 2999\nURL: https://shop.test/a"
        )

    def test_text_skips_empty(self) -> None:
        """Empty fields leave no blank lines."""
        assert ProductRecord(id="1", name="Drone A", price="2999").text == (
            "Drone A\nPrice: 2999"
        )


class TestFeedLoader:
    """Tests for feed download."""

    async def test_load(self) -> None:
        """Loader returns body and content type."""
        response = httpx.Response(
            200,
            content=RSS_FEED.encode(),
            headers={"content-type": "application/rss+xml"},
            request=httpx.Request("GET", "https://shop.test/feed.xml"),
        )
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.get.return_value = response

        loader = FeedLoader(client=mock_client)
        document = await loader.load("https://shop.test/feed.xml")

        assert document.content_type == "application/rss+xml"
        assert document.content == RSS_FEED.encode()
        assert "Drone A" in document.text

    async def test_http_error(self) -> None:
        """A non-2xx response raises a download error."""
        response = httpx.Response(
            404, request=httpx.Request("GET", "https://shop.test/missing.xml")
        )
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.get.return_value = response

        loader = FeedLoader(client=mock_client)
        with pytest.raises(FeedError) as exc_info:
            await loader.load("https://shop.test/missing.xml")

        assert exc_info.value.code == ErrorCode.FEED_DOWNLOAD_ERROR
        assert exc_info.value.details["status_code"] == 404

    async def test_connection_error(self) -> None:
        """Network failures raise a download error."""
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.get.side_effect = httpx.ConnectError("refused")

        loader = FeedLoader(client=mock_client)
        with pytest.raises(FeedError):
            await loader.load("https://shop.test/feed.xml")
