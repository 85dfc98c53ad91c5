"""Feed tree values and dotted-path lookup.

A parsed feed is a tree of plain Python values: mappings for elements with
children, lists for repeated elements, strings (or other scalars) for plain
text, and ``TextNode`` for text that arrived wrapped together with XML
attributes.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeAlias


@dataclass(frozen=True)
class TextNode:
    """Character data wrapped with the attributes of its element.

    ``<price currency="TRY">2999</price>`` parses to
    ``TextNode(text="2999", attributes={"currency": "TRY"})``.
    """

    text: str
    attributes: Mapping[str, str] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.text


FeedValue: TypeAlias = (
    "Mapping[str, FeedValue] | Sequence[FeedValue] | TextNode | str | int | float | bool | None"
)


def split_path(path: str) -> list[str]:
    """Split a dotted path into segments."""
    return path.split(".")


def is_valid_path(path: str | None) -> bool:
    """True when ``path`` is non-blank and has no empty segments."""
    if not path or not path.strip():
        return False
    return all(segment.strip() for segment in split_path(path.strip()))


def _step(current: Any, segment: str) -> Any:
    if isinstance(current, TextNode):
        if segment == "#text":
            return current.text
        if segment.startswith("@"):
            return current.attributes.get(segment[1:])
        return None
    if isinstance(current, Mapping):
        return current.get(segment)
    if isinstance(current, Sequence) and not isinstance(current, str):
        if segment.isdigit():
            index = int(segment)
            return current[index] if index < len(current) else None
        return None
    return None


def extract_path(tree: Any, path: str) -> Any:
    """Resolve a dotted path against a feed tree.

    Absence is a normal outcome: a missing key, an out-of-range index, an
    empty segment or a value that cannot be indexed all give ``None``.

    Args:
        tree: Parsed feed tree.
        path: Dot-delimited path such as ``"rss.channel.item"``.

    Returns:
        The value found, or None.
    """
    current = tree
    for segment in split_path(path.strip()):
        if not segment:
            return None
        current = _step(current, segment)
        if current is None:
            return None
    return current
