"""Parsed markup node types.

Block nodes form the top-level sequence of a document; inline nodes live in
their ``content`` tuples. All nodes are frozen: resolution results are kept
beside the tree, keyed by the ``ref`` of each Link/IndexMarker.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional, Tuple, Union


@dataclass(frozen=True)
class Text:
    text: str


@dataclass(frozen=True)
class FormattedSpan:
    style: str  # bold | italic | code
    content: Tuple["Inline", ...]


@dataclass(frozen=True)
class Link:
    content: Tuple["Inline", ...]
    target: str
    ref: int


@dataclass(frozen=True)
class IndexMarker:
    content: Tuple["Inline", ...]
    keys: Tuple[str, ...]
    ref: int


Inline = Union[Text, FormattedSpan, Link, IndexMarker]

STYLES = frozenset({"bold", "italic", "code"})


@dataclass(frozen=True)
class Heading:
    level: int
    content: Tuple[Inline, ...]
    line: int


@dataclass(frozen=True)
class Paragraph:
    content: Tuple[Inline, ...]
    line: int
    role: Optional[str] = None


@dataclass(frozen=True)
class CodeBlock:
    text: str
    line: int
    language: Optional[str] = None
    hints: Tuple[Tuple[str, str], ...] = ()

    def hint(self, name: str) -> Optional[str]:
        for key, value in self.hints:
            if key == name:
                return value
        return None


@dataclass(frozen=True)
class ListItem:
    level: int
    content: Tuple[Inline, ...]
    line: int


@dataclass(frozen=True)
class List:
    items: Tuple[ListItem, ...]
    line: int


Block = Union[Heading, Paragraph, CodeBlock, List]


def block_inlines(block: Block) -> Iterator[Tuple[Inline, ...]]:
    """Yield every inline sequence held directly by a block node."""
    if isinstance(block, (Heading, Paragraph)):
        yield block.content
    elif isinstance(block, List):
        for item in block.items:
            yield item.content


def walk_inlines(content: Tuple[Inline, ...]) -> Iterator[Inline]:
    """Depth-first iteration over inline nodes, parents before children."""
    for node in content:
        yield node
        if isinstance(node, (FormattedSpan, Link, IndexMarker)):
            yield from walk_inlines(node.content)


def iter_references(block: Block) -> Iterator[Union[Link, IndexMarker]]:
    for content in block_inlines(block):
        for node in walk_inlines(content):
            if isinstance(node, (Link, IndexMarker)):
                yield node


def plain_text(content: Tuple[Inline, ...]) -> str:
    """Render inline content as plain text with all formatting stripped."""
    parts = []
    for node in content:
        if isinstance(node, Text):
            parts.append(node.text)
        else:
            parts.append(plain_text(node.content))
    return " ".join("".join(parts).split())


__all__ = [
    "Block",
    "CodeBlock",
    "FormattedSpan",
    "Heading",
    "IndexMarker",
    "Inline",
    "Link",
    "List",
    "ListItem",
    "Paragraph",
    "STYLES",
    "Text",
    "block_inlines",
    "iter_references",
    "plain_text",
    "walk_inlines",
]
