"""Pod6-style markup parsing."""

from .nodes import (
    Block,
    CodeBlock,
    FormattedSpan,
    Heading,
    IndexMarker,
    Inline,
    Link,
    List,
    ListItem,
    Paragraph,
    Text,
    iter_references,
    plain_text,
)
from .parser import ParseResult, parse, parse_config, read_metadata

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
    "ParseResult",
    "Paragraph",
    "Text",
    "iter_references",
    "parse",
    "parse_config",
    "plain_text",
    "read_metadata",
]
