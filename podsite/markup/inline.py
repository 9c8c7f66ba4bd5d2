"""Inline formatting-code parsing (``B<>``, ``C<>``, ``L<>``, ``X<>`` ...)."""

from __future__ import annotations

import html
import re
from typing import Callable, Iterator, List, Optional, Tuple

from .nodes import FormattedSpan, IndexMarker, Inline, Link, Text, plain_text

_CODE_START = re.compile(r"(?<!\w)([A-Z])(<+|«)")

_STYLE_CODES = {"B": "bold", "I": "italic"}
_RAW_CODE_CODES = frozenset({"C", "K", "T"})
_KNOWN_CODES = frozenset({"B", "I", "C", "K", "T", "L", "X", "V", "E", "Z"})
_NESTING_CODES = frozenset({"B", "I", "L", "X"})

# deeper formatting codes are kept as literal text
MAX_INLINE_DEPTH = 32

_ENTITY_ALIASES = {
    "lt": "<",
    "gt": ">",
    "amp": "&",
    "quot": '"',
    "apos": "'",
    "nbsp": " ",
    "laquo": "«",
    "raquo": "»",
}

ErrorSink = Callable[[str], None]


class InlineParser:
    """Parses one inline run; shares a reference counter with its document.

    Errors are reported through ``on_error`` and never raised: a malformed
    code degrades to literal text.
    """

    def __init__(self, next_ref: Callable[[], int], on_error: ErrorSink) -> None:
        self._next_ref = next_ref
        self._on_error = on_error

    def parse(self, text: str) -> Tuple[Inline, ...]:
        return self._parse(text, 0)

    def _parse(self, text: str, depth: int) -> Tuple[Inline, ...]:
        nodes: List[Inline] = []
        position = 0
        for match, close in _iter_codes(text):
            start = match.start()
            if start < position:
                continue
            if start > position:
                nodes.append(Text(text[position:start]))
            letter, opener = match.group(1), match.group(2)
            if close is None:
                self._on_error(f"unterminated formatting code {letter}{opener}")
                nodes.append(Text(text[start : match.end()]))
                position = match.end()
                continue
            content_end, close_end = close
            raw = text[match.end() : content_end]
            if len(opener) > 1:
                raw = raw.strip()
            nodes.extend(self._build(letter, raw, text[start:close_end], depth))
            position = close_end
        if position < len(text):
            nodes.append(Text(text[position:]))
        return _merge_text(nodes)

    def _build(self, letter: str, raw: str, literal: str, depth: int) -> List[Inline]:
        if letter not in _KNOWN_CODES:
            self._on_error(f"unknown formatting code {letter}<>")
            return [Text(literal)]
        if letter in _NESTING_CODES and depth >= MAX_INLINE_DEPTH:
            self._on_error(f"formatting codes nested deeper than {MAX_INLINE_DEPTH} levels")
            return [Text(literal)]
        if letter in _STYLE_CODES:
            return [FormattedSpan(_STYLE_CODES[letter], self._parse(raw, depth + 1))]
        if letter in _RAW_CODE_CODES:
            return [FormattedSpan("code", (Text(raw),) if raw else ())]
        if letter == "V":
            return [Text(raw)] if raw else []
        if letter == "Z":
            return []
        if letter == "E":
            return self._entities(raw, literal)
        if letter == "L":
            return self._link(raw, literal, depth)
        return self._index_marker(raw, literal, depth)

    def _entities(self, raw: str, literal: str) -> List[Inline]:
        chars = []
        for name in raw.split(";"):
            name = name.strip()
            value = _decode_entity(name)
            if value is None:
                self._on_error(f"unknown entity E<{name}>")
                return [Text(literal)]
            chars.append(value)
        return [Text("".join(chars))]

    def _link(self, raw: str, literal: str, depth: int) -> List[Inline]:
        display_raw, target = split_top_level(raw)
        if target is None:
            target = raw.strip()
            display: Tuple[Inline, ...] = (Text(target),) if target else ()
        else:
            target = target.strip()
            display = self._parse(display_raw, depth + 1)
        if not target:
            self._on_error("link without a target")
            return list(display) or [Text(literal)]
        return [Link(content=display, target=target, ref=self._next_ref())]

    def _index_marker(self, raw: str, literal: str, depth: int) -> List[Inline]:
        display_raw, key_spec = split_top_level(raw)
        display = self._parse(display_raw, depth + 1)
        if key_spec is None:
            keys: Tuple[str, ...] = (plain_text(display),) if plain_text(display) else ()
        else:
            keys = tuple(key.strip() for key in re.split(r"[,;]", key_spec) if key.strip())
        if not keys:
            self._on_error("index marker without keys")
            return list(display) or [Text(literal)]
        return [IndexMarker(content=display, keys=keys, ref=self._next_ref())]


def split_top_level(raw: str, separator: str = "|") -> Tuple[str, Optional[str]]:
    """Split ``raw`` at the first separator outside nested formatting codes."""
    position = 0
    while position < len(raw):
        match = _CODE_START.match(raw, position) if _starts_code(raw, position) else None
        if match is not None:
            close = find_close(raw, match.end(), match.group(2))
            if close is not None:
                position = close[1]
                continue
        if raw[position] == separator:
            return raw[:position], raw[position + 1 :]
        position += 1
    return raw, None


def find_close(text: str, start: int, opener: str) -> Optional[Tuple[int, int]]:
    """Return ``(content_end, close_end)`` for a code opened just before ``start``."""
    if opener == "«":
        return _balanced(text, start, "«", "»")
    if len(opener) == 1:
        return _balanced(text, start, "<", ">")
    closer = ">" * len(opener)
    index = text.find(closer, start)
    if index == -1:
        return None
    return index, index + len(closer)


def _balanced(text: str, start: int, open_char: str, close_char: str) -> Optional[Tuple[int, int]]:
    depth = 1
    for index in range(start, len(text)):
        char = text[index]
        if char == open_char:
            depth += 1
        elif char == close_char:
            depth -= 1
            if depth == 0:
                return index, index + 1
    return None


def _starts_code(text: str, position: int) -> bool:
    if not text[position].isupper():
        return False
    return position == 0 or not (text[position - 1].isalnum() or text[position - 1] == "_")


def _iter_codes(text: str) -> Iterator[Tuple[re.Match[str], Optional[Tuple[int, int]]]]:
    for match in _CODE_START.finditer(text):
        yield match, find_close(text, match.end(), match.group(2))


def _decode_entity(name: str) -> Optional[str]:
    if not name:
        return None
    if name in _ENTITY_ALIASES:
        return _ENTITY_ALIASES[name]
    try:
        if name.lower().startswith("0x"):
            return chr(int(name[2:], 16))
        if name.isdigit():
            return chr(int(name))
    except (ValueError, OverflowError):
        return None
    decoded = html.unescape(f"&{name};")
    return None if decoded == f"&{name};" else decoded


def _merge_text(nodes: List[Inline]) -> Tuple[Inline, ...]:
    merged: List[Inline] = []
    for node in nodes:
        if isinstance(node, Text):
            if not node.text:
                continue
            if merged and isinstance(merged[-1], Text):
                merged[-1] = Text(merged[-1].text + node.text)
                continue
        merged.append(node)
    return tuple(merged)


__all__ = ["MAX_INLINE_DEPTH", "InlineParser", "find_close", "split_top_level"]
