"""Line-oriented block parser for the Pod6 subset used by the corpus."""

from __future__ import annotations

import itertools
import re
import textwrap
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ..errors import Diagnostic, parse_error
from ..models import DocumentMetadata
from .inline import InlineParser
from .nodes import Block, CodeBlock, Heading, IndexMarker, ListItem, Paragraph, Text
from .nodes import List as ListNode

_DIRECTIVE = re.compile(r"^\s*=(?P<name>[A-Za-z][\w-]*)(?:\s+(?P<rest>.*))?\s*$")
_HEAD = re.compile(r"^head(?P<level>\d*)$")
_ITEM = re.compile(r"^item(?P<level>\d*)$")
_CONFIG_PAIR = re.compile(
    r""":(?P<neg>!)?(?P<key>[\w-]+)"""
    r"""(?:<(?P<angle>[^>]*)>|\("(?P<dq>[^"]*)"\)|\('(?P<sq>[^']*)'\)|\[(?P<list>[^\]]*)\])?"""
)

_VERBATIM_BLOCKS = frozenset({"code", "input", "output"})
_METADATA_KEYS = ("kind", "subkind", "category")


@dataclass(frozen=True)
class ParseResult:
    """Blocks of one document plus every parse error found on the way."""

    nodes: Tuple[Block, ...]
    errors: Tuple[Diagnostic, ...]
    metadata: DocumentMetadata


def parse(text: str, path: str = "<string>") -> ParseResult:
    """Parse raw markup into blocks; malformed input is reported, never raised."""
    return _BlockParser(text, path).run()


def read_metadata(text: str) -> DocumentMetadata:
    """Return the kind/subkind/category declared on the first ``=begin pod`` line."""
    for line in text.splitlines():
        match = _DIRECTIVE.match(line)
        if match is None or match.group("name") != "begin":
            continue
        name, config = _split_block_header(match.group("rest") or "")
        if name == "pod":
            return _metadata_from(config)
    return DocumentMetadata()


def parse_config(spec: str) -> List[Tuple[str, str]]:
    """Parse Pod config pairs (``:lang<raku> :!skip-test :kind("Type")``)."""
    pairs: List[Tuple[str, str]] = []
    for match in _CONFIG_PAIR.finditer(spec):
        key = match.group("key")
        if match.group("neg"):
            value = "false"
        else:
            value = next(
                (
                    match.group(group)
                    for group in ("angle", "dq", "sq", "list")
                    if match.group(group) is not None
                ),
                "true",
            )
        pairs.append((key, value.strip()))
    return pairs


def _split_block_header(rest: str) -> Tuple[str, List[Tuple[str, str]]]:
    parts = rest.strip().split(None, 1)
    if not parts:
        return "", []
    return parts[0], parse_config(parts[1] if len(parts) > 1 else "")


def _metadata_from(config: Sequence[Tuple[str, str]]) -> DocumentMetadata:
    values: Dict[str, str] = {key: value for key, value in config if key in _METADATA_KEYS}
    return DocumentMetadata(
        kind=values.get("kind") or None,
        subkind=values.get("subkind") or None,
        category=values.get("category") or None,
    )


class _BlockParser:
    def __init__(self, text: str, path: str) -> None:
        self.lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
        self.path = path
        self.index = 0
        self.nodes: List[Block] = []
        self.errors: List[Diagnostic] = []
        self.metadata: Optional[DocumentMetadata] = None
        self.open_blocks: List[str] = []
        self.pending_items: List[ListItem] = []
        refs = itertools.count()
        self._next_ref = lambda: next(refs)

    def run(self) -> ParseResult:
        while self.index < len(self.lines):
            line = self.lines[self.index]
            if not line.strip():
                self.index += 1
                continue
            directive = _DIRECTIVE.match(line)
            if directive is not None:
                self._directive(directive.group("name"), directive.group("rest") or "")
            elif line[0] in " \t":
                self._implicit_code()
            else:
                self._paragraph()
        self._flush_items()
        for name in reversed(self.open_blocks):
            self._error(f"=begin {name} is never closed", len(self.lines))
        return ParseResult(
            nodes=tuple(self.nodes),
            errors=tuple(self.errors),
            metadata=self.metadata or DocumentMetadata(),
        )

    # ------------------------------------------------------------------
    # Directives

    def _directive(self, name: str, rest: str) -> None:
        line_no = self.index + 1
        self.index += 1
        head = _HEAD.match(name)
        item = _ITEM.match(name)
        if name == "begin":
            self._begin(rest, line_no)
        elif name == "end":
            self._end(rest, line_no)
        elif name == "for":
            self._for(rest, line_no)
        elif name == "TITLE":
            self._emit(Heading(0, self._inline(self._continued(rest), line_no), line_no))
        elif name == "SUBTITLE":
            self._emit(Paragraph(self._inline(self._continued(rest), line_no), line_no, role="subtitle"))
        elif head is not None:
            level = int(head.group("level") or 1)
            self._emit(Heading(level, self._inline(self._continued(rest), line_no), line_no))
        elif item is not None:
            level = int(item.group("level") or 1)
            self._item(ListItem(level, self._inline(self._continued(rest), line_no), line_no))
        elif name == "comment":
            self._continued(rest)
        elif name == "config":
            pass
        elif name == "para":
            text = self._continued(rest)
            if text:
                self._emit(Paragraph(self._inline(text, line_no), line_no))
        else:
            self._error(f"unknown directive ={name}", line_no)
            text = self._continued(rest)
            if text:
                self._emit(Paragraph(self._inline(text, line_no), line_no))

    def _begin(self, rest: str, line_no: int) -> None:
        name, config = _split_block_header(rest)
        if not name:
            self._error("=begin without a block name", line_no)
            return
        if name == "pod":
            if self.metadata is None:
                self.metadata = _metadata_from(config)
            self.open_blocks.append(name)
        elif name in _VERBATIM_BLOCKS:
            body = self._verbatim_until_end(name, line_no)
            self._emit(_code_block(body, line_no, config))
        elif name == "comment":
            self._verbatim_until_end(name, line_no)
        else:
            self._error(f"unsupported block =begin {name}; contents parsed as ordinary text", line_no)
            self.open_blocks.append(name)

    def _end(self, rest: str, line_no: int) -> None:
        name = rest.strip().split(None, 1)[0] if rest.strip() else ""
        if name in self.open_blocks:
            while self.open_blocks:
                if self.open_blocks.pop() == name:
                    break
            return
        self._error(f"=end {name or '(missing name)'} without a matching =begin", line_no)

    def _for(self, rest: str, line_no: int) -> None:
        name, config = _split_block_header(rest)
        body = self._take_paragraph_lines()
        if name in _VERBATIM_BLOCKS:
            self._emit(_code_block("\n".join(body), line_no, config))
        elif name == "comment":
            return
        else:
            self._error(f"unsupported block =for {name or '(missing name)'}", line_no)
            text = " ".join(part.strip() for part in body)
            if text:
                self._emit(Paragraph(self._inline(text, line_no), line_no))

    def _verbatim_until_end(self, name: str, line_no: int) -> str:
        terminator = re.compile(rf"^\s*=end\s+{re.escape(name)}\b")
        collected: List[str] = []
        while self.index < len(self.lines):
            line = self.lines[self.index]
            self.index += 1
            if terminator.match(line):
                return "\n".join(collected)
            collected.append(line)
        self._error(f"=begin {name} is never closed", line_no)
        return "\n".join(collected).rstrip("\n")

    # ------------------------------------------------------------------
    # Paragraph-like blocks

    def _paragraph(self) -> None:
        line_no = self.index + 1
        text = " ".join(part.strip() for part in self._take_paragraph_lines())
        self._emit(Paragraph(self._inline(text, line_no), line_no))

    def _implicit_code(self) -> None:
        line_no = self.index + 1
        collected: List[str] = []
        while self.index < len(self.lines):
            line = self.lines[self.index]
            if not line.strip():
                lookahead = self._next_nonblank()
                if lookahead is None or lookahead[0] not in " \t" or _DIRECTIVE.match(lookahead):
                    break
                collected.append("")
                self.index += 1
                continue
            if _DIRECTIVE.match(line) or line[0] not in " \t":
                break
            collected.append(line)
            self.index += 1
        self._emit(CodeBlock(text=textwrap.dedent("\n".join(collected)), line=line_no))

    def _item(self, item: ListItem) -> None:
        if _is_definition_item(item):
            self._flush_items()
            self.nodes.append(ListNode(items=(item,), line=item.line))
            return
        self.pending_items.append(item)

    def _emit(self, block: Block) -> None:
        self._flush_items()
        self.nodes.append(block)

    def _flush_items(self) -> None:
        if self.pending_items:
            items = tuple(self.pending_items)
            self.pending_items = []
            self.nodes.append(ListNode(items=items, line=items[0].line))

    # ------------------------------------------------------------------
    # Helpers

    def _continued(self, first: str) -> str:
        parts = [first.strip()] if first.strip() else []
        parts.extend(part.strip() for part in self._take_paragraph_lines())
        return " ".join(parts)

    def _take_paragraph_lines(self) -> List[str]:
        collected: List[str] = []
        while self.index < len(self.lines):
            line = self.lines[self.index]
            if not line.strip() or _DIRECTIVE.match(line):
                break
            collected.append(line)
            self.index += 1
        return collected

    def _next_nonblank(self) -> Optional[str]:
        for line in self.lines[self.index :]:
            if line.strip():
                return line
        return None

    def _inline(self, text: str, line_no: int) -> tuple:
        parser = InlineParser(self._next_ref, lambda message: self._error(message, line_no))
        return parser.parse(text)

    def _error(self, message: str, line_no: int) -> None:
        self.errors.append(parse_error(self.path, message, line=line_no))


def _code_block(body: str, line_no: int, config: Sequence[Tuple[str, str]]) -> CodeBlock:
    language = None
    hints: List[Tuple[str, str]] = []
    for key, value in config:
        if key == "lang":
            language = value or None
        else:
            hints.append((key, value))
    return CodeBlock(text=body, line=line_no, language=language, hints=tuple(hints))


def _is_definition_item(item: ListItem) -> bool:
    for node in item.content:
        if isinstance(node, Text) and not node.text.strip():
            continue
        return isinstance(node, IndexMarker)
    return False


__all__ = ["ParseResult", "parse", "parse_config", "read_metadata"]
