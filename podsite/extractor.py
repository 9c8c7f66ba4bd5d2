"""Documentable extraction over a parsed document."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .anchors import AnchorAllocator
from .classify import Classification, Classifier, HeadingContext
from .errors import Diagnostic, extraction_warning
from .logging import get_logger
from .markup import Block, Heading, IndexMarker, List as ListNode, ParseResult, Text, plain_text
from .models import DocKind, Documentable, SourceDocument, TYPE_KINDS

_LOGGER = get_logger("extractor")


@dataclass
class Extraction:
    """One document's parse tree plus its contribution to the registry."""

    document: SourceDocument
    nodes: Tuple[Block, ...]
    root: Documentable
    documentables: List[Documentable]
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def path(self) -> str:
        return self.document.path

    def owner_of(self, index: int) -> Documentable:
        """Innermost documentable containing node ``index``."""
        return self.root.owner_of(index) or self.root


def extract(document: SourceDocument, parsed: ParseResult, classifier: Classifier) -> Extraction:
    """Walk ``parsed`` in order and build the documentable tree for ``document``.

    An explicit stack keyed by heading level holds the open documentables. A
    heading at level N closes every open documentable at level >= N before
    opening its own; definition items open and close on their own node. The
    document root (level 0) spans every node.
    """
    return _Extractor(document, parsed, classifier).run()


class _Extractor:
    def __init__(self, document: SourceDocument, parsed: ParseResult, classifier: Classifier) -> None:
        self.document = document
        self.nodes = parsed.nodes
        self.classifier = classifier
        self.anchors = AnchorAllocator()
        self.documentables: List[Documentable] = []
        self.diagnostics: List[Diagnostic] = list(parsed.errors)
        self.document_kind = classifier.document_kind(document)

    def run(self) -> Extraction:
        nodes = self.nodes
        has_title = bool(nodes) and isinstance(nodes[0], Heading) and nodes[0].level == 0
        root = self._root(nodes[0] if has_title else None)
        type_name = root.name if root.kind in TYPE_KINDS else None

        stack: List[Documentable] = [root]
        for index, node in enumerate(nodes):
            if isinstance(node, Heading):
                if index == 0 and has_title:
                    continue
                level = node.level
                if level == 0:
                    self._warn("additional =TITLE treated as a level 1 heading", node.line)
                    level = 1
                while len(stack) > 1 and stack[-1].level >= level:
                    stack.pop().end = index
                parent = stack[-1]
                title = plain_text(node.content)
                context = HeadingContext(
                    document_kind=self.document_kind,
                    type_name=type_name,
                    parent_title=parent.title if parent is not root else None,
                )
                if not title:
                    self._warn("heading has no text", node.line)
                    title = f"untitled-{node.line}"
                    classification = Classification(name=title, kind=DocKind.UNCLASSIFIED)
                else:
                    classification = self.classifier.classify_heading(title, context)
                    if not classification.classified:
                        self._warn(f"could not classify heading '{title}'", node.line)
                documentable = self._new(classification, title, level, index, len(nodes), node.line)
                parent.children.append(documentable)
                stack.append(documentable)
            elif isinstance(node, ListNode):
                marker = _definition_marker(node)
                if marker is None:
                    continue
                parent = stack[-1]
                display = plain_text(marker.content)
                classification = self.classifier.classify_index_item(display, marker.keys)
                if not classification.name:
                    self._warn("definition item has no name", node.line)
                    continue
                if not classification.classified:
                    self._warn(f"could not classify definition item '{classification.name}'", node.line)
                title = plain_text(node.items[0].content) or classification.name
                documentable = self._new(classification, title, parent.level + 1, index, index + 1, node.line)
                parent.children.append(documentable)

        for documentable in stack[1:]:
            documentable.end = len(nodes)

        return Extraction(
            document=self.document,
            nodes=nodes,
            root=root,
            documentables=self.documentables,
            diagnostics=self.diagnostics,
        )

    def _root(self, title_node: Optional[Heading]) -> Documentable:
        title = plain_text(title_node.content) if title_node is not None else ""
        line = title_node.line if title_node is not None else None
        if not title:
            title = self.document.stem
        classification = self.classifier.classify_title(title, self.document_kind)
        if not classification.classified:
            self._warn(f"could not classify document '{title}'", line)
        return self._new(classification, title, 0, 0, len(self.nodes), line)

    def _new(
        self,
        classification: Classification,
        title: str,
        level: int,
        start: int,
        end: int,
        line: Optional[int],
    ) -> Documentable:
        anchor_text = (
            f"{classification.subkind} {classification.name}"
            if classification.subkind and level > 0
            else classification.name
        )
        documentable = Documentable(
            name=classification.name,
            kind=classification.kind,
            subkind=classification.subkind,
            title=title,
            document=self.document.path,
            level=level,
            start=start,
            end=end,
            order=len(self.documentables),
            anchor=self.anchors.allocate(anchor_text),
            line=line,
        )
        self.documentables.append(documentable)
        return documentable

    def _warn(self, message: str, line: Optional[int]) -> None:
        _LOGGER.debug("%s:%s: %s", self.document.path, line or "-", message)
        self.diagnostics.append(extraction_warning(self.document.path, message, line=line))


def _definition_marker(node: ListNode) -> Optional[IndexMarker]:
    if len(node.items) != 1:
        return None
    for inline in node.items[0].content:
        if isinstance(inline, Text) and not inline.text.strip():
            continue
        return inline if isinstance(inline, IndexMarker) else None
    return None


__all__ = ["Extraction", "extract"]
