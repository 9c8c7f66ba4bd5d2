"""Markdown page renderer."""

from __future__ import annotations

import re
from html import escape
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..markup import Block, CodeBlock, FormattedSpan, Heading, IndexMarker, Inline, Link, List as ListNode, Paragraph, Text
from ..models import Documentable, LinkStatus
from .base import Page, Renderer, Site, create_environment, index_groups, relative_href

_SPECIAL = re.compile(r"([\\`*_\[\]<>#|])")
_STYLE_MARKS = {"bold": "**", "italic": "*"}


def escape_markdown(text: str) -> str:
    return _SPECIAL.sub(r"\\\1", text)


def _code_span(text: str) -> str:
    if not text:
        return ""
    longest = max((len(run) for run in re.findall(r"`+", text)), default=0)
    fence = "`" * (longest + 1)
    pad = " " if text.startswith("`") or text.endswith("`") else ""
    return f"{fence}{pad}{text}{pad}{fence}"


class MarkdownRenderer(Renderer):
    """Renders pages as Markdown with explicit HTML anchors per documentable."""

    name = "markdown"
    suffix = ".md"

    def __init__(self, templates_dir: Path | None = None) -> None:
        super().__init__(templates_dir)
        self._env = create_environment(templates_dir)
        self._env.filters["markdown_escape"] = escape_markdown

    def render_page(self, page: Page) -> str:
        extraction = page.extraction
        root = extraction.root
        starts: Dict[int, Documentable] = {
            documentable.start: documentable for documentable in root.walk() if documentable is not root
        }
        nodes = extraction.nodes
        has_title = bool(nodes) and isinstance(nodes[0], Heading) and nodes[0].level == 0

        parts: List[str] = [_anchor(root)]
        if has_title:
            parts.append(f"# {self._inlines(page, nodes[0].content)}")
        else:
            parts.append(f"# {escape_markdown(root.title)}")
        for index, node in enumerate(nodes):
            if index == 0 and has_title:
                continue
            parts.append(self._block(page, node, starts.get(index)))
        index_href = relative_href(page.output_path, self.index_page)
        parts.append(f"[{escape_markdown(page.site.title)}]({index_href})")
        return "\n\n".join(part for part in parts if part) + "\n"

    def render_index(self, site: Site) -> str:
        return self._env.get_template("index.md.j2").render(site_title=site.title, groups=index_groups(site))

    def _block(self, page: Page, node: Block, documentable: Optional[Documentable]) -> str:
        if isinstance(node, Heading):
            marks = "#" * min(node.level + 1, 6)
            heading = f"{marks} {self._inlines(page, node.content)}"
            return f"{_anchor(documentable)}\n{heading}" if documentable is not None else heading
        if isinstance(node, Paragraph):
            text = self._inlines(page, node.content)
            return f"*{text}*" if node.role == "subtitle" else text
        if isinstance(node, CodeBlock):
            return _fenced(node)
        if isinstance(node, ListNode):
            lines = []
            for position, item in enumerate(node.items):
                indent = "  " * max(item.level - 1, 0)
                prefix = _anchor(documentable) if documentable is not None and position == 0 else ""
                lines.append(f"{indent}- {prefix}{self._inlines(page, item.content)}")
            return "\n".join(lines)
        raise TypeError(f"Unsupported block node: {type(node).__name__}")

    def _inlines(self, page: Page, content: Sequence[Inline]) -> str:
        return "".join(self._inline(page, node) for node in content)

    def _inline(self, page: Page, node: Inline) -> str:
        if isinstance(node, Text):
            return escape_markdown(node.text)
        if isinstance(node, FormattedSpan):
            if node.style == "code":
                return _code_span("".join(_raw_text(child) for child in node.content))
            mark = _STYLE_MARKS[node.style]
            return f"{mark}{self._inlines(page, node.content)}{mark}"
        if isinstance(node, IndexMarker):
            return self._inlines(page, node.content)
        return self._link(page, node)

    def _link(self, page: Page, node: Link) -> str:
        display = self._inlines(page, node.content)
        resolved = page.resolved(node.ref)
        href = self.link_href(page, resolved) if resolved is not None else None
        if resolved is None or href is None:
            return display
        if resolved.status is LinkStatus.AMBIGUOUS:
            labels = "; ".join(candidate.label() for candidate in resolved.candidates)
            title = labels.replace('"', '\\"')
            return f'[{display}](<{href}> "Ambiguous: {title}")'
        return f"[{display}](<{href}>)"


def _anchor(documentable: Documentable) -> str:
    return (
        f'<a id="{escape(documentable.anchor)}" data-name="{escape(documentable.name)}"'
        f' data-kind="{documentable.kind.value}"></a>'
    )


def _raw_text(node: Inline) -> str:
    if isinstance(node, Text):
        return node.text
    if isinstance(node, (FormattedSpan, Link, IndexMarker)):
        return "".join(_raw_text(child) for child in node.content)
    return ""


def _fenced(node: CodeBlock) -> str:
    longest = max((len(run) for run in re.findall(r"`{3,}", node.text)), default=0)
    fence = "`" * max(3, longest + 1)
    return f"{fence}{node.language or ''}\n{node.text}\n{fence}"


__all__ = ["MarkdownRenderer", "escape_markdown"]
