"""HTML page renderer."""

from __future__ import annotations

from html import escape
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..markup import Block, CodeBlock, FormattedSpan, Heading, IndexMarker, Inline, Link, List as ListNode, Paragraph, Text
from ..models import Documentable, LinkStatus
from .base import Page, Renderer, Site, create_environment, index_groups, relative_href

_STYLE_TAGS = {"bold": "strong", "italic": "em", "code": "code"}


class HTMLRenderer(Renderer):
    """Renders pages with one addressable anchor per documentable."""

    name = "html"
    suffix = ".html"
    toc_max_level = 3

    def __init__(self, templates_dir: Path | None = None) -> None:
        super().__init__(templates_dir)
        self._env = create_environment(templates_dir, autoescape=True)

    def render_page(self, page: Page) -> str:
        extraction = page.extraction
        root = extraction.root
        starts: Dict[int, Documentable] = {
            documentable.start: documentable for documentable in root.walk() if documentable is not root
        }
        nodes = extraction.nodes
        has_title = bool(nodes) and isinstance(nodes[0], Heading) and nodes[0].level == 0

        parts: List[str] = []
        if has_title:
            parts.append(self._heading(page, nodes[0], root))
        else:
            parts.append(f"<h1{_documentable_attrs(root)}>{escape(root.title, quote=False)}</h1>")
        toc = self._toc(root.children)
        if toc:
            parts.append(f'<nav class="toc">\n{toc}\n</nav>')
        for index, node in enumerate(nodes):
            if index == 0 and has_title:
                continue
            parts.append(self._block(page, node, starts.get(index)))

        return self._env.get_template("page.html.j2").render(
            title=f"{root.title} | {page.site.title}",
            site_title=page.site.title,
            index_href=relative_href(page.output_path, self.index_page),
            body="\n".join(parts),
        )

    def render_index(self, site: Site) -> str:
        return self._env.get_template("index.html.j2").render(site_title=site.title, groups=index_groups(site))

    # ------------------------------------------------------------------
    # Blocks

    def _block(self, page: Page, node: Block, documentable: Optional[Documentable]) -> str:
        if isinstance(node, Heading):
            return self._heading(page, node, documentable)
        if isinstance(node, Paragraph):
            css = ' class="subtitle"' if node.role == "subtitle" else ""
            return f"<p{css}>{self._inlines(page, node.content)}</p>"
        if isinstance(node, CodeBlock):
            return _code_block(node)
        if isinstance(node, ListNode):
            items = []
            for position, item in enumerate(node.items):
                attrs = _documentable_attrs(documentable) if documentable is not None and position == 0 else ""
                items.append(f'<li class="level-{item.level}"{attrs}>{self._inlines(page, item.content)}</li>')
            css = ' class="definitions"' if documentable is not None else ""
            return f"<ul{css}>\n" + "\n".join(items) + "\n</ul>"
        raise TypeError(f"Unsupported block node: {type(node).__name__}")

    def _heading(self, page: Page, node: Heading, documentable: Optional[Documentable]) -> str:
        tag = f"h{min(node.level + 1, 6)}"
        attrs = _documentable_attrs(documentable) if documentable is not None else ""
        return f"<{tag}{attrs}>{self._inlines(page, node.content)}</{tag}>"

    def _toc(self, documentables: Sequence[Documentable]) -> str:
        entries = []
        for documentable in documentables:
            if documentable.level > self.toc_max_level:
                continue
            nested = self._toc(documentable.children)
            link = f'<a href="#{escape(documentable.anchor)}">{escape(documentable.title, quote=False)}</a>'
            entries.append(f"<li>{link}{nested}</li>")
        if not entries:
            return ""
        return "<ul>" + "".join(entries) + "</ul>"

    # ------------------------------------------------------------------
    # Inlines

    def _inlines(self, page: Page, content: Sequence[Inline]) -> str:
        return "".join(self._inline(page, node) for node in content)

    def _inline(self, page: Page, node: Inline) -> str:
        if isinstance(node, Text):
            return escape(node.text, quote=False)
        if isinstance(node, FormattedSpan):
            tag = _STYLE_TAGS[node.style]
            return f"<{tag}>{self._inlines(page, node.content)}</{tag}>"
        if isinstance(node, IndexMarker):
            keys = "; ".join(node.keys)
            return f'<span class="index-entry" data-keys="{escape(keys)}">{self._inlines(page, node.content)}</span>'
        return self._link(page, node)

    def _link(self, page: Page, node: Link) -> str:
        display = self._inlines(page, node.content)
        resolved = page.resolved(node.ref)
        href = self.link_href(page, resolved) if resolved is not None else None
        if resolved is None or href is None:
            return f'<span class="broken-link" title="{escape(node.target)}">{display}</span>'
        if resolved.status is LinkStatus.EXTERNAL:
            return f'<a class="external" href="{escape(href)}">{display}</a>'
        if resolved.status is LinkStatus.AMBIGUOUS:
            labels = "; ".join(candidate.label() for candidate in resolved.candidates)
            return f'<a class="ambiguous" href="{escape(href)}" title="Ambiguous: {escape(labels)}">{display}</a>'
        return f'<a href="{escape(href)}">{display}</a>'


def _documentable_attrs(documentable: Documentable) -> str:
    return (
        f' id="{escape(documentable.anchor)}"'
        f' data-name="{escape(documentable.name)}"'
        f' data-kind="{documentable.kind.value}"'
    )


def _code_block(node: CodeBlock) -> str:
    attrs = "".join(f' data-{key}="{escape(value)}"' for key, value in node.hints)
    css = f' class="language-{escape(node.language)}"' if node.language else ""
    # escape only what HTML requires so the code survives byte-for-byte
    return f'<pre class="code"{attrs}><code{css}>{escape(node.text, quote=False)}</code></pre>'


__all__ = ["HTMLRenderer"]
