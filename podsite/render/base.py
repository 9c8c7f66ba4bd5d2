"""Base classes and shared helpers for output renderers."""

from __future__ import annotations

import posixpath
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from jinja2 import Environment, FileSystemLoader

from ..errors import Diagnostic, extraction_warning
from ..extractor import Extraction
from ..models import Documentable, LinkStatus, ResolvedLink
from ..resolver import DocumentResolution


@dataclass
class Site:
    """Site-wide facts every page needs: where each document is written."""

    title: str
    suffix: str
    pages: Mapping[str, str] = field(default_factory=dict)
    roots: List[Documentable] = field(default_factory=list)

    def page_for(self, document: str) -> Optional[str]:
        return self.pages.get(document)


@dataclass
class Page:
    """Everything needed to render one document."""

    extraction: Extraction
    resolution: DocumentResolution
    output_path: str
    site: Site

    def resolved(self, ref: int) -> Optional[ResolvedLink]:
        return self.resolution.links.get(ref)


class Renderer(ABC):
    """Contract for output formats; instances must be stateless and thread-safe."""

    name: str = ""
    suffix: str = ""

    def __init__(self, templates_dir: Path | None = None) -> None:
        self.templates_dir = templates_dir

    @property
    def index_page(self) -> str:
        return f"index{self.suffix}"

    @abstractmethod
    def render_page(self, page: Page) -> str:
        """Serialise one resolved document."""

    @abstractmethod
    def render_index(self, site: Site) -> str:
        """Serialise the site landing page listing every document."""

    def output_path(self, document: str) -> str:
        return output_path_for(document, self.suffix)

    def link_href(self, page: Page, resolved: ResolvedLink) -> Optional[str]:
        """Relative URL for a resolved link, or None when it renders unlinked."""
        if resolved.status is LinkStatus.EXTERNAL:
            return resolved.href
        if resolved.status is LinkStatus.BROKEN or resolved.target is None:
            return None
        return self.documentable_href(page, resolved.target, fragment=resolved.fragment)

    def documentable_href(
        self, page: Page, target: Documentable, *, fragment: Optional[str] = None
    ) -> Optional[str]:
        target_page = page.site.page_for(target.document)
        if target_page is None:
            return None
        # page-level targets keep the fragment written in the link
        anchor = target.anchor if target.level > 0 else fragment
        if target.document == page.extraction.path:
            return f"#{anchor or target.anchor}"
        return relative_href(page.output_path, target_page, anchor)


def output_path_for(document: str, suffix: str) -> str:
    """Map ``Type/Str.rakudoc`` to ``Type/Str<suffix>``."""
    head, _, name = document.rpartition("/")
    stem = name.rsplit(".", 1)[0] if "." in name else name
    filename = f"{stem}{suffix}"
    return f"{head}/{filename}" if head else filename


def relative_href(from_page: str, to_page: str, anchor: Optional[str] = None) -> str:
    base = posixpath.dirname(from_page) or "."
    href = posixpath.relpath(to_page, base)
    return f"{href}#{anchor}" if anchor else href


def group_roots(roots: List[Documentable]) -> Dict[str, List[Documentable]]:
    """Group document roots by kind label for index pages."""
    groups: Dict[str, List[Documentable]] = {}
    for root in sorted(roots, key=lambda item: (item.kind.value, item.name.casefold(), item.document)):
        groups.setdefault(root.kind.value, []).append(root)
    return groups


def index_groups(site: Site) -> List[Dict[str, object]]:
    """Template context for the site index: one group per kind, one entry per page."""
    groups: List[Dict[str, object]] = []
    for kind, roots in group_roots(site.roots).items():
        entries = [
            {"href": site.page_for(root.document), "name": root.name, "title": root.title}
            for root in roots
            if site.page_for(root.document) is not None
        ]
        groups.append({"label": kind.capitalize(), "entries": entries})
    return groups


def assign_output_paths(
    renderer: Renderer, documents: Iterable[str]
) -> Tuple[Dict[str, str], List[Diagnostic]]:
    """Give every document its own output page.

    ``index<suffix>`` belongs to the site index. When two documents map to
    the same page (``Str.pod6`` and ``Str.rakudoc``, or a root-level
    ``index.rakudoc``) the later one keeps its source suffix in the page
    name and a warning is recorded against it.
    """
    taken = {renderer.index_page.casefold()}
    pages: Dict[str, str] = {}
    diagnostics: List[Diagnostic] = []
    for document in sorted(documents):
        preferred = renderer.output_path(document)
        target = preferred
        if target.casefold() in taken:
            target = f"{document}{renderer.suffix}"
            counter = 2
            while target.casefold() in taken:
                target = f"{document}-{counter}{renderer.suffix}"
                counter += 1
            diagnostics.append(
                extraction_warning(document, f"output page {preferred} is already taken; writing {target}")
            )
        taken.add(target.casefold())
        pages[document] = target
    return pages, diagnostics


def create_environment(templates_dir: Path | None = None, *, autoescape: bool = False) -> Environment:
    """Jinja2 environment searching ``templates_dir`` before the bundled templates."""
    directories = []
    if templates_dir:
        directories.append(str(templates_dir))
    directories.append(str(Path(__file__).with_name("templates")))
    # ensure uniqueness preserving order
    seen: set[str] = set()
    ordered: list[str] = []
    for directory in directories:
        if directory not in seen:
            ordered.append(directory)
            seen.add(directory)
    return Environment(
        loader=FileSystemLoader(ordered),
        autoescape=autoescape,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


__all__ = [
    "Page",
    "Renderer",
    "Site",
    "assign_output_paths",
    "create_environment",
    "group_roots",
    "index_groups",
    "output_path_for",
    "relative_href",
]
