"""Search index fragments built per page and merged once per site."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from ..markup import IndexMarker, iter_references, plain_text
from .base import Page

SearchEntry = Dict[str, Optional[str]]


def build_search_fragment(page: Page) -> List[SearchEntry]:
    """One entry per documentable plus one per index-marker key."""
    extraction = page.extraction
    entries: List[SearchEntry] = []
    for documentable in extraction.root.walk():
        entries.append(
            {
                "name": documentable.name,
                "kind": documentable.kind.value,
                "subkind": documentable.subkind,
                "title": documentable.title,
                "page": page.output_path,
                "anchor": documentable.anchor,
            }
        )
    for index, block in enumerate(extraction.nodes):
        for node in iter_references(block):
            if not isinstance(node, IndexMarker):
                continue
            owner = extraction.owner_of(index)
            display = plain_text(node.content)
            for key in node.keys:
                entries.append(
                    {
                        "name": key,
                        "kind": "index",
                        "subkind": None,
                        "title": display or key,
                        "page": page.output_path,
                        "anchor": owner.anchor,
                    }
                )
    return entries


def merge_search_index(fragments: Iterable[Iterable[SearchEntry]]) -> List[SearchEntry]:
    """Combine page fragments into a deduplicated, deterministically sorted list."""
    seen: Dict[Tuple, SearchEntry] = {}
    for fragment in fragments:
        for entry in fragment:
            identity = tuple(sorted((key, value or "") for key, value in entry.items()))
            seen.setdefault(identity, entry)
    return sorted(
        seen.values(),
        key=lambda entry: (
            (entry["name"] or "").casefold(),
            entry["name"] or "",
            entry["kind"] or "",
            entry["page"] or "",
            entry["anchor"] or "",
        ),
    )


__all__ = ["SearchEntry", "build_search_fragment", "merge_search_index"]
