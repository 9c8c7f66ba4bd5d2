"""Anchor slugs for documentables."""

from __future__ import annotations

import re
from typing import Set
from urllib.parse import quote


def slugify(text: str) -> str:
    """Turn a heading into a fragment-safe anchor, keeping case and operators.

    ``method ACCEPTS`` becomes ``method_ACCEPTS``; ``infix +`` becomes
    ``infix_%2B``.
    """
    collapsed = re.sub(r"\s+", "_", text.strip())
    return quote(collapsed, safe="_-.~:") or "section"


class AnchorAllocator:
    """Hands out anchors that are unique within one page."""

    def __init__(self) -> None:
        self._used: Set[str] = set()

    def allocate(self, text: str) -> str:
        base = slugify(text)
        anchor = base
        counter = 1
        while anchor in self._used:
            anchor = f"{base}-{counter}"
            counter += 1
        self._used.add(anchor)
        return anchor


__all__ = ["AnchorAllocator", "slugify"]
