"""Core data models shared across podsite components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Tuple


class DocKind(str, Enum):
    """Closed set of documentable kinds; UNCLASSIFIED is the explicit fallback."""

    CLASS = "class"
    ROLE = "role"
    ENUM = "enum"
    MODULE = "module"
    ROUTINE = "routine"
    OPERATOR = "operator"
    TRAIT = "trait"
    PRAGMA = "pragma"
    SYNTAX = "syntax"
    LANGUAGE = "language"
    PROGRAM = "program"
    UNCLASSIFIED = "unclassified"


TYPE_KINDS = frozenset({DocKind.CLASS, DocKind.ROLE, DocKind.ENUM, DocKind.MODULE})


@dataclass(frozen=True)
class DocumentMetadata:
    """Category/kind declaration of a source file (from its ``=begin pod`` line)."""

    kind: Optional[str] = None
    subkind: Optional[str] = None
    category: Optional[str] = None


@dataclass(frozen=True)
class SourceDocument:
    """One input file, immutable after loading."""

    path: str
    text: str
    metadata: DocumentMetadata = field(default_factory=DocumentMetadata)
    digest: str = ""

    @property
    def stem(self) -> str:
        name = self.path.rsplit("/", 1)[-1]
        return name.rsplit(".", 1)[0] if "." in name else name

    @property
    def directory(self) -> Optional[str]:
        """Top-level directory of the document, used as an implicit category."""
        if "/" not in self.path:
            return None
        return self.path.split("/", 1)[0]


@dataclass(eq=False)
class Documentable:
    """A named, typed, addressable unit of documentation.

    ``start``/``end`` form a half-open range of top-level node indices in the
    originating document. Children are nested documentables whose ranges lie
    inside this one.
    """

    name: str
    kind: DocKind
    document: str
    level: int
    start: int
    end: int
    order: int
    title: str = ""
    subkind: Optional[str] = None
    anchor: str = ""
    line: Optional[int] = None
    children: List["Documentable"] = field(default_factory=list)

    @property
    def key(self) -> Tuple[str, DocKind]:
        return (self.name, self.kind)

    def sort_key(self) -> Tuple[str, int]:
        return (self.document, self.order)

    def label(self) -> str:
        """Human-readable identity used in diagnostics."""
        return f"{self.kind.value} {self.name} ({self.document}#{self.anchor})"

    def walk(self) -> Iterator["Documentable"]:
        yield self
        for child in self.children:
            yield from child.walk()

    def owner_of(self, index: int) -> Optional["Documentable"]:
        """Return the innermost documentable whose span contains ``index``."""
        if not self.start <= index < self.end:
            return None
        for child in self.children:
            owner = child.owner_of(index)
            if owner is not None:
                return owner
        return self


class LinkStatus(str, Enum):
    RESOLVED = "resolved"
    AMBIGUOUS = "ambiguous"
    BROKEN = "broken"
    EXTERNAL = "external"


@dataclass(frozen=True)
class ResolvedLink:
    """Resolution of one Link or IndexMarker node, keyed by the node's ``ref``."""

    ref: int
    status: LinkStatus
    target: Optional[Documentable] = None
    candidates: Tuple[Documentable, ...] = ()
    href: Optional[str] = None
    fragment: Optional[str] = None


__all__ = [
    "DocKind",
    "DocumentMetadata",
    "Documentable",
    "LinkStatus",
    "ResolvedLink",
    "SourceDocument",
    "TYPE_KINDS",
]
