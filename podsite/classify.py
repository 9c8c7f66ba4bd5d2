"""Pattern-table classification of documentable kinds.

Every rule lives in a table (heading regexes, category names, listing
sections, generic section titles, index categories). The built-in tables
describe the Raku documentation layout; ``.podsite.yml`` can extend or
override any of them. Input that matches no rule is reported as
``DocKind.UNCLASSIFIED`` rather than guessed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Pattern, Sequence, Tuple

from .config import ClassifyConfig
from .logging import get_logger
from .models import DocKind, SourceDocument, TYPE_KINDS

_LOGGER = get_logger("classify")

_NAME = r"(?P<name>\S.*?)"

DEFAULT_HEADING_PATTERNS: Tuple[Tuple[str, DocKind, Optional[str]], ...] = (
    (rf"^(?:multi\s+)?(?P<subkind>method|submethod|sub|routine)\s+{_NAME}\s*$", DocKind.ROUTINE, None),
    (
        rf"^(?P<subkind>infix|prefix|postfix|circumfix|postcircumfix|listop|term)\s+{_NAME}\s*$",
        DocKind.OPERATOR,
        None,
    ),
    (rf"^trait\s+{_NAME}\s*$", DocKind.TRAIT, "trait"),
    (rf"^pragma\s+{_NAME}\s*$", DocKind.PRAGMA, "pragma"),
    (r"^class\s+(?P<name>[\w:'-]+)\s*$", DocKind.CLASS, "class"),
    (r"^role\s+(?P<name>[\w:'-]+)\s*$", DocKind.ROLE, "role"),
    (r"^enum\s+(?P<name>[\w:'-]+)\s*$", DocKind.ENUM, "enum"),
    (r"^module\s+(?P<name>[\w:'-]+)\s*$", DocKind.MODULE, "module"),
)

DEFAULT_CATEGORIES: Dict[str, DocKind] = {
    "type": DocKind.CLASS,
    "types": DocKind.CLASS,
    "native": DocKind.CLASS,
    "language": DocKind.LANGUAGE,
    "programs": DocKind.PROGRAM,
    "program": DocKind.PROGRAM,
    "pragma": DocKind.PRAGMA,
    "pragmas": DocKind.PRAGMA,
}

DEFAULT_LISTING_SECTIONS: Dict[str, DocKind] = {
    "methods": DocKind.ROUTINE,
    "routines": DocKind.ROUTINE,
    "subroutines": DocKind.ROUTINE,
    "operators": DocKind.OPERATOR,
    "traits": DocKind.TRAIT,
}

DEFAULT_SECTION_TITLES: Tuple[str, ...] = (
    "synopsis",
    "description",
    "methods",
    "routines",
    "subroutines",
    "operators",
    "traits",
    "examples",
    "example",
    "see also",
    "notes",
    "type graph",
    "overview",
)

DEFAULT_INDEX_CATEGORIES: Dict[str, DocKind] = {
    "syntax": DocKind.SYNTAX,
    "variables": DocKind.SYNTAX,
    "pragma": DocKind.PRAGMA,
    "trait": DocKind.TRAIT,
    "traits": DocKind.TRAIT,
    "operator": DocKind.OPERATOR,
    "operators": DocKind.OPERATOR,
    "routine": DocKind.ROUTINE,
    "routines": DocKind.ROUTINE,
    "type": DocKind.CLASS,
    "types": DocKind.CLASS,
    "language": DocKind.LANGUAGE,
}

_TYPE_SUBKINDS = {kind.value: kind for kind in TYPE_KINDS}


@dataclass(frozen=True)
class Classification:
    """Outcome of classifying one heading, item or link target."""

    name: str
    kind: DocKind
    subkind: Optional[str] = None

    @property
    def classified(self) -> bool:
        return self.kind is not DocKind.UNCLASSIFIED


@dataclass(frozen=True)
class HeadingContext:
    """What the extractor knows when it meets a heading."""

    document_kind: Optional[DocKind]
    type_name: Optional[str] = None
    parent_title: Optional[str] = None


@dataclass(frozen=True)
class _CompiledPattern:
    regex: Pattern[str]
    kind: DocKind
    subkind: Optional[str]


class Classifier:
    """Applies the classification tables."""

    def __init__(
        self,
        heading_patterns: Sequence[Tuple[str, DocKind, Optional[str]]] = DEFAULT_HEADING_PATTERNS,
        categories: Optional[Dict[str, DocKind]] = None,
        listing_sections: Optional[Dict[str, DocKind]] = None,
        section_titles: Iterable[str] = DEFAULT_SECTION_TITLES,
        index_categories: Optional[Dict[str, DocKind]] = None,
    ) -> None:
        self._patterns: List[_CompiledPattern] = [
            _CompiledPattern(re.compile(pattern), kind, subkind)
            for pattern, kind, subkind in heading_patterns
        ]
        self._categories = _lower_keys(DEFAULT_CATEGORIES if categories is None else categories)
        self._listing_sections = _lower_keys(
            DEFAULT_LISTING_SECTIONS if listing_sections is None else listing_sections
        )
        self._section_titles = frozenset(title.strip().lower() for title in section_titles)
        self._index_categories = _lower_keys(
            DEFAULT_INDEX_CATEGORIES if index_categories is None else index_categories
        )

    @classmethod
    def from_config(cls, config: ClassifyConfig) -> "Classifier":
        """Build a classifier whose user tables take precedence over the defaults."""
        patterns = [(entry.pattern, entry.kind, entry.subkind) for entry in config.heading_patterns]
        patterns.extend(DEFAULT_HEADING_PATTERNS)
        return cls(
            heading_patterns=patterns,
            categories={**DEFAULT_CATEGORIES, **_lower_keys(config.categories)},
            listing_sections={**DEFAULT_LISTING_SECTIONS, **_lower_keys(config.listing_sections)},
            section_titles=list(DEFAULT_SECTION_TITLES) + list(config.section_titles),
            index_categories={**DEFAULT_INDEX_CATEGORIES, **_lower_keys(config.index_categories)},
        )

    def document_kind(self, document: SourceDocument) -> Optional[DocKind]:
        """Kind declared by a document's metadata, falling back to its directory."""
        metadata = document.metadata
        for candidate in (metadata.kind, document.directory, metadata.category):
            if not candidate:
                continue
            kind = self._categories.get(candidate.lower())
            if kind is None:
                continue
            if kind in TYPE_KINDS and metadata.subkind:
                return _TYPE_SUBKINDS.get(metadata.subkind.lower(), kind)
            return kind
        return None

    def match_pattern(self, text: str) -> Optional[Classification]:
        """Return the first heading-pattern match for ``text``."""
        for pattern in self._patterns:
            match = pattern.regex.match(text)
            if match is None:
                continue
            name = (match.groupdict().get("name") or "").strip()
            if not name:
                continue
            subkind = match.groupdict().get("subkind") or pattern.subkind
            return Classification(name=name, kind=pattern.kind, subkind=subkind)
        return None

    def classify_title(self, title: str, document_kind: Optional[DocKind]) -> Classification:
        """Classify the document's own title (the root documentable)."""
        matched = self.match_pattern(title)
        if matched is not None:
            return matched
        if document_kind is not None:
            subkind = document_kind.value if document_kind in TYPE_KINDS else None
            return Classification(name=title, kind=document_kind, subkind=subkind)
        _LOGGER.debug("Unclassified document title %r", title)
        return Classification(name=title, kind=DocKind.UNCLASSIFIED)

    def classify_heading(self, title: str, context: HeadingContext) -> Classification:
        """Classify a heading nested inside a document."""
        matched = self.match_pattern(title)
        if matched is not None:
            return matched

        document_kind = context.document_kind
        if context.type_name and document_kind in TYPE_KINDS and title == context.type_name:
            return Classification(name=title, kind=document_kind, subkind=document_kind.value)

        if context.parent_title:
            listing_kind = self._listing_sections.get(context.parent_title.strip().lower())
            if listing_kind is not None:
                return Classification(name=title, kind=listing_kind, subkind=listing_kind.value)

        if title.strip().lower() in self._section_titles:
            return Classification(name=title, kind=DocKind.LANGUAGE)

        if document_kind in (DocKind.LANGUAGE, DocKind.PROGRAM, DocKind.PRAGMA):
            kind = DocKind.PROGRAM if document_kind is DocKind.PROGRAM else DocKind.LANGUAGE
            return Classification(name=title, kind=kind)

        _LOGGER.debug("Unclassified heading %r", title)
        return Classification(name=title, kind=DocKind.UNCLASSIFIED)

    def classify_index_item(self, display: str, keys: Sequence[str]) -> Classification:
        """Classify a definition item from its index-marker keys."""
        display = display.strip()
        category = keys[0].strip().lower() if keys else ""
        kind = self._index_categories.get(category)
        if kind is not None:
            name = display or (keys[-1].strip() if len(keys) > 1 else "")
            if name:
                return Classification(name=name, kind=kind, subkind=category)
        name = display or (keys[-1].strip() if keys else "")
        matched = self.match_pattern(name)
        if matched is not None:
            return matched
        _LOGGER.debug("Unclassified definition item %r (keys=%r)", display, list(keys))
        return Classification(name=name, kind=DocKind.UNCLASSIFIED)

    def category_kinds(self, category: str) -> Optional[frozenset]:
        """Expected kinds for a path-style link prefix such as ``type`` or ``routine``."""
        key = category.strip().lower()
        kind = self._categories.get(key) or self._index_categories.get(key)
        if kind is None:
            return None
        if kind in TYPE_KINDS:
            return TYPE_KINDS
        return frozenset({kind})


def _lower_keys(mapping: Dict[str, DocKind]) -> Dict[str, DocKind]:
    return {key.strip().lower(): value for key, value in mapping.items()}


__all__ = [
    "Classification",
    "Classifier",
    "DEFAULT_CATEGORIES",
    "DEFAULT_HEADING_PATTERNS",
    "DEFAULT_INDEX_CATEGORIES",
    "DEFAULT_LISTING_SECTIONS",
    "DEFAULT_SECTION_TITLES",
    "HeadingContext",
]
