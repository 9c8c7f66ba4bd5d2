"""Global documentable registry with an explicit freeze barrier."""

from __future__ import annotations

from collections import defaultdict
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

from .models import DocKind, Documentable

Key = Tuple[str, DocKind]


class RegistryBuilder:
    """Accumulates per-document contributions during the extraction phase.

    ``merge`` is the only mutator and must be called from a single writer.
    Insertion never overwrites: documentables sharing a ``(name, kind)`` key
    are all kept so ambiguity can be reported later.
    """

    def __init__(self) -> None:
        self._entries: Dict[Key, List[Documentable]] = defaultdict(list)
        self._roots: Dict[str, Documentable] = {}
        self._frozen = False

    def merge(self, root: Documentable, documentables: Sequence[Documentable]) -> None:
        if self._frozen:
            raise RuntimeError("Registry is frozen; no further contributions are accepted")
        if root.document in self._roots:
            raise ValueError(f"Document {root.document} was already merged")
        self._roots[root.document] = root
        for documentable in documentables:
            self._entries[documentable.key].append(documentable)

    def freeze(self) -> "Registry":
        """Close the extraction phase and return the read-only registry."""
        self._frozen = True
        return Registry(self._entries, self._roots)


class Registry:
    """Read-only view used during resolution and rendering.

    Candidate tuples are ordered by originating document path, then
    extraction order, so the result never depends on merge order.
    """

    def __init__(self, entries: Mapping[Key, Sequence[Documentable]], roots: Mapping[str, Documentable]) -> None:
        ordered = {key: tuple(sorted(values, key=Documentable.sort_key)) for key, values in entries.items()}
        self._entries: Mapping[Key, Tuple[Documentable, ...]] = MappingProxyType(ordered)
        self._roots: Mapping[str, Documentable] = MappingProxyType(dict(roots))

        by_name: Dict[str, List[Documentable]] = defaultdict(list)
        by_folded: Dict[str, List[Documentable]] = defaultdict(list)
        by_stem: Dict[str, List[Documentable]] = defaultdict(list)
        for (name, _kind), values in ordered.items():
            by_name[name].extend(values)
            by_folded[name.casefold()].extend(values)
        for path, root in roots.items():
            by_stem[_stem(path).casefold()].append(root)
        self._by_name = _frozen_index(by_name)
        self._by_folded = _frozen_index(by_folded)
        self._by_stem = _frozen_index(by_stem)

    def __len__(self) -> int:
        return sum(len(values) for values in self._entries.values())

    def __iter__(self) -> Iterator[Documentable]:
        for key in sorted(self._entries, key=lambda item: (item[0], item[1].value)):
            yield from self._entries[key]

    def keys(self) -> Iterable[Key]:
        return self._entries.keys()

    def get(self, name: str, kind: DocKind) -> Tuple[Documentable, ...]:
        return self._entries.get((name, kind), ())

    def candidates(self, name: str, kinds: Optional[Iterable[DocKind]] = None) -> Tuple[Documentable, ...]:
        """Exact-name matches, optionally restricted to ``kinds``."""
        return _filter(self._by_name.get(name, ()), kinds)

    def candidates_casefold(
        self, name: str, kinds: Optional[Iterable[DocKind]] = None
    ) -> Tuple[Documentable, ...]:
        return _filter(self._by_folded.get(name.casefold(), ()), kinds)

    def documents_with_stem(self, stem: str, kinds: Optional[Iterable[DocKind]] = None) -> Tuple[Documentable, ...]:
        """Root documentables whose file stem matches ``stem`` case-insensitively."""
        return _filter(self._by_stem.get(stem.casefold(), ()), kinds)

    def document_root(self, path: str) -> Optional[Documentable]:
        return self._roots.get(path)

    @property
    def documents(self) -> Tuple[str, ...]:
        return tuple(sorted(self._roots))

    def ambiguous_keys(self) -> List[Key]:
        """Keys shared by more than one documentable."""
        return sorted(
            (key for key, values in self._entries.items() if len(values) > 1),
            key=lambda item: (item[0], item[1].value),
        )


def _filter(values: Sequence[Documentable], kinds: Optional[Iterable[DocKind]]) -> Tuple[Documentable, ...]:
    if kinds is None:
        return tuple(values)
    allowed = frozenset(kinds)
    return tuple(value for value in values if value.kind in allowed)


def _frozen_index(index: Dict[str, List[Documentable]]) -> Mapping[str, Tuple[Documentable, ...]]:
    return MappingProxyType(
        {key: tuple(sorted(values, key=Documentable.sort_key)) for key, values in index.items()}
    )


def _stem(path: str) -> str:
    name = path.rsplit("/", 1)[-1]
    return name.rsplit(".", 1)[0] if "." in name else name


__all__ = ["Registry", "RegistryBuilder"]
