"""Cross-reference resolution against the frozen registry."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from .classify import Classifier
from .errors import Diagnostic, DiagnosticCategory
from .extractor import Extraction
from .logging import get_logger
from .markup import IndexMarker, Link, iter_references
from .models import DocKind, Documentable, LinkStatus, ResolvedLink
from .registry import Registry

_LOGGER = get_logger("resolver")

_EXTERNAL_SCHEMES = ("http://", "https://", "mailto:", "irc://", "ircs://", "ftp://")


@dataclass(frozen=True)
class TargetSpec:
    """A link target broken into lookup parts."""

    raw: str
    name: str
    kinds: Optional[FrozenSet[DocKind]] = None
    fragment: Optional[str] = None
    path_style: bool = False
    local: bool = False
    external: bool = False


@dataclass
class DocumentResolution:
    """Resolved references of one document, keyed by node ``ref``."""

    path: str
    links: Dict[int, ResolvedLink] = field(default_factory=dict)
    diagnostics: List[Diagnostic] = field(default_factory=list)


class Resolver:
    """Resolves Link and IndexMarker nodes; never mutates the registry or trees.

    Policy: exact ``(name, expected kinds)``, then exact name across kinds,
    then the same two steps case-insensitively. One candidate resolves;
    several produce an ambiguity diagnostic and default to the first
    declared; none produces a broken-reference diagnostic.
    """

    def __init__(self, registry: Registry, classifier: Optional[Classifier] = None) -> None:
        self.registry = registry
        self.classifier = classifier or Classifier()

    def resolve_document(self, extraction: Extraction) -> DocumentResolution:
        resolution = DocumentResolution(path=extraction.path)
        for index, block in enumerate(extraction.nodes):
            for node in iter_references(block):
                if isinstance(node, IndexMarker):
                    owner = extraction.owner_of(index)
                    resolution.links[node.ref] = ResolvedLink(
                        ref=node.ref, status=LinkStatus.RESOLVED, target=owner
                    )
                    continue
                resolved, diagnostic = self.resolve_link(node, extraction, line=block.line)
                resolution.links[node.ref] = resolved
                if diagnostic is not None:
                    resolution.diagnostics.append(diagnostic)
        return resolution

    def resolve_link(
        self, link: Link, extraction: Extraction, *, line: Optional[int] = None
    ) -> Tuple[ResolvedLink, Optional[Diagnostic]]:
        spec = self.parse_target(link.target)
        if spec.external:
            return ResolvedLink(ref=link.ref, status=LinkStatus.EXTERNAL, href=spec.raw), None
        if spec.local:
            candidates = _local_candidates(extraction, spec.name)
        else:
            candidates = self.lookup(spec)
        return self._outcome(link, spec, candidates, extraction.path, line)

    def parse_target(self, target: str) -> TargetSpec:
        raw = target.strip()
        if raw.lower().startswith(_EXTERNAL_SCHEMES):
            return TargetSpec(raw=raw, name=raw, external=True)
        if raw.startswith("#"):
            return TargetSpec(raw=raw, name=raw[1:].strip(), local=True)

        body, _, fragment = raw.partition("#")
        body = body.strip()
        fragment = fragment.strip() or None

        if body.startswith("/"):
            segments = [segment for segment in body.strip("/").split("/") if segment]
            if len(segments) >= 2:
                kinds = self.classifier.category_kinds(segments[0])
                name = "/".join(segments[1:])
            else:
                kinds = None
                name = segments[0] if segments else ""
            return TargetSpec(raw=raw, name=name, kinds=kinds, fragment=fragment, path_style=True)

        qualified = self.classifier.match_pattern(body)
        if qualified is not None:
            return TargetSpec(
                raw=raw, name=qualified.name, kinds=frozenset({qualified.kind}), fragment=fragment
            )
        return TargetSpec(raw=raw, name=body, fragment=fragment)

    def lookup(self, spec: TargetSpec) -> Tuple[Documentable, ...]:
        """Apply the resolution order and return the first non-empty step."""
        registry = self.registry
        if spec.kinds is not None:
            found = self._with_stems(registry.candidates(spec.name, spec.kinds), spec, spec.kinds)
            if found:
                return found
        found = registry.candidates(spec.name)
        if found:
            return found
        if spec.kinds is not None:
            found = registry.candidates_casefold(spec.name, spec.kinds)
            if found:
                return found
        return self._with_stems(registry.candidates_casefold(spec.name), spec, None)

    def _with_stems(
        self,
        candidates: Tuple[Documentable, ...],
        spec: TargetSpec,
        kinds: Optional[Iterable[DocKind]],
    ) -> Tuple[Documentable, ...]:
        if not spec.path_style:
            return candidates
        merged = list(candidates)
        for root in self.registry.documents_with_stem(spec.name, kinds):
            if root not in merged:
                merged.append(root)
        return tuple(sorted(merged, key=Documentable.sort_key))

    def _outcome(
        self,
        link: Link,
        spec: TargetSpec,
        candidates: Sequence[Documentable],
        path: str,
        line: Optional[int],
    ) -> Tuple[ResolvedLink, Optional[Diagnostic]]:
        if not candidates:
            _LOGGER.debug("%s:%s: broken link %r", path, line or "-", spec.raw)
            diagnostic = Diagnostic(
                DiagnosticCategory.BROKEN_REFERENCE,
                path,
                f"link target '{spec.raw}' does not match any documentable",
                line=line,
                target=spec.raw,
            )
            return ResolvedLink(ref=link.ref, status=LinkStatus.BROKEN), diagnostic

        if len(candidates) == 1:
            return (
                ResolvedLink(
                    ref=link.ref,
                    status=LinkStatus.RESOLVED,
                    target=candidates[0],
                    candidates=tuple(candidates),
                    fragment=spec.fragment,
                ),
                None,
            )

        labels = tuple(candidate.label() for candidate in candidates)
        _LOGGER.debug("%s:%s: ambiguous link %r (%d candidates)", path, line or "-", spec.raw, len(labels))
        diagnostic = Diagnostic(
            DiagnosticCategory.AMBIGUOUS_REFERENCE,
            path,
            f"link target '{spec.raw}' matches {len(candidates)} documentables; using {labels[0]}",
            line=line,
            target=spec.raw,
            candidates=labels,
        )
        resolved = ResolvedLink(
            ref=link.ref,
            status=LinkStatus.AMBIGUOUS,
            target=candidates[0],
            candidates=tuple(candidates),
            fragment=spec.fragment,
        )
        return resolved, diagnostic


def resolve(
    extractions: Iterable[Extraction], registry: Registry, classifier: Optional[Classifier] = None
) -> Mapping[str, DocumentResolution]:
    """Resolve every document against ``registry``."""
    resolver = Resolver(registry, classifier)
    return {extraction.path: resolver.resolve_document(extraction) for extraction in extractions}


def _local_candidates(extraction: Extraction, fragment: str) -> Tuple[Documentable, ...]:
    documentables = list(extraction.root.walk())
    for matches in (
        [item for item in documentables if item.anchor == fragment],
        [item for item in documentables if item.name == fragment],
        [item for item in documentables if item.name.casefold() == fragment.casefold()],
    ):
        if matches:
            return tuple(matches)
    return ()


__all__ = ["DocumentResolution", "Resolver", "TargetSpec", "resolve"]
