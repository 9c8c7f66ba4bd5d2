"""Tests for podsite.resolver."""

from __future__ import annotations

from typing import Dict

from podsite.classify import Classifier
from podsite.errors import DiagnosticCategory
from podsite.markup import IndexMarker, Link, iter_references
from podsite.models import LinkStatus, ResolvedLink
from podsite.registry import RegistryBuilder
from podsite.resolver import Resolver, resolve

from tests._fixtures.corpus_builder import extract_corpus

STR_DOC = """
=begin pod :kind<Type> :subkind<class>
=TITLE class Str
=head1 Methods
=head2 method chars

Counts.
=end pod
"""

INTRO_DOC = """
=TITLE Introduction

=head1 Basics

See L<chars>, L<the method|method chars>, L<Str|/type/Str>,
L<counting|/type/Str#method_chars>, L<the site|https://raku.org>,
L<above|#Basics> and L<nothing|NoSuchThing>.
"""


def _links_by_target(extraction, resolution) -> Dict[str, ResolvedLink]:
    found: Dict[str, ResolvedLink] = {}
    for block in extraction.nodes:
        for node in iter_references(block):
            if isinstance(node, Link):
                found[node.target] = resolution.links[node.ref]
    return found


def test_resolution_policy_across_target_forms() -> None:
    extractions, registry = extract_corpus(
        {"Type/Str.rakudoc": STR_DOC, "Language/intro.rakudoc": INTRO_DOC}
    )
    intro = extractions["Language/intro.rakudoc"]
    resolution = Resolver(registry).resolve_document(intro)
    links = _links_by_target(intro, resolution)

    assert links["chars"].status is LinkStatus.RESOLVED
    assert links["chars"].target.label() == "routine chars (Type/Str.rakudoc#method_chars)"
    assert links["method chars"].target is links["chars"].target

    type_link = links["/type/Str"]
    assert type_link.status is LinkStatus.RESOLVED
    assert type_link.target is extractions["Type/Str.rakudoc"].root

    fragment_link = links["/type/Str#method_chars"]
    assert fragment_link.target is type_link.target
    assert fragment_link.fragment == "method_chars"

    external = links["https://raku.org"]
    assert external.status is LinkStatus.EXTERNAL
    assert external.href == "https://raku.org"

    local = links["#Basics"]
    assert local.status is LinkStatus.RESOLVED
    assert local.target is intro.root.children[0]

    assert links["NoSuchThing"].status is LinkStatus.BROKEN
    assert links["NoSuchThing"].target is None

    assert len(resolution.diagnostics) == 1
    broken = resolution.diagnostics[0]
    assert broken.category is DiagnosticCategory.BROKEN_REFERENCE
    assert broken.target == "NoSuchThing"
    assert broken.path == "Language/intro.rakudoc"
    assert broken.line == 5


def test_ambiguous_target_lists_every_candidate_and_defaults_to_first() -> None:
    widget = "=TITLE class {name}\n=head2 method Widget\n\nMakes widgets.\n"
    extractions, registry = extract_corpus(
        {
            "Type/B.rakudoc": widget.format(name="B"),
            "Type/A.rakudoc": widget.format(name="A"),
            "Language/use.rakudoc": "=TITLE Use\n\nCall L<Widget>.\n",
        }
    )
    resolution = Resolver(registry).resolve_document(extractions["Language/use.rakudoc"])

    (resolved,) = resolution.links.values()
    assert resolved.status is LinkStatus.AMBIGUOUS
    assert resolved.target.document == "Type/A.rakudoc"
    assert len(resolved.candidates) == 2

    (diagnostic,) = resolution.diagnostics
    assert diagnostic.category is DiagnosticCategory.AMBIGUOUS_REFERENCE
    assert diagnostic.candidates == (
        "routine Widget (Type/A.rakudoc#method_Widget)",
        "routine Widget (Type/B.rakudoc#method_Widget)",
    )


def test_expected_kind_narrows_candidates() -> None:
    extractions, registry = extract_corpus(
        {
            "Type/Foo.rakudoc": "=TITLE class Foo\n\nA type.\n",
            "Type/Bar.rakudoc": "=TITLE class Bar\n=head2 method Foo\n\nA method.\n",
            "Language/links.rakudoc": "=TITLE Links\n\nL</type/Foo> L<method Foo> L<Foo>\n",
        }
    )
    links = extractions["Language/links.rakudoc"]
    resolution = Resolver(registry).resolve_document(links)
    by_target = _links_by_target(links, resolution)

    assert by_target["/type/Foo"].status is LinkStatus.RESOLVED
    assert by_target["/type/Foo"].target.document == "Type/Foo.rakudoc"
    assert by_target["method Foo"].status is LinkStatus.RESOLVED
    assert by_target["method Foo"].target.document == "Type/Bar.rakudoc"
    assert by_target["Foo"].status is LinkStatus.AMBIGUOUS
    assert [d.category for d in resolution.diagnostics] == [DiagnosticCategory.AMBIGUOUS_REFERENCE]


def test_case_insensitive_fallback() -> None:
    extractions, registry = extract_corpus(
        {"Type/Str.rakudoc": STR_DOC, "Language/x.rakudoc": "=TITLE X\n\nL<CHARS>\n"}
    )
    resolution = Resolver(registry).resolve_document(extractions["Language/x.rakudoc"])
    (resolved,) = resolution.links.values()
    assert resolved.status is LinkStatus.RESOLVED
    assert resolved.target.name == "chars"
    assert resolution.diagnostics == []


def test_path_target_matches_document_stem() -> None:
    extractions, registry = extract_corpus(
        {
            "Language/traps.rakudoc": "=TITLE Traps to avoid\n\nCareful.\n",
            "Language/x.rakudoc": "=TITLE X\n\nRead L<the traps|/language/traps>.\n",
        }
    )
    resolution = Resolver(registry).resolve_document(extractions["Language/x.rakudoc"])
    (resolved,) = resolution.links.values()
    assert resolved.status is LinkStatus.RESOLVED
    assert resolved.target is extractions["Language/traps.rakudoc"].root


def test_index_markers_resolve_to_owning_documentable() -> None:
    extractions, registry = extract_corpus(
        {"Language/x.rakudoc": "=TITLE X\n=head1 Section\n\nText X<foo|bar> here.\n"}
    )
    extraction = extractions["Language/x.rakudoc"]
    resolution = Resolver(registry).resolve_document(extraction)
    markers = [
        node for block in extraction.nodes for node in iter_references(block) if isinstance(node, IndexMarker)
    ]
    (marker,) = markers
    assert resolution.links[marker.ref].target is extraction.root.children[0]


def test_each_broken_link_reports_once() -> None:
    extractions, registry = extract_corpus(
        {"Language/x.rakudoc": "=TITLE X\n\nL<Gone> and L<Gone>.\n"}
    )
    resolution = Resolver(registry).resolve_document(extractions["Language/x.rakudoc"])
    assert [d.category for d in resolution.diagnostics] == [DiagnosticCategory.BROKEN_REFERENCE] * 2


def test_resolution_is_independent_of_merge_order() -> None:
    sources = {
        "a.rakudoc": "=TITLE a\n\nSee L<Foo>.\n",
        "b.rakudoc": "=TITLE b\n=head2 Foo\n\nDefined here.\n",
    }
    extractions, _ = extract_corpus(sources)
    outcomes = []
    for order in (sorted(extractions), sorted(extractions, reverse=True)):
        builder = RegistryBuilder()
        for path in order:
            builder.merge(extractions[path].root, extractions[path].documentables)
        resolved = resolve(extractions.values(), builder.freeze(), Classifier())
        (link,) = resolved["a.rakudoc"].links.values()
        outcomes.append((link.status, link.target.label()))
    assert outcomes[0] == outcomes[1] == (LinkStatus.RESOLVED, "unclassified Foo (b.rakudoc#Foo)")
