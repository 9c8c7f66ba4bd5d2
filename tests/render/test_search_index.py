"""Tests for podsite.render.search."""

from __future__ import annotations

from podsite.classify import Classifier
from podsite.render import Page, Site, build_search_fragment, merge_search_index
from podsite.resolver import Resolver

from tests._fixtures.corpus_builder import extract_corpus

DOC = """
=begin pod :kind<Type> :subkind<class>
=TITLE class Str
=head1 Methods
=head2 method chars

Counts X<characters|length,count>.
=end pod
"""


def _fragment():
    extractions, registry = extract_corpus({"Type/Str.rakudoc": DOC})
    extraction = extractions["Type/Str.rakudoc"]
    site = Site(title="Docs", suffix=".html", pages={"Type/Str.rakudoc": "Type/Str.html"})
    resolution = Resolver(registry, Classifier()).resolve_document(extraction)
    return build_search_fragment(Page(extraction, resolution, "Type/Str.html", site))


def test_fragment_has_one_entry_per_documentable() -> None:
    entries = [entry for entry in _fragment() if entry["kind"] != "index"]
    assert [entry["name"] for entry in entries] == ["Str", "Methods", "chars"]
    assert entries[2] == {
        "name": "chars",
        "kind": "routine",
        "subkind": "method",
        "title": "method chars",
        "page": "Type/Str.html",
        "anchor": "method_chars",
    }


def test_index_marker_keys_point_at_owner_anchor() -> None:
    entries = [entry for entry in _fragment() if entry["kind"] == "index"]
    assert [(entry["name"], entry["anchor"], entry["title"]) for entry in entries] == [
        ("length", "method_chars", "characters"),
        ("count", "method_chars", "characters"),
    ]


def test_merge_dedupes_and_sorts() -> None:
    first = {"name": "b", "kind": "routine", "subkind": None, "title": "b", "page": "x.html", "anchor": "b"}
    second = {"name": "A", "kind": "class", "subkind": None, "title": "A", "page": "y.html", "anchor": "A"}
    merged = merge_search_index([[first, second], [first]])
    assert merged == [second, first]
