"""Tests for podsite.render.html."""

from __future__ import annotations

import html
import re
from pathlib import Path

from podsite.errors import DiagnosticCategory
from podsite.render import HTMLRenderer, Site, assign_output_paths

from tests._fixtures.corpus_builder import extract_source, render_sources

STR_DOC = """
=begin pod :kind<Type> :subkind<class>
=TITLE class Str
=head1 Methods
=head2 method chars

Counts 1 < 2 & 3 > 0.
=head1 Operators
=head2 infix <=>

Compares.
=head2 infix &&

Ands.

=begin code :lang<raku> :skip-test
if $a < $b && $c > "x" { say 'B<no>' }
=end code
=end pod
"""

INTRO_DOC = """
=TITLE Introduction

=head1 Basics

L<counting|/type/Str#method_chars>, L<the site|https://raku.org>,
L<above|#Basics>, L<nothing|NoSuchThing> and X<foo|bar>.

=item X<|Syntax,does> Mixes in a role.
"""

WIDGET = "=TITLE class {name}\n=head2 method Widget\n\nMakes widgets.\n"


def _pages():
    pages, _, _ = render_sources(
        {"Type/Str.rakudoc": STR_DOC, "Language/intro.rakudoc": INTRO_DOC}
    )
    return pages


def test_documentable_headings_carry_anchor_name_and_kind() -> None:
    page = _pages()["Type/Str.rakudoc"]
    assert '<h1 id="Str" data-name="Str" data-kind="class">class Str</h1>' in page
    assert '<h3 id="method_chars" data-name="chars" data-kind="routine">method chars</h3>' in page
    assert '<h2 id="Methods" data-name="Methods" data-kind="language">Methods</h2>' in page


def test_literal_text_is_escaped() -> None:
    page = _pages()["Type/Str.rakudoc"]
    assert "<p>Counts 1 &lt; 2 &amp; 3 &gt; 0.</p>" in page
    assert "<h3" in page and "infix &lt;=&gt;</h3>" in page


def test_names_round_trip_through_rendered_output() -> None:
    extraction = extract_source(STR_DOC, "Type/Str.rakudoc")
    page = _pages()["Type/Str.rakudoc"]
    rendered_names = {html.unescape(value) for value in re.findall(r'data-name="([^"]*)"', page)}
    assert rendered_names == {item.name for item in extraction.root.walk()}
    assert "<=>" in rendered_names
    assert "&&" in rendered_names


def test_code_blocks_are_verbatim_apart_from_minimal_escaping() -> None:
    page = _pages()["Type/Str.rakudoc"]
    match = re.search(r'<pre class="code" data-skip-test="true"><code class="language-raku">(.*?)</code></pre>', page, re.S)
    assert match is not None
    body = match.group(1)
    assert body == "if $a &lt; $b &amp;&amp; $c &gt; \"x\" { say 'B&lt;no&gt;' }"
    assert html.unescape(body) == "if $a < $b && $c > \"x\" { say 'B<no>' }"


def test_links_render_by_status() -> None:
    page = _pages()["Language/intro.rakudoc"]
    assert '<a href="../Type/Str.html#method_chars">counting</a>' in page
    assert '<a class="external" href="https://raku.org">the site</a>' in page
    assert '<a href="#Basics">above</a>' in page
    assert '<span class="broken-link" title="NoSuchThing">nothing</span>' in page
    assert '<span class="index-entry" data-keys="bar">foo</span>' in page


def test_definition_items_are_addressable() -> None:
    page = _pages()["Language/intro.rakudoc"]
    assert '<ul class="definitions">' in page
    assert 'id="syntax_does" data-name="does" data-kind="syntax"' in page


def test_ambiguous_links_list_candidates() -> None:
    pages, _, _ = render_sources(
        {
            "Type/A.rakudoc": WIDGET.format(name="A"),
            "Type/B.rakudoc": WIDGET.format(name="B"),
            "Language/use.rakudoc": "=TITLE Use\n\nCall L<Widget>.\n",
        }
    )
    page = pages["Language/use.rakudoc"]
    assert (
        '<a class="ambiguous" href="../Type/A.html#method_Widget" '
        'title="Ambiguous: routine Widget (Type/A.rakudoc#method_Widget); '
        'routine Widget (Type/B.rakudoc#method_Widget)">Widget</a>'
    ) in page


def test_page_has_table_of_contents_and_index_link() -> None:
    page = _pages()["Type/Str.rakudoc"]
    assert '<nav class="toc">' in page
    assert '<a href="#Methods">Methods</a>' in page
    assert '<a href="#method_chars">method chars</a>' in page
    assert '<header><a href="../index.html">Docs</a></header>' in page


def test_page_without_title_still_renders_root_heading() -> None:
    pages, _, _ = render_sources({"Language/bare.rakudoc": "Just text.\n"})
    assert '<h1 id="bare" data-name="bare" data-kind="language">bare</h1>' in pages["Language/bare.rakudoc"]


def test_index_page_groups_documents_by_kind() -> None:
    _, _, site = render_sources({"Type/Str.rakudoc": STR_DOC, "Language/intro.rakudoc": INTRO_DOC})
    index = HTMLRenderer().render_index(site)
    assert "<h2>Class</h2>" in index
    assert "<h2>Language</h2>" in index
    assert '<a href="Type/Str.html" data-name="Str">class Str</a>' in index
    assert index.index("<h2>Class</h2>") < index.index("<h2>Language</h2>")


def test_output_path_replaces_suffix() -> None:
    renderer = HTMLRenderer()
    assert renderer.output_path("Type/Str.rakudoc") == "Type/Str.html"
    assert renderer.output_path("intro.pod6") == "intro.html"
    assert Site(title="t", suffix=".html", pages={"a": "a.html"}).page_for("missing") is None


def test_assign_output_paths_reserves_index_and_separates_stems() -> None:
    pages, diagnostics = assign_output_paths(
        HTMLRenderer(), ["Type/Str.rakudoc", "Type/Str.pod6", "index.rakudoc", "Type/str.pod"]
    )

    assert pages == {
        "Type/Str.pod6": "Type/Str.html",
        "Type/Str.rakudoc": "Type/Str.rakudoc.html",
        "Type/str.pod": "Type/str.pod.html",
        "index.rakudoc": "index.rakudoc.html",
    }
    assert [d.path for d in diagnostics] == ["Type/Str.rakudoc", "Type/str.pod", "index.rakudoc"]
    assert all(d.category is DiagnosticCategory.EXTRACTION_WARNING for d in diagnostics)


def test_templates_dir_overrides_bundled_page_template(tmp_path: Path) -> None:
    (tmp_path / "page.html.j2").write_text("<custom>{{ title }}</custom>\n{{ body|safe }}\n", encoding="utf-8")
    renderer = HTMLRenderer(templates_dir=tmp_path)

    pages, _, site = render_sources({"Language/intro.rakudoc": INTRO_DOC}, renderer)

    page = pages["Language/intro.rakudoc"]
    assert page.startswith("<custom>Introduction | Docs</custom>\n")
    assert "<!DOCTYPE html>" not in page
    assert renderer.render_index(site).startswith("<!DOCTYPE html>")


def test_titles_are_escaped_in_page_shell() -> None:
    pages, _, _ = render_sources({"a.rakudoc": "=TITLE a < b\n"}, site_title="R&D")
    page = pages["a.rakudoc"]
    assert "<title>a &lt; b | R&amp;D</title>" in page
    assert '<header><a href="index.html">R&amp;D</a></header>' in page
