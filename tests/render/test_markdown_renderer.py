"""Tests for podsite.render.markdown."""

from __future__ import annotations

from podsite.render import MarkdownRenderer
from podsite.render.markdown import escape_markdown

from tests._fixtures.corpus_builder import render_sources

STR_DOC = """
=begin pod :kind<Type> :subkind<class>
=TITLE class Str
=head1 Methods
=head2 method chars

Counts a*b_c with C<a`b>.

=begin code :lang<raku>
say '```';
=end code
=end pod
"""

INTRO_DOC = """
=TITLE Introduction

See L<counting|/type/Str#method_chars> and L<nothing|NoSuchThing>.
"""


def _pages():
    pages, _, _ = render_sources(
        {"Type/Str.rakudoc": STR_DOC, "Language/intro.rakudoc": INTRO_DOC},
        MarkdownRenderer(),
    )
    return pages


def test_headings_follow_their_anchor() -> None:
    page = _pages()["Type/Str.rakudoc"]
    assert page.startswith('<a id="Str" data-name="Str" data-kind="class"></a>\n\n# class Str\n')
    assert '<a id="method_chars" data-name="chars" data-kind="routine"></a>\n### method chars' in page


def test_text_metacharacters_are_escaped() -> None:
    page = _pages()["Type/Str.rakudoc"]
    assert "Counts a\\*b\\_c with ``a`b``." in page


def test_code_fence_outgrows_backticks_in_content() -> None:
    page = _pages()["Type/Str.rakudoc"]
    assert "````raku\nsay '```';\n````" in page


def test_links_are_relative_and_broken_links_plain() -> None:
    page = _pages()["Language/intro.rakudoc"]
    assert "[counting](<../Type/Str.md#method_chars>)" in page
    assert "and nothing." in page
    assert page.rstrip().endswith("[Docs](../index.md)")


def test_escape_markdown() -> None:
    assert escape_markdown("a|b [c] #d") == "a\\|b \\[c\\] \\#d"


def test_index_lists_documents() -> None:
    _, _, site = render_sources({"Language/intro.rakudoc": INTRO_DOC}, MarkdownRenderer())
    index = MarkdownRenderer().render_index(site)
    assert index.startswith("# Docs\n")
    assert "## Language" in index
    assert "- [Introduction](Language/intro.md)" in index


def test_empty_code_span_renders_nothing() -> None:
    pages, _, _ = render_sources({"a.rakudoc": "=TITLE a\n\nEmpty C<> here.\n"}, MarkdownRenderer())
    assert "Empty  here." in pages["a.rakudoc"]
    assert "``" not in pages["a.rakudoc"]
