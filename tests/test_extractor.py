"""Tests for the link extractors (Markdown, HTML, plain text).

Extraction is pure, so these tests feed literal documents and compare the
raw links that come back: their text, kind, order and source position.
"""

from __future__ import annotations

from linkprobe.extractor import extract, format_for_path
from linkprobe.extractor.common import trim_url
from linkprobe.models import Document, DocumentFormat, LinkKind


def _md(content: str) -> Document:
    return Document(id="doc.md", content=content, format=DocumentFormat.MARKDOWN, base="doc.md")


def _html(content: str) -> Document:
    return Document(id="page.html", content=content, format=DocumentFormat.HTML, base="page.html")


def _text(content: str) -> Document:
    return Document.from_string(content)


# ---------------------------------------------------------------------------
# Fixtures / constants
# ---------------------------------------------------------------------------

_MARKDOWN = """\
# Title

See [docs](./docs/guide.md#install) and ![logo](img/logo.png "Logo").
Visit <https://example.com/auto> or https://example.org/bare.
[ref]: https://example.net/ref

```bash
curl https://ignored.example.com
```

Inline `https://also-ignored.example.com` code.
Mail me at someone@example.com.
"""

_HTML = """\
<!DOCTYPE html>
<html><head><link rel="stylesheet" href="style.css"></head>
<body>
<!-- <a href="https://commented.example.com">x</a> -->
<a href="https://example.com/a">https://example.com/a</a>
<img src="/img/b.png">
<p>Text with https://example.org/text link.</p>
<script>var u = "https://script.example.com";</script>
</body></html>
"""


# ---------------------------------------------------------------------------
# Markdown
# ---------------------------------------------------------------------------

class TestMarkdownExtractor:
    def test_recognises_every_link_form_in_order(self) -> None:
        links = extract(_md(_MARKDOWN))
        assert [(l.text, l.kind) for l in links] == [
            ("./docs/guide.md#install", LinkKind.MARKDOWN_INLINE),
            ("img/logo.png", LinkKind.MARKDOWN_IMAGE),
            ("https://example.com/auto", LinkKind.MARKDOWN_AUTOLINK),
            ("https://example.org/bare", LinkKind.BARE_URL),
            ("https://example.net/ref", LinkKind.MARKDOWN_REFERENCE),
            ("someone@example.com", LinkKind.BARE_MAIL),
        ]

    def test_indices_follow_source_order(self) -> None:
        links = extract(_md(_MARKDOWN))
        assert [l.index for l in links] == list(range(len(links)))
        assert [l.offset for l in links] == sorted(l.offset for l in links)

    def test_positions_are_one_based(self) -> None:
        links = extract(_md(_MARKDOWN))
        first = links[0]
        assert first.line == 3
        assert _MARKDOWN.splitlines()[2][first.column - 1:].startswith("./docs/guide.md")

    def test_code_blocks_and_spans_are_ignored(self) -> None:
        texts = [l.text for l in extract(_md(_MARKDOWN))]
        assert not any("ignored" in t for t in texts)

    def test_indented_code_block_is_ignored(self) -> None:
        content = "Intro paragraph.\n\n    https://indented.example.com\n\nAfter https://kept.example.com\n"
        assert [l.text for l in extract(_md(content))] == ["https://kept.example.com"]

    def test_tilde_fence_is_ignored(self) -> None:
        content = "~~~\n[x](https://fenced.example.com)\n~~~\n[y](https://kept.example.com)\n"
        assert [l.text for l in extract(_md(content))] == ["https://kept.example.com"]

    def test_nested_list_item_is_not_code(self) -> None:
        content = "- item\n\n    - [b](http://x.test/nested)\n"
        assert [l.text for l in extract(_md(content))] == ["http://x.test/nested"]

    def test_loose_list_paragraph_is_not_code(self) -> None:
        content = (
            "1. First\n\n    More at https://x.test/para\n\n"
            "Plain text.\n\n    https://code.example.com\n"
        )
        assert [l.text for l in extract(_md(content))] == ["https://x.test/para"]

    def test_fence_inside_list_item_is_ignored(self) -> None:
        content = "- step\n\n    ```\n    curl https://fenced.example.com\n    ```\n\n    [kept](https://kept.example.com)\n"
        assert [l.text for l in extract(_md(content))] == ["https://kept.example.com"]

    def test_reference_links_are_reported_per_definition(self) -> None:
        content = (
            "Read [the docs][d] and [again][d].\n\n"
            "[d]: https://example.com/docs\n"
            "[unused]: https://example.com/unused\n"
        )
        links = extract(_md(content))
        assert [(l.text, l.kind, l.line) for l in links] == [
            ("https://example.com/docs", LinkKind.MARKDOWN_REFERENCE, 3),
            ("https://example.com/unused", LinkKind.MARKDOWN_REFERENCE, 4),
        ]

    def test_duplicates_are_emitted_separately(self) -> None:
        links = extract(_md("[a](http://x.test) and [b](http://x.test)"))
        assert [l.text for l in links] == ["http://x.test", "http://x.test"]
        assert links[0].offset != links[1].offset

    def test_nested_badge_yields_image_and_link(self) -> None:
        content = "[![CI](https://ci.example/badge.svg)](https://ci.example/run)"
        links = extract(_md(content))
        assert [(l.text, l.kind) for l in links] == [
            ("https://ci.example/badge.svg", LinkKind.MARKDOWN_IMAGE),
            ("https://ci.example/run", LinkKind.MARKDOWN_INLINE),
        ]

    def test_parentheses_inside_destination(self) -> None:
        content = "[wiki](https://en.wikipedia.org/wiki/Foo_(bar)) and [js](javascript:void(0))"
        texts = [l.text for l in extract(_md(content))]
        assert texts == ["https://en.wikipedia.org/wiki/Foo_(bar)", "javascript:void(0)"]

    def test_angle_bracket_destination(self) -> None:
        links = extract(_md("[spaced](<my file.md>)"))
        assert [l.text for l in links] == ["my file.md"]

    def test_inline_html_links(self) -> None:
        content = 'Logo: <img src="assets/logo.svg"> and <a href="https://example.com/x">x</a>'
        links = extract(_md(content))
        assert [(l.text, l.kind) for l in links] == [
            ("assets/logo.svg", LinkKind.HTML_SRC),
            ("https://example.com/x", LinkKind.HTML_HREF),
        ]

    def test_link_text_url_is_not_reported_twice(self) -> None:
        links = extract(_md("[https://shown.example](https://real.example)"))
        assert [l.text for l in links] == ["https://real.example"]

    def test_malformed_syntax_does_not_raise(self) -> None:
        content = "[broken](http://x.test\n\n[unclosed [nested](\n<https://ok.example/>"
        links = extract(_md(content))
        assert "https://ok.example/" in [l.text for l in links]

    def test_empty_document(self) -> None:
        assert extract(_md("")) == []


# ---------------------------------------------------------------------------
# HTML
# ---------------------------------------------------------------------------

class TestHtmlExtractor:
    def test_attributes_and_text_urls(self) -> None:
        links = extract(_html(_HTML))
        assert [(l.text, l.kind) for l in links] == [
            ("style.css", LinkKind.HTML_HREF),
            ("https://example.com/a", LinkKind.HTML_HREF),
            ("/img/b.png", LinkKind.HTML_SRC),
            ("https://example.org/text", LinkKind.BARE_URL),
        ]

    def test_comments_and_scripts_are_ignored(self) -> None:
        texts = [l.text for l in extract(_html(_HTML))]
        assert "https://commented.example.com" not in texts
        assert "https://script.example.com" not in texts

    def test_line_numbers(self) -> None:
        links = {l.text: l for l in extract(_html(_HTML))}
        assert links["style.css"].line == 2
        assert links["/img/b.png"].line == 6
        assert links["https://example.org/text"].line == 7

    def test_base_href_is_not_a_link(self) -> None:
        links = extract(_html('<base href="https://example.com/"><a href="x.html">x</a>'))
        assert [l.text for l in links] == ["x.html"]

    def test_broken_markup_does_not_raise(self) -> None:
        links = extract(_html('<a href="https://ok.example/"><div <p>unterminated'))
        assert [l.text for l in links] == ["https://ok.example/"]


# ---------------------------------------------------------------------------
# Plain text
# ---------------------------------------------------------------------------

class TestPlaintextExtractor:
    def test_urls_and_mail_addresses(self) -> None:
        content = (
            "Go to https://example.com/path). Or mail admin@example.org,\n"
            "ftp://files.example.com/x and mailto:x@y.org."
        )
        links = extract(_text(content))
        assert [(l.text, l.kind) for l in links] == [
            ("https://example.com/path", LinkKind.BARE_URL),
            ("admin@example.org", LinkKind.BARE_MAIL),
            ("ftp://files.example.com/x", LinkKind.BARE_URL),
            ("mailto:x@y.org", LinkKind.BARE_URL),
        ]
        assert links[2].line == 2

    def test_no_links(self) -> None:
        assert extract(_text("nothing to see here")) == []


class TestHelpers:
    def test_trim_url_keeps_balanced_parentheses(self) -> None:
        assert trim_url("https://en.wikipedia.org/wiki/Foo_(bar)") == "https://en.wikipedia.org/wiki/Foo_(bar)"
        assert trim_url("https://example.com/x).") == "https://example.com/x"
        assert trim_url("https://example.com/x!?") == "https://example.com/x"

    def test_format_for_path(self) -> None:
        assert format_for_path("README.md") is DocumentFormat.MARKDOWN
        assert format_for_path("docs/index.HTML") is DocumentFormat.HTML
        assert format_for_path("notes.txt") is DocumentFormat.PLAINTEXT
        assert format_for_path("Makefile") is DocumentFormat.PLAINTEXT
