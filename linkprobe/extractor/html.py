"""HTML link extraction using BeautifulSoup.

``href`` and ``src`` attributes are collected from every element, and bare
URLs are picked up from visible text.  Comments, doctype/CDATA sections and
the text of ``<script>``, ``<style>``, ``<code>`` and ``<pre>`` are ignored.
"""

from __future__ import annotations

import logging

from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup
from bs4.element import NavigableString, PreformattedString, Tag

from linkprobe.extractor.common import Candidate, LineIndex, build_links, scan_bare
from linkprobe.extractor.plaintext import extract_plaintext
from linkprobe.models import Document, LinkKind, RawLink

logger = logging.getLogger(__name__)

_SILENT_PARENTS = {"script", "style", "code", "pre", "a", "textarea", "template"}
# <base href> changes resolution rather than being a link of its own
_SKIP_HREF = {"base"}


def _tag_offset(tag: Tag, index: LineIndex, fallback: int) -> int:
    line = getattr(tag, "sourceline", None)
    column = getattr(tag, "sourcepos", None)
    if line is None or column is None:
        return fallback
    return index.offset(line, column + 1)


def _silenced(node: NavigableString) -> bool:
    parent = node.parent
    while parent is not None:
        if parent.name in _SILENT_PARENTS:
            return True
        parent = parent.parent
    return False


def extract_html(document: Document) -> list[RawLink]:
    content = document.content
    try:
        soup = BeautifulSoup(content, "html.parser")
    except ParserRejectedMarkup as exc:
        logger.debug("html parser rejected %s (%s); scanning as text", document.id, exc)
        return extract_plaintext(document)
    index = LineIndex(content)
    candidates: list[Candidate] = []
    cursor = 0

    for node in soup.descendants:
        if isinstance(node, Tag):
            cursor = max(cursor, _tag_offset(node, index, cursor))
            for attr, kind in (("href", LinkKind.HTML_HREF), ("src", LinkKind.HTML_SRC)):
                if attr == "href" and node.name in _SKIP_HREF:
                    continue
                value = node.get(attr)
                if not isinstance(value, str) or not value.strip():
                    continue
                value = value.strip()
                found = content.find(value, cursor)
                candidates.append(Candidate(found if found != -1 else cursor, value, kind))
        elif isinstance(node, PreformattedString):
            continue
        elif isinstance(node, NavigableString):
            text = str(node)
            if not text.strip() or _silenced(node):
                continue
            found = content.find(text, cursor)
            if found == -1:
                # entities were decoded; positions are approximate
                found = cursor
            else:
                cursor = found + len(text)
            candidates.extend(scan_bare(text, found))

    return build_links(content, candidates)
