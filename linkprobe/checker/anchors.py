"""Collect the fragment anchors a document defines.

Markdown headings are turned into GitHub-style slugs; explicit ``id`` and
``name`` attributes count in both Markdown (inline HTML) and HTML files.
"""

from __future__ import annotations

import re
from collections import Counter

from bs4 import BeautifulSoup

from linkprobe.extractor import format_for_path
from linkprobe.extractor.markdown import mask_code
from linkprobe.models import DocumentFormat

_ATX_RE = re.compile(r"^[ ]{0,3}#{1,6}[ \t]+(.*?)(?:[ \t]+#+)?[ \t]*$", re.MULTILINE)
_SETEXT_RE = re.compile(r"^(?P<text>[^\n]*\S[^\n]*)\n[ ]{0,3}(?:=+|-+)[ \t]*$", re.MULTILINE)
_MD_LINK_RE = re.compile(r"!?\[([^\]]*)\]\([^)]*\)")
_HTML_TAG_RE = re.compile(r"<[^>]+>")
_ID_ATTR_RE = re.compile(r"""\s(?:id|name)\s*=\s*(?:"([^"]*)"|'([^']*)')""", re.IGNORECASE)


def slugify(heading: str) -> str:
    """GitHub heading slug: lowercase, punctuation dropped, spaces to hyphens."""
    text = _MD_LINK_RE.sub(r"\1", heading)
    text = _HTML_TAG_RE.sub("", text)
    text = text.strip().lower()
    text = re.sub(r"[^\w\- ]", "", text)
    return text.replace(" ", "-")


def markdown_anchors(content: str) -> set[str]:
    masked = mask_code(content, inline=False)
    headings: list[tuple[int, str]] = [(m.start(), m.group(1)) for m in _ATX_RE.finditer(masked)]
    for m in _SETEXT_RE.finditer(masked):
        text = m.group("text")
        # a list item or table row over a "---" line is not a heading
        if text.lstrip().startswith(("-", "*", "|", ">", "#")) or not text.strip():
            continue
        headings.append((m.start(), text))
    headings.sort()

    seen: Counter[str] = Counter()
    anchors: set[str] = set()
    for _, text in headings:
        slug = slugify(text)
        count = seen[slug]
        seen[slug] += 1
        anchors.add(slug if count == 0 else f"{slug}-{count}")

    for m in _ID_ATTR_RE.finditer(masked):
        anchors.add(m.group(1) if m.group(1) is not None else m.group(2))
    return anchors


def html_anchors(content: str) -> set[str]:
    soup = BeautifulSoup(content, "html.parser")
    anchors: set[str] = set()
    for tag in soup.find_all(True):
        for attr in ("id", "name"):
            value = tag.get(attr)
            if isinstance(value, str) and value:
                anchors.add(value)
    return anchors


def anchors_for(path: str, content: str) -> set[str]:
    """Anchors defined by the file at *path* with the given *content*."""
    fmt = format_for_path(path)
    if fmt is DocumentFormat.MARKDOWN:
        return markdown_anchors(content)
    if fmt is DocumentFormat.HTML:
        return html_anchors(content)
    return set()
