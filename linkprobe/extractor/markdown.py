"""Markdown link extraction.

Recognises inline links and images (``[text](url)``, ``![alt](src)``),
reference definitions (``[id]: url``), autolinks (``<https://…>``), inline
``<a href>``/``<img src>`` HTML and bare URLs.  Code is masked out first so
links shown as examples inside fenced blocks, indented blocks or inline code
spans are never reported.

Reference-style links are reported once per ``[id]: url`` definition, at the
definition's position, whatever the number of ``[text][id]`` usages.  A
definition nobody uses is still checked; a usage with no definition is not a
link.
"""

from __future__ import annotations

import re
from typing import List

from linkprobe.extractor.common import Candidate, build_links, overlaps, scan_bare
from linkprobe.models import Document, LinkKind, RawLink

_FENCE_RE = re.compile(r"^[ ]{0,3}(`{3,}|~{3,})")
# inside a list item a fence may sit at the item's own indentation
_LIST_FENCE_RE = re.compile(r"^[ \t]*(`{3,}|~{3,})")
_LIST_ITEM_RE = re.compile(r"^[ \t]*(?:[-+*]|\d{1,9}[.)])(?:[ \t]|$)")
# a code span never crosses a blank line
_INLINE_CODE_RE = re.compile(r"(?<!`)(`+)(?!`)((?:(?!\n[ \t]*\n).)+?)(?<!`)\1(?!`)", re.DOTALL)
_HTML_COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
_REFERENCE_RE = re.compile(
    r"^[ ]{0,3}\[(?!\^)([^\]]+)\]:[ \t]*(?:<([^>\n]*)>|(\S+))", re.MULTILINE
)
_AUTOLINK_RE = re.compile(r"<([A-Za-z][A-Za-z0-9+.-]{1,31}:[^\s<>]*)>")
_MAIL_AUTOLINK_RE = re.compile(r"<([\w.+-]+@[A-Za-z0-9-]+(?:\.[A-Za-z0-9-]+)+)>")
_INLINE_HTML_RE = re.compile(
    r"""<[A-Za-z][A-Za-z0-9]*\b[^>]*?\s(href|src)\s*=\s*(?:"([^"]*)"|'([^']*)')""",
    re.IGNORECASE,
)


# ---------------------------------------------------------------------------
# Masking
# ---------------------------------------------------------------------------

def _blank(text: str) -> str:
    """Replace everything except newlines with spaces (offsets stay valid)."""
    return re.sub(r"[^\n]", " ", text)


def mask_code(content: str, inline: bool = True) -> str:
    """Blank out fenced and indented code blocks (and, with *inline*, code spans and comments).

    Indented lines that continue a list item (nested items, paragraphs of a
    loose list) are content, not code.
    """
    lines = content.splitlines(keepends=True)
    out: List[str] = []
    fence: str | None = None
    fence_re = _FENCE_RE
    prev_blank = True
    in_indented = False
    in_list = False
    for line in lines:
        stripped = line.rstrip("\r\n")
        if fence is not None:
            out.append(_blank(line))
            m = fence_re.match(stripped)
            if m and m.group(1)[0] == fence[0] and len(m.group(1)) >= len(fence) \
                    and not stripped.strip()[len(m.group(1)):].strip():
                fence = None
            continue
        fence_re = _LIST_FENCE_RE if in_list else _FENCE_RE
        m = fence_re.match(stripped)
        if m:
            fence = m.group(1)
            out.append(_blank(line))
            prev_blank = False
            in_indented = False
            continue
        is_blank = not stripped.strip()
        indented = stripped.startswith(("    ", "\t")) and not is_blank
        if indented and not in_list and (prev_blank or in_indented):
            in_indented = True
            out.append(_blank(line))
        else:
            if not is_blank:
                in_indented = False
                if _LIST_ITEM_RE.match(stripped) and (in_list or not indented):
                    in_list = True
                elif prev_blank and not indented:
                    in_list = False
            out.append(line)
        prev_blank = is_blank
    masked = "".join(out)
    if not inline:
        return masked
    masked = _INLINE_CODE_RE.sub(lambda m: _blank(m.group(0)), masked)
    return _HTML_COMMENT_RE.sub(lambda m: _blank(m.group(0)), masked)


# ---------------------------------------------------------------------------
# Inline links
# ---------------------------------------------------------------------------

def _opening_bracket(text: str, close: int) -> int:
    """Index of the ``[`` matching the ``]`` at *close*, or -1."""
    depth = 0
    i = close
    while i >= 0:
        ch = text[i]
        if ch == "]" and (i == 0 or text[i - 1] != "\\"):
            depth += 1
        elif ch == "[" and (i == 0 or text[i - 1] != "\\"):
            depth -= 1
            if depth == 0:
                return i
        elif ch == "\n" and i + 1 < len(text) and text[i + 1] == "\n":
            return -1
        i -= 1
    return -1


def _destination(text: str, start: int) -> tuple[str, int, int]:
    """Parse a link destination after ``(`` at *start*.

    Returns ``(destination, dest_offset, end)`` where *end* is the index just
    past the closing ``)``; destination is ``""`` when nothing parseable is found.
    """
    i = start
    n = len(text)
    while i < n and text[i] in " \t":
        i += 1
    if i < n and text[i] == "<":
        close = text.find(">", i + 1)
        if close == -1 or "\n" in text[i:close]:
            return "", i, i
        end = text.find(")", close)
        return text[i + 1:close], i + 1, (end + 1 if end != -1 else close + 1)

    dest_start = i
    depth = 0
    while i < n:
        ch = text[i]
        if ch.isspace():
            break
        if ch == "(":
            depth += 1
        elif ch == ")":
            if depth == 0:
                break
            depth -= 1
        i += 1
    dest = text[dest_start:i]
    end = text.find(")", i)
    if end == -1 or "\n\n" in text[i:end]:
        return "", dest_start, dest_start
    return dest, dest_start, end + 1


def extract_markdown(document: Document) -> list[RawLink]:
    content = document.content
    masked = mask_code(content)
    candidates: list[Candidate] = []
    consumed: list[tuple[int, int]] = []

    for m in _REFERENCE_RE.finditer(masked):
        group = 2 if m.group(2) is not None else 3
        if m.group(group):
            candidates.append(Candidate(m.start(group), m.group(group), LinkKind.MARKDOWN_REFERENCE))
        consumed.append((m.start(), m.end()))

    for m in re.finditer(r"\]\(", masked):
        if overlaps(m.start(), consumed):
            continue
        opening = _opening_bracket(masked, m.start())
        if opening == -1:
            continue
        dest, dest_offset, end = _destination(masked, m.end())
        if not dest:
            continue
        is_image = opening > 0 and masked[opening - 1] == "!"
        kind = LinkKind.MARKDOWN_IMAGE if is_image else LinkKind.MARKDOWN_INLINE
        candidates.append(Candidate(dest_offset, dest, kind))
        consumed.append((dest_offset, end))
        # the link text itself is prose, not a bare URL
        consumed.append((opening, m.start()))

    for regex in (_AUTOLINK_RE, _MAIL_AUTOLINK_RE):
        for m in regex.finditer(masked):
            if overlaps(m.start(), consumed):
                continue
            candidates.append(Candidate(m.start(1), m.group(1), LinkKind.MARKDOWN_AUTOLINK))
            consumed.append((m.start(), m.end()))

    for m in _INLINE_HTML_RE.finditer(masked):
        group = 2 if m.group(2) is not None else 3
        value = m.group(group).strip()
        if not value:
            continue
        kind = LinkKind.HTML_HREF if m.group(1).lower() == "href" else LinkKind.HTML_SRC
        candidates.append(Candidate(m.start(group), value, kind))
        consumed.append((m.start(), m.end()))

    for cand in scan_bare(masked):
        if not overlaps(cand.offset, consumed):
            candidates.append(cand)

    return build_links(content, candidates)
