"""Helpers shared by the per-format extractors.

Extractors produce *candidates* ``(offset, text, kind)`` in whatever order is
convenient; :func:`build_links` sorts them by source offset and turns them
into numbered :class:`RawLink` values with line/column positions.
"""

from __future__ import annotations

import bisect
import re
from typing import Iterable, Iterator, List, NamedTuple

from linkprobe.models import LinkKind, RawLink

BARE_URL_RE = re.compile(r"""(?:https?|ftp)://[^\s<>"'`{}|\\^]+|mailto:[^\s<>"'`()]+""", re.IGNORECASE)
MAIL_RE = re.compile(r"(?<![\w.+/:-])[\w.+-]+@[A-Za-z0-9-]+(?:\.[A-Za-z0-9-]+)*\.[A-Za-z]{2,}")

_TRAILING = ".,;:!?'\"*_~"
_PAIRS = {")": "(", "]": "["}


class Candidate(NamedTuple):
    offset: int
    text: str
    kind: LinkKind


class LineIndex:
    """Map character offsets to 1-based ``(line, column)`` pairs."""

    def __init__(self, content: str) -> None:
        self._starts = [0]
        for m in re.finditer("\n", content):
            self._starts.append(m.end())

    def position(self, offset: int) -> tuple[int, int]:
        line = bisect.bisect_right(self._starts, offset) - 1
        return line + 1, offset - self._starts[line] + 1

    def offset(self, line: int, column: int) -> int:
        """Inverse of :meth:`position` (both 1-based); clamps unknown lines."""
        line = max(1, min(line, len(self._starts)))
        return self._starts[line - 1] + max(column, 1) - 1


def trim_url(text: str) -> str:
    """Strip trailing punctuation that belongs to the prose, not the URL.

    A closing bracket is only removed when it has no opening partner inside
    the URL, so ``https://en.wikipedia.org/wiki/Foo_(bar)`` survives intact.
    """
    while text:
        last = text[-1]
        if last in _TRAILING:
            text = text[:-1]
        elif last in _PAIRS and text.count(last) > text.count(_PAIRS[last]):
            text = text[:-1]
        else:
            break
    return text


def scan_bare(text: str, base_offset: int = 0, mail: bool = True) -> Iterator[Candidate]:
    """Yield URL- and mail-shaped substrings of *text* in order of appearance."""
    url_spans: list[tuple[int, int]] = []
    found: list[Candidate] = []
    for m in BARE_URL_RE.finditer(text):
        url = trim_url(m.group(0))
        if url.lower() in {"mailto:", "http://", "https://", "ftp://"}:
            continue
        url_spans.append((m.start(), m.end()))
        found.append(Candidate(base_offset + m.start(), url, LinkKind.BARE_URL))
    if mail:
        for m in MAIL_RE.finditer(text):
            if any(start <= m.start() < end for start, end in url_spans):
                continue
            found.append(Candidate(base_offset + m.start(), m.group(0), LinkKind.BARE_MAIL))
    found.sort(key=lambda c: c.offset)
    yield from found


def overlaps(offset: int, spans: List[tuple[int, int]]) -> bool:
    return any(start <= offset < end for start, end in spans)


def build_links(content: str, candidates: Iterable[Candidate]) -> list[RawLink]:
    """Number *candidates* in source order and attach line/column positions."""
    index = LineIndex(content)
    ordered = sorted(candidates, key=lambda c: c.offset)
    links: list[RawLink] = []
    for i, cand in enumerate(ordered):
        line, column = index.position(cand.offset)
        links.append(
            RawLink(
                text=cand.text,
                index=i,
                line=line,
                column=column,
                offset=cand.offset,
                kind=cand.kind,
            )
        )
    return links
