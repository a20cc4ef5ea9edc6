"""Plain-text link extraction: URL- and mail-shaped substrings."""

from __future__ import annotations

from linkprobe.extractor.common import build_links, scan_bare
from linkprobe.models import Document, RawLink


def extract_plaintext(document: Document) -> list[RawLink]:
    return build_links(document.content, scan_bare(document.content))
