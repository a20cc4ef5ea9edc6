"""Extractor package: turn document content into ordered raw links.

Each format has one extractor function with the same contract:
``(Document) -> list[RawLink]``, pure and deterministic.  :func:`extract`
picks the function from a closed mapping keyed by :class:`DocumentFormat`.
"""

from __future__ import annotations

import logging
from pathlib import PurePath
from typing import Callable, Dict

from linkprobe.extractor.html import extract_html
from linkprobe.extractor.markdown import extract_markdown
from linkprobe.extractor.plaintext import extract_plaintext
from linkprobe.models import Document, DocumentFormat, RawLink

logger = logging.getLogger(__name__)

Extractor = Callable[[Document], "list[RawLink]"]

EXTRACTORS: Dict[DocumentFormat, Extractor] = {
    DocumentFormat.MARKDOWN: extract_markdown,
    DocumentFormat.HTML: extract_html,
    DocumentFormat.PLAINTEXT: extract_plaintext,
}

_EXTENSIONS = {
    ".md": DocumentFormat.MARKDOWN,
    ".markdown": DocumentFormat.MARKDOWN,
    ".mdx": DocumentFormat.MARKDOWN,
    ".mkd": DocumentFormat.MARKDOWN,
    ".html": DocumentFormat.HTML,
    ".htm": DocumentFormat.HTML,
    ".xhtml": DocumentFormat.HTML,
}


def format_for_path(path: str) -> DocumentFormat:
    """Infer the document format from a file name or URL path extension."""
    return _EXTENSIONS.get(PurePath(path).suffix.lower(), DocumentFormat.PLAINTEXT)


def extract(document: Document) -> list[RawLink]:
    """Return the raw links of *document* in source order.

    Never raises for document content: a defect in the document lowers the
    quality of extraction, it does not stop the run.
    """
    links = EXTRACTORS[document.format](document)
    logger.debug("extracted %d link(s) from %s", len(links), document.id)
    return links


__all__ = ["extract", "format_for_path", "EXTRACTORS"]
