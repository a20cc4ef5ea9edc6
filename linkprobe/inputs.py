"""Turn user inputs into :class:`Document` objects.

An input is one of:

* ``-``: read the document from stdin (plain text unless told otherwise);
* an ``http(s)://`` URL: fetched once with ``httpx`` and scanned (never
  crawled further); its final URL becomes the base for relative links;
* a glob pattern (``*``, ``?``, ``[`` or ``**``): expanded to every matching
  file;
* a directory: every Markdown/HTML file below it;
* a file path: read from disk, format inferred from the extension.
"""

from __future__ import annotations

import glob
import logging
import sys
from pathlib import Path
from typing import Iterable, Optional, TextIO

import httpx

from linkprobe.errors import InputError
from linkprobe.extractor import format_for_path
from linkprobe.models import Document, DocumentFormat

logger = logging.getLogger(__name__)

_GLOB_CHARS = set("*?[")
_SCANNED_SUFFIXES = {".md", ".markdown", ".mdx", ".mkd", ".html", ".htm", ".xhtml"}


def is_url(value: str) -> bool:
    return value.lower().startswith(("http://", "https://"))


def is_glob(value: str) -> bool:
    return any(c in value for c in _GLOB_CHARS)


def read_file(path: Path) -> Document:
    """Read a local file; undecodable bytes are replaced, never fatal."""
    try:
        content = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise InputError(f"Cannot read {path}: {exc}") from exc
    text = str(path)
    return Document(id=text, content=content, format=format_for_path(text), base=text)


def read_stdin(stream: Optional[TextIO] = None, format: DocumentFormat = DocumentFormat.PLAINTEXT) -> Document:
    stream = stream if stream is not None else sys.stdin
    return Document(id="<stdin>", content=stream.read(), format=format, base=None)


def _format_for_response(response: httpx.Response) -> DocumentFormat:
    content_type = response.headers.get("content-type", "").lower()
    by_path = format_for_path(response.url.path)
    if by_path is not DocumentFormat.PLAINTEXT:
        return by_path
    if "html" in content_type:
        return DocumentFormat.HTML
    if "markdown" in content_type:
        return DocumentFormat.MARKDOWN
    return DocumentFormat.PLAINTEXT


async def fetch_document(url: str, client: httpx.AsyncClient) -> Document:
    """Fetch *url* and return it as a document.

    Raises:
        InputError: If the request fails or the server returns 4xx/5xx.
    """
    try:
        response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise InputError(f"Cannot fetch {url}: {exc}") from exc
    return Document(
        id=url,
        content=response.text,
        format=_format_for_response(response),
        base=str(response.url),
    )


def expand_local(value: str) -> list[Path]:
    """Expand a glob, directory or plain path into the files it names."""
    if is_glob(value):
        matches = sorted(Path(p) for p in glob.glob(value, recursive=True))
        files = [p for p in matches if p.is_file()]
        if not files:
            logger.warning("glob pattern %r matched no files", value)
        return files

    path = Path(value)
    if path.is_dir():
        return sorted(
            p for p in path.rglob("*") if p.is_file() and p.suffix.lower() in _SCANNED_SUFFIXES
        )
    if not path.exists():
        raise InputError(f"Input not found: {value}")
    return [path]


async def load_documents(
    inputs: Iterable[str],
    client: httpx.AsyncClient,
    stdin: Optional[TextIO] = None,
) -> list[Document]:
    """Load every input in order; duplicate paths are read once."""
    documents: list[Document] = []
    seen: set[str] = set()
    for value in inputs:
        if value == "-":
            documents.append(read_stdin(stdin))
            continue
        if is_url(value):
            if value not in seen:
                seen.add(value)
                documents.append(await fetch_document(value, client))
            continue
        for path in expand_local(value):
            key = str(path)
            if key in seen:
                continue
            seen.add(key)
            documents.append(read_file(path))
    logger.info("loaded %d document(s)", len(documents))
    return documents
