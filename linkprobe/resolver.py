"""Turn raw links into checkable targets or terminal skip verdicts.

Resolution is a pure function of the raw link, the document it came from and
the compiled policy.  Nothing here performs I/O: private-address filtering
looks at the literal host only and never resolves DNS.
"""

from __future__ import annotations

import ipaddress
import logging
import os
import re
from pathlib import Path
from typing import Optional, Union
from urllib.parse import unquote, urljoin, urlsplit

from linkprobe.config import CompiledPolicy
from linkprobe.models import (
    Document,
    FileTarget,
    MailTarget,
    RawLink,
    SkipReason,
    SkipVerdict,
    Target,
    WebTarget,
)

logger = logging.getLogger(__name__)

_SCHEME_RE = re.compile(r"^([A-Za-z][A-Za-z0-9+.-]*):")
_BARE_MAIL_RE = re.compile(r"^[^\s@/:]+@[^\s@/:]+$")
_WEB_SCHEMES = {"http", "https"}
_LOOPBACK_NAMES = {"localhost", "localhost.localdomain", "ip6-localhost", "ip6-loopback"}

Resolution = Union[Target, SkipVerdict]


# ---------------------------------------------------------------------------
# Policy helpers
# ---------------------------------------------------------------------------

def _pattern_verdict(uri: str, policy: CompiledPolicy) -> Optional[SkipReason]:
    """Include patterns are a whitelist; otherwise exclude patterns apply."""
    if policy.includes:
        if any(p.search(uri) for p in policy.includes):
            return None
        return SkipReason.NOT_INCLUDED
    if any(p.search(uri) for p in policy.excludes):
        return SkipReason.EXCLUDED_PATTERN
    return None


def is_private_host(host: str, policy: CompiledPolicy) -> bool:
    """Literal inspection of *host* against the enabled private-address flags."""
    host = host.lower().strip("[]")
    if not host:
        return False
    if host in _LOOPBACK_NAMES or host.endswith(".localhost"):
        return policy.exclude_loopback
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        return False
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    if ip.is_loopback:
        return policy.exclude_loopback
    if ip.is_link_local:
        return policy.exclude_link_local
    if ip.is_private:
        return policy.exclude_private
    return False


def _skip(raw: RawLink, uri: str, reason: SkipReason) -> SkipVerdict:
    logger.debug("skip %s (%s)", uri, reason.value)
    return SkipVerdict(raw=raw, uri=uri, reason=reason)


# ---------------------------------------------------------------------------
# Per-kind resolution
# ---------------------------------------------------------------------------

def _resolve_web(raw: RawLink, url: str, policy: CompiledPolicy) -> Resolution:
    parts = urlsplit(url)
    if policy.scheme and parts.scheme.lower() != policy.scheme:
        return _skip(raw, url, SkipReason.EXCLUDED_PATTERN)
    if is_private_host(parts.hostname or "", policy):
        return _skip(raw, url, SkipReason.PRIVATE_ADDRESS)
    return WebTarget(url=url, raw=raw)


def _resolve_mail(raw: RawLink, text: str, policy: CompiledPolicy) -> Resolution:
    address = text[len("mailto:"):] if text.lower().startswith("mailto:") else text
    address = unquote(address.split("?", 1)[0])
    if policy.settings.exclude_mail:
        return _skip(raw, f"mailto:{address}", SkipReason.MAIL_EXCLUDED)
    return MailTarget(address=address, raw=raw)


def _local_root(policy: CompiledPolicy) -> Optional[str]:
    base_dir = policy.settings.base_dir
    return os.path.normpath(str(base_dir)) if base_dir is not None else None


def _resolve_path(
    raw: RawLink, path: str, anchor: Optional[str], document: Document, policy: CompiledPolicy
) -> Resolution:
    root = _local_root(policy)
    path = unquote(path)
    if path.startswith("/"):
        if root is None:
            return _skip(raw, raw.text, SkipReason.UNSUPPORTED_PATH)
        joined = os.path.join(root, path.lstrip("/"))
    elif path:
        if not document.base:
            return _skip(raw, raw.text, SkipReason.UNSUPPORTED_PATH)
        joined = os.path.join(os.path.dirname(document.base), path)
    else:
        if not document.base:
            return _skip(raw, raw.text, SkipReason.UNSUPPORTED_PATH)
        joined = document.base

    resolved = os.path.normpath(joined)
    if root is not None:
        try:
            inside = os.path.commonpath([os.path.abspath(root), os.path.abspath(resolved)])
        except ValueError:
            inside = ""
        if inside != os.path.abspath(root):
            return _skip(raw, raw.text, SkipReason.UNSUPPORTED_PATH)
    return FileTarget(path=Path(resolved), anchor=anchor or None, raw=raw)


def resolve(raw: RawLink, document: Document, policy: CompiledPolicy) -> Resolution:
    """Resolve *raw* (found in *document*) into a target or a skip verdict."""
    text = raw.text.strip()
    if not text:
        return _skip(raw, text, SkipReason.UNSUPPORTED_PATH)

    verdict = _pattern_verdict(text, policy)

    m = _SCHEME_RE.match(text)
    scheme = m.group(1).lower() if m else None

    # Windows drive letters ("C:\docs") look like schemes
    if scheme is not None and len(scheme) == 1:
        scheme = None

    if scheme is None and _BARE_MAIL_RE.match(text):
        if verdict is not None:
            return _skip(raw, f"mailto:{text}", verdict)
        return _resolve_mail(raw, text, policy)

    if scheme == "mailto":
        if verdict is not None:
            return _skip(raw, text, verdict)
        return _resolve_mail(raw, text, policy)

    if scheme in _WEB_SCHEMES:
        if verdict is not None:
            return _skip(raw, text, verdict)
        return _resolve_web(raw, text, policy)

    if scheme == "file":
        if verdict is not None:
            return _skip(raw, text, verdict)
        parts = urlsplit(text)
        return FileTarget(
            path=Path(unquote(parts.path)), anchor=parts.fragment or None, raw=raw
        )

    if scheme is not None:
        return _skip(raw, text, SkipReason.UNSUPPORTED_SCHEME)

    if text.startswith("//"):
        base_scheme = urlsplit(document.base).scheme if document.is_remote else "https"
        return resolve_relative_web(raw, f"{base_scheme}:{text}", policy)

    if text.startswith("#") and not policy.settings.check_anchors:
        return _skip(raw, text, SkipReason.ANCHOR_ONLY)

    # Relative reference: depends on the document's own location.
    if document.is_remote:
        return resolve_relative_web(raw, urljoin(document.base, text), policy)

    path, _, anchor = text.partition("#")
    path = path.split("?", 1)[0]
    target = _resolve_path(raw, path, anchor, document, policy)
    if isinstance(target, SkipVerdict):
        return target
    reason = _pattern_verdict(target.uri, policy)
    if reason is not None:
        return _skip(raw, target.uri, reason)
    return target


def resolve_relative_web(raw: RawLink, url: str, policy: CompiledPolicy) -> Resolution:
    """Resolve a web URL that was relative in the source (patterns see the absolute form)."""
    reason = _pattern_verdict(url, policy)
    if reason is not None:
        return _skip(raw, url, reason)
    return _resolve_web(raw, url, policy)


def resolve_all(links: list[RawLink], document: Document, policy: CompiledPolicy) -> list[Resolution]:
    """Resolve every raw link of one document, preserving order."""
    return [resolve(raw, document, policy) for raw in links]
