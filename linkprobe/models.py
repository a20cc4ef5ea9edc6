"""Data models for the link-checking pipeline.

These are plain Python objects.  Everything a single run produces is
immutable once built; the :class:`Report` is assembled by the aggregator and
handed back as a finished value.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Optional, Union
from urllib.parse import urlsplit


class DocumentFormat(str, enum.Enum):
    MARKDOWN = "markdown"
    HTML = "html"
    PLAINTEXT = "plaintext"


class LinkKind(str, enum.Enum):
    """Where in the source a raw link was found."""

    MARKDOWN_INLINE = "markdown_inline"
    MARKDOWN_REFERENCE = "markdown_reference"
    MARKDOWN_AUTOLINK = "markdown_autolink"
    MARKDOWN_IMAGE = "markdown_image"
    HTML_HREF = "html_href"
    HTML_SRC = "html_src"
    BARE_URL = "bare_url"
    BARE_MAIL = "bare_mail"


class Status(str, enum.Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    EXCLUDED = "excluded"
    SKIPPED = "skipped"


class SkipReason(str, enum.Enum):
    EXCLUDED_PATTERN = "excluded_pattern"
    NOT_INCLUDED = "not_included"
    PRIVATE_ADDRESS = "private_address"
    MAIL_EXCLUDED = "mail_excluded"
    UNSUPPORTED_SCHEME = "unsupported_scheme"
    ANCHOR_ONLY = "anchor_only"
    UNSUPPORTED_PATH = "unsupported_path"

    @property
    def status(self) -> Status:
        """Policy exclusions are *excluded*; inputs we cannot check are *skipped*."""
        if self in _EXCLUSIONS:
            return Status.EXCLUDED
        return Status.SKIPPED


_EXCLUSIONS = frozenset(
    {
        SkipReason.EXCLUDED_PATTERN,
        SkipReason.NOT_INCLUDED,
        SkipReason.PRIVATE_ADDRESS,
        SkipReason.MAIL_EXCLUDED,
    }
)


class FailureReason(str, enum.Enum):
    HTTP_STATUS = "http_status"
    EXHAUSTED_RETRIES = "exhausted_retries"
    TOO_MANY_REDIRECTS = "too_many_redirects"
    TRANSPORT = "transport"
    NOT_FOUND = "not_found"
    ANCHOR_NOT_FOUND = "anchor_not_found"
    INVALID_MAIL = "invalid_mail"
    CANCELLED = "cancelled"


# ---------------------------------------------------------------------------
# Documents and raw links
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Document:
    """One input to scan.

    ``base`` is a filesystem path or an absolute URL used to resolve relative
    links; ``None`` means relative links cannot be resolved.
    """

    id: str
    content: str
    format: DocumentFormat
    base: Optional[str] = None

    @classmethod
    def from_string(
        cls,
        content: str,
        format: DocumentFormat = DocumentFormat.PLAINTEXT,
        id: str = "<string>",
        base: Optional[str] = None,
    ) -> Document:
        return cls(id=id, content=content, format=format, base=base)

    @property
    def is_remote(self) -> bool:
        return bool(self.base) and self.base.startswith(("http://", "https://"))


@dataclass(frozen=True)
class RawLink:
    """A link occurrence exactly as written in a document."""

    text: str
    index: int
    line: int
    column: int
    offset: int
    kind: LinkKind


# ---------------------------------------------------------------------------
# Targets and skip verdicts
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WebTarget:
    url: str
    raw: RawLink

    @property
    def uri(self) -> str:
        return self.url

    @property
    def host(self) -> str:
        return (urlsplit(self.url).hostname or "").lower()


@dataclass(frozen=True)
class FileTarget:
    path: Path
    raw: RawLink
    anchor: Optional[str] = None

    @property
    def uri(self) -> str:
        text = self.path.as_posix()
        return f"{text}#{self.anchor}" if self.anchor else text

    @property
    def host(self) -> str:
        return ""


@dataclass(frozen=True)
class MailTarget:
    address: str
    raw: RawLink

    @property
    def uri(self) -> str:
        return f"mailto:{self.address}"

    @property
    def host(self) -> str:
        return ""


Target = Union[WebTarget, FileTarget, MailTarget]


@dataclass(frozen=True)
class SkipVerdict:
    """Terminal outcome for a link that is never handed to a checker."""

    raw: RawLink
    uri: str
    reason: SkipReason

    @property
    def status(self) -> Status:
        return self.reason.status


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CheckResult:
    uri: str
    status: Status
    raw: RawLink
    reason: Optional[Union[FailureReason, SkipReason]] = None
    status_code: Optional[int] = None
    detail: Optional[str] = None
    elapsed: float = 0.0
    attempts: int = 0
    redirected: bool = False
    timed_out: bool = False

    @classmethod
    def skipped(cls, verdict: SkipVerdict) -> CheckResult:
        return cls(uri=verdict.uri, status=verdict.status, raw=verdict.raw, reason=verdict.reason)

    @classmethod
    def cancelled(cls, target: Target) -> CheckResult:
        return cls(
            uri=target.uri,
            status=Status.FAILURE,
            raw=target.raw,
            reason=FailureReason.CANCELLED,
            detail="check cancelled before completion",
        )

    @property
    def is_success(self) -> bool:
        return self.status is Status.SUCCESS

    @property
    def is_failure(self) -> bool:
        return self.status is Status.FAILURE

    @property
    def is_timeout(self) -> bool:
        return self.is_failure and self.timed_out

    def to_dict(self) -> dict[str, Any]:
        """Serialise for JSON output."""
        return {
            "uri": self.uri,
            "status": self.status.value,
            "reason": self.reason.value if self.reason else None,
            "status_code": self.status_code,
            "detail": self.detail,
            "elapsed": round(self.elapsed, 4),
            "attempts": self.attempts,
            "redirected": self.redirected,
            "line": self.raw.line,
            "column": self.raw.column,
        }


@dataclass
class ReportStats:
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    excluded: int = 0
    skipped: int = 0
    redirected: int = 0
    timeouts: int = 0
    checked: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "checked": self.checked,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "excluded": self.excluded,
            "skipped": self.skipped,
            "redirected": self.redirected,
            "timeouts": self.timeouts,
        }


@dataclass
class Report:
    """Per-document results in source order, plus aggregate counts."""

    results: dict[str, list[CheckResult]] = field(default_factory=dict)
    stats: ReportStats = field(default_factory=ReportStats)

    @property
    def is_success(self) -> bool:
        return self.stats.failed == 0

    def failures(self) -> Iterator[tuple[str, CheckResult]]:
        for document_id, results in self.results.items():
            for result in results:
                if result.is_failure:
                    yield document_id, result

    def to_dict(self) -> dict[str, Any]:
        return {
            "stats": self.stats.to_dict(),
            "results": {
                doc: [r.to_dict() for r in results] for doc, results in self.results.items()
            },
        }
